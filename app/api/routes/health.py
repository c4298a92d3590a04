"""Health & Readiness Probes — liveness and store-readiness endpoints.

Invariants:
    - GET /health/ returns 200 whenever the process serves requests (liveness)
    - GET /health/ready returns 503 until the store answers a round trip
      (before lifespan startup, or while the database is down)

Design Decisions:
    - The module-level db_manager is looked up per request, not imported by
      value: it is only assigned once the lifespan has run
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import app.infrastructure.database as database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "knowledge-hub-connections"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/ready")
async def readiness_check():
    """Ready once the identity store's database answers SELECT 1."""
    manager = database.db_manager
    if manager is None:
        reason = "database_not_initialized"
    elif await manager.health_check():
        return {"status": "ready", "checks": {"database": "healthy"}}
    else:
        reason = "database_unavailable"
    logger.warning(f"Readiness check failed: {reason}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )
