"""API Dependencies — identity resolution and service wiring for route handlers.

Invariants:
    - resolve_current_principal never raises for a bad cookie: it returns None
    - require_principal turns None into UnauthenticatedError (401)
    - A principal id is only returned when the identity record exists
    - The existence lookup goes through RelationshipService: a store outage or
      timeout during resolution is an opaque INTERNAL_ERROR, like any other

Design Decisions:
    - Session cookie holds the user id, as set by the login flow; verifying
      credentials is the login flow's job, not this service's
    - Store and service built per request via Depends: tests swap the store
      with app.dependency_overrides[get_identity_store]
"""

import logging
from uuid import UUID

from fastapi import Depends, Request

from app.config import get_settings
from app.core.domain_types import UserId
from app.core.errors import UnauthenticatedError
from app.core.repository_protocols import IdentityStore
from app.infrastructure.identity_store import get_identity_store
from app.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


def get_relationship_service(
    store: IdentityStore = Depends(get_identity_store),
) -> RelationshipService:
    return RelationshipService(
        store, timeout_seconds=get_settings().store_timeout_seconds,
    )


async def resolve_current_principal(
    request: Request,
    service: RelationshipService = Depends(get_relationship_service),
) -> UserId | None:
    """Identity Resolver: session cookie -> known UserId, or None."""
    raw = request.cookies.get(get_settings().session_cookie_name)
    if not raw:
        return None
    try:
        user_id = UserId(UUID(raw))
    except ValueError:
        logger.warning(f"Malformed session cookie on {request.url.path}")
        return None
    if not await service.principal_exists(user_id):
        logger.warning(
            "Session cookie references unknown user",
            extra={"principal_id": str(user_id), "path": request.url.path},
        )
        return None
    return user_id


async def require_principal(
    principal: UserId | None = Depends(resolve_current_principal),
) -> UserId:
    if principal is None:
        raise UnauthenticatedError()
    return principal
