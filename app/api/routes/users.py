"""User Directory Routes — search other users, annotated with relationship status.

Invariants:
    - Query shorter than user_search_min_length (after trimming) -> 400
    - The caller never appears in their own results
    - Results carry relationship_status derived from the caller's record only

Design Decisions:
    - Query param named `username` (client contract of the web app)
"""

import logging

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_relationship_service, require_principal
from app.config import get_settings
from app.core.domain_types import UserId
from app.schemas.relationship import UserSearchResult
from app.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/search", response_model=list[UserSearchResult])
async def search_users(
    username: str | None = Query(None, max_length=100),
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    settings = get_settings()
    results = await service.search_users(
        principal, username,
        min_length=settings.user_search_min_length,
        limit=settings.user_search_limit,
    )
    return [UserSearchResult.from_annotated(r) for r in results]
