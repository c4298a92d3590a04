"""Friends Routes — request, accept, reject, remove, and list connections.

Invariants:
    - Every route requires an authenticated principal (401 otherwise)
    - Routes never contain relationship logic: they delegate to RelationshipService
    - Errors propagate as KnowledgeHubError and are rendered by the global handlers

Design Decisions:
    - POST for all transitions, ids in the JSON body (client contract of the web app)
    - GET /status/{id} lets a client re-derive state after a timed-out mutation
      before retrying
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.dependencies import get_relationship_service, require_principal
from app.core.domain_types import UserId
from app.schemas.relationship import (
    ActionResponse,
    FriendRemoval,
    FriendRequestCreate,
    FriendRequestDecision,
    ProfileResponse,
    RelationshipStatusResponse,
)
from app.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/friends", tags=["friends"])


@router.post("/request", response_model=ActionResponse)
async def request_friend(
    body: FriendRequestCreate,
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Send a friend request to another user."""
    await service.request_connection(principal, UserId(body.target_user_id))
    return ActionResponse(message="Friend request sent successfully")


@router.post("/accept", response_model=ActionResponse)
async def accept_friend(
    body: FriendRequestDecision,
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Accept a pending friend request."""
    await service.accept_connection(principal, UserId(body.requester_user_id))
    return ActionResponse(message="Friend request accepted successfully")


@router.post("/reject", response_model=ActionResponse)
async def reject_friend(
    body: FriendRequestDecision,
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Reject a friend request. Succeeds even if no request exists."""
    await service.reject_connection(principal, UserId(body.requester_user_id))
    return ActionResponse(message="Friend request rejected successfully")


@router.post("/remove", response_model=ActionResponse)
async def remove_friend(
    body: FriendRemoval,
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Remove a friend. Succeeds even if the users were not friends."""
    await service.remove_connection(principal, UserId(body.friend_user_id))
    return ActionResponse(message="Friend removed successfully")


@router.get("/list", response_model=list[ProfileResponse])
async def list_friends(
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    profiles = await service.list_friends(principal)
    return [ProfileResponse.from_domain(p) for p in profiles]


@router.get("/requests/incoming", response_model=list[ProfileResponse])
async def list_incoming_requests(
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    profiles = await service.list_incoming(principal)
    return [ProfileResponse.from_domain(p) for p in profiles]


@router.get("/status/{candidate_id}", response_model=RelationshipStatusResponse)
async def relationship_status(
    candidate_id: UUID,
    principal: UserId = Depends(require_principal),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Relationship of candidate_id as seen by the caller."""
    status = await service.relationship_status(principal, UserId(candidate_id))
    return RelationshipStatusResponse(
        user_id=candidate_id, relationship_status=status,
    )
