"""Relationship Schemas — request bodies and responses for the friends and users API.

Invariants:
    - Counterparty ids are UUIDs: missing or malformed ids fail Pydantic validation
      (mapped to VALIDATION_ERROR by the global handler)
    - Responses expose PublicProfile fields only

Design Decisions:
    - One body model per route: field names match what the client sends
    - from_domain classmethods keep the dataclass -> schema mapping in one place
"""

from uuid import UUID

from pydantic import BaseModel

from app.core.domain_types import PublicProfile, RelationshipStatus
from app.core.relationship_status import AnnotatedProfile


class FriendRequestCreate(BaseModel):
    target_user_id: UUID


class FriendRequestDecision(BaseModel):
    """Accept or reject — names the user who sent the request."""
    requester_user_id: UUID


class FriendRemoval(BaseModel):
    friend_user_id: UUID


class ActionResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    """Public-facing user projection."""
    id: UUID
    display_name: str
    external_handle: str | None = None

    @classmethod
    def from_domain(cls, profile: PublicProfile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            display_name=profile.display_name,
            external_handle=profile.external_handle,
        )


class UserSearchResult(ProfileResponse):
    relationship_status: RelationshipStatus

    @classmethod
    def from_annotated(cls, item: AnnotatedProfile) -> "UserSearchResult":
        return cls(
            id=item.profile.id,
            display_name=item.profile.display_name,
            external_handle=item.profile.external_handle,
            relationship_status=item.relationship_status,
        )


class RelationshipStatusResponse(BaseModel):
    user_id: UUID
    relationship_status: RelationshipStatus
