"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId wraps UUID — never use bare UUID in domain logic
    - IdentityRecord sets are frozensets: a read snapshot is never mutated in place
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - RelationField values double as the `relation` column of user_relations
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class RelationField(str, Enum):
    """The three relation sets owned by every identity record."""
    FRIENDS = "friends"
    OUTGOING_REQUESTS = "outgoing_requests"
    INCOMING_REQUESTS = "incoming_requests"


class RelationshipStatus(str, Enum):
    """Relationship of a candidate as seen from the viewer's record."""
    FRIENDS = "friends"
    REQUEST_SENT = "request_sent"
    REQUEST_RECEIVED = "request_received"
    NONE = "none"


class MutationKind(str, Enum):
    """Set primitives offered by the identity store."""
    ADD = "add"
    REMOVE = "remove"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class IdentityRecord:
    """Point-in-time read of one identity and its three relation sets."""
    id: UserId
    display_name: str
    external_handle: str | None = None
    friends: frozenset[UserId] = field(default_factory=frozenset)
    outgoing_requests: frozenset[UserId] = field(default_factory=frozenset)
    incoming_requests: frozenset[UserId] = field(default_factory=frozenset)

    def members(self, relation: RelationField) -> frozenset[UserId]:
        return getattr(self, relation.value)


@dataclass(frozen=True)
class PublicProfile:
    """Projection safe to hand to other users — no credentials, no tokens."""
    id: UserId
    display_name: str
    external_handle: str | None = None


@dataclass(frozen=True)
class SetMutation:
    """One pull or add against a relation set of a single owner record."""
    kind: MutationKind
    relation: RelationField
    value: UserId


def pull(relation: RelationField, value: UserId) -> SetMutation:
    return SetMutation(MutationKind.REMOVE, relation, value)


def add(relation: RelationField, value: UserId) -> SetMutation:
    return SetMutation(MutationKind.ADD, relation, value)
