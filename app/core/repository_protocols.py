"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Set primitives are idempotent: adding a present member or pulling an
      absent one is a no-op, never an error
    - apply() touches exactly one owner record; there is no cross-record call

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE these records are never async themselves
    - Mutation methods return how many members actually changed (0 on no-op),
      so callers can detect that a racing call already applied the same change
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from app.core.domain_types import (
    IdentityRecord, PublicProfile, RelationField, SetMutation, UserId,
)


class IdentityStore(Protocol):
    """Contract for per-identity relation-set persistence — implemented by shell."""
    async def get(self, user_id: UserId) -> IdentityRecord | None: ...
    async def add_to_set(
        self, owner_id: UserId, relation: RelationField, value: UserId,
    ) -> bool: ...
    async def remove_from_set(
        self, owner_id: UserId, relation: RelationField, value: UserId,
    ) -> bool: ...
    async def apply(
        self, owner_id: UserId, mutations: Sequence[SetMutation],
    ) -> int: ...
    async def find_many(self, user_ids: Iterable[UserId]) -> list[PublicProfile]: ...
    async def search(
        self, query: str, exclude: UserId, limit: int,
    ) -> list[PublicProfile]: ...
