"""SQL Identity Store — IdentityStore implementation over users + user_relations.

Invariants:
    - Every call opens its own session: concurrent calls never share one
    - apply() commits all mutations of ONE owner in one transaction
    - add is INSERT ... ON CONFLICT DO NOTHING, remove is DELETE: both idempotent
    - find_many/search project to PublicProfile — password_hash never selected

Design Decisions:
    - Dialect-specific insert (postgresql / sqlite) for ON CONFLICT support;
      both dialects expose on_conflict_do_nothing()
    - rowcount reported back so callers can tell an applied change from a no-op
    - LIKE wildcards in search queries are escaped: user text is matched literally
"""

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from app.core.domain_types import (
    IdentityRecord, MutationKind, PublicProfile, RelationField,
    SetMutation, UserId, add, pull,
)
from app.infrastructure.database import DatabaseSessionManager, get_db_manager
from app.models.user import User
from app.models.user_relation import UserRelation

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = (User.id, User.display_name, User.external_handle)
_relations = UserRelation.__table__


def _escape_like(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )


class SqlIdentityStore:
    """Relation sets persisted as one row per member."""

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def get(self, user_id: UserId) -> IdentityRecord | None:
        async with self._manager.session() as db:
            user = (await db.execute(
                select(*_PROFILE_COLUMNS).where(User.id == user_id),
            )).one_or_none()
            if user is None:
                return None
            rows = (await db.execute(
                select(UserRelation.relation, UserRelation.member_id)
                .where(UserRelation.owner_id == user_id),
            )).all()

        sets: dict[str, set[UserId]] = {r.value: set() for r in RelationField}
        for relation, member_id in rows:
            if relation in sets:
                sets[relation].add(UserId(member_id))
            else:
                logger.warning(
                    f"Ignoring unknown relation '{relation}' on user {user_id}",
                )
        return IdentityRecord(
            id=UserId(user.id),
            display_name=user.display_name,
            external_handle=user.external_handle,
            friends=frozenset(sets[RelationField.FRIENDS.value]),
            outgoing_requests=frozenset(
                sets[RelationField.OUTGOING_REQUESTS.value],
            ),
            incoming_requests=frozenset(
                sets[RelationField.INCOMING_REQUESTS.value],
            ),
        )

    async def apply(
        self, owner_id: UserId, mutations: Sequence[SetMutation],
    ) -> int:
        """Apply pulls/adds to one owner's sets atomically; returns members changed."""
        changed = 0
        async with self._manager.session() as db:
            for mutation in mutations:
                if mutation.kind is MutationKind.ADD:
                    stmt = self._insert().values(
                        owner_id=owner_id,
                        relation=mutation.relation.value,
                        member_id=mutation.value,
                    ).on_conflict_do_nothing()
                else:
                    stmt = delete(_relations).where(
                        _relations.c.owner_id == owner_id,
                        _relations.c.relation == mutation.relation.value,
                        _relations.c.member_id == mutation.value,
                    )
                result = await db.execute(stmt)
                changed += max(result.rowcount or 0, 0)
            await db.commit()
        return changed

    async def add_to_set(
        self, owner_id: UserId, relation: RelationField, value: UserId,
    ) -> bool:
        return await self.apply(owner_id, [add(relation, value)]) > 0

    async def remove_from_set(
        self, owner_id: UserId, relation: RelationField, value: UserId,
    ) -> bool:
        return await self.apply(owner_id, [pull(relation, value)]) > 0

    async def find_many(self, user_ids: Iterable[UserId]) -> list[PublicProfile]:
        ids = list(user_ids)
        if not ids:
            return []
        async with self._manager.session() as db:
            rows = (await db.execute(
                select(*_PROFILE_COLUMNS).where(User.id.in_(ids)),
            )).all()
        return [_to_profile(row) for row in rows]

    async def search(
        self, query: str, exclude: UserId, limit: int,
    ) -> list[PublicProfile]:
        pattern = f"%{_escape_like(query)}%"
        async with self._manager.session() as db:
            rows = (await db.execute(
                select(*_PROFILE_COLUMNS)
                .where(
                    User.id != exclude,
                    or_(
                        User.display_name.ilike(pattern, escape="\\"),
                        User.external_handle.ilike(pattern, escape="\\"),
                    ),
                )
                .order_by(User.display_name)
                .limit(limit),
            )).all()
        return [_to_profile(row) for row in rows]

    def _insert(self):
        if self._manager.dialect_name == "postgresql":
            return pg_insert(_relations)
        return sqlite_insert(_relations)


def _to_profile(row) -> PublicProfile:
    return PublicProfile(
        id=UserId(row.id),
        display_name=row.display_name,
        external_handle=row.external_handle,
    )


def get_identity_store() -> SqlIdentityStore:
    """FastAPI dependency — store bound to the process-wide db_manager."""
    return SqlIdentityStore(get_db_manager())
