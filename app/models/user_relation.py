"""UserRelation ORM — one member of one relation set of one owner.

Invariants:
    - (owner_id, relation, member_id) is the primary key: set semantics, no duplicates
    - relation is one of: friends, outgoing_requests, incoming_requests
    - Rows are only written through the identity store's set primitives

Design Decisions:
    - Row-per-member over an array column: add is INSERT ... ON CONFLICT DO NOTHING,
      remove is DELETE, both idempotent and atomic per row
    - member_id has no FK: a pull must succeed even if the member was deleted
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class UserRelation(Base):
    """Membership row of a user's relation set."""
    __tablename__ = "user_relations"
    __table_args__ = (
        CheckConstraint(
            "relation IN ('friends', 'outgoing_requests', 'incoming_requests')",
            name="ck_user_relations_relation",
        ),
        CheckConstraint("owner_id <> member_id", name="ck_user_relations_no_self"),
        Index("ix_user_relations_member", "member_id", "relation"),
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    relation: Mapped[str] = mapped_column(String(20), primary_key=True)
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
