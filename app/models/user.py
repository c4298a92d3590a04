"""User ORM — the identity aggregate root that owns three relation sets.

Invariants:
    - id is UUID primary key
    - display_name is non-nullable; external_handle (e.g. GitHub username) optional
    - password_hash never leaves the store: PublicProfile projects it away
    - Relation sets live in user_relations, one row per member

Design Decisions:
    - Credentials columns kept on the row the login flow writes; this service only reads them
    - No ORM relationship to user_relations: the identity store reads and writes
      relation rows with Core statements; deleting a user cascades at the FK
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    """Identity aggregate root — owns friends and pending request sets."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True,
    )
    display_name: Mapped[str] = mapped_column(
        String(200), nullable=False, index=True,
    )
    external_handle: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
