"""Users and relation sets — users, user_relations.

Revision ID: 001_users_relations
Revises: None
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_users_relations"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("external_handle", sa.String(100), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "user_relations",
        sa.Column(
            "owner_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("relation", sa.String(20), primary_key=True),
        sa.Column("member_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "relation IN ('friends', 'outgoing_requests', 'incoming_requests')",
            name="ck_user_relations_relation",
        ),
        sa.CheckConstraint("owner_id <> member_id", name="ck_user_relations_no_self"),
    )
    op.create_index("ix_users_display_name", "users", ["display_name"])
    op.create_index(
        "ix_user_relations_member", "user_relations", ["member_id", "relation"],
    )


def downgrade() -> None:
    op.drop_index("ix_user_relations_member", table_name="user_relations")
    op.drop_index("ix_users_display_name", table_name="users")
    op.drop_table("user_relations")
    op.drop_table("users")
