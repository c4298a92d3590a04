"""ORM Models — SQLAlchemy declarative models for identities and their relation sets.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the aggregate root; UserRelation rows are owned by exactly one user

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete for create_all
      and alembic autogenerate
"""

from app.models.user import User  # noqa: F401
from app.models.user_relation import UserRelation  # noqa: F401
