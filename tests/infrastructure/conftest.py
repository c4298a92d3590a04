"""Infrastructure fixtures — file-backed SQLite database per test.

Invariants:
    - File-backed (not :memory:): concurrent sessions each get their own
      connection and still see the same database
    - Schema created from Base.metadata, disposed after each test
"""

import uuid

import pytest

from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.identity_store import SqlIdentityStore
from app.models.user import User


@pytest.fixture
async def manager(tmp_path):
    mgr = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path}/store.db")
    async with mgr.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield mgr
    await mgr.dispose()


@pytest.fixture
def sql_store(manager):
    return SqlIdentityStore(manager)


@pytest.fixture
def seed_user(manager):
    async def _seed(display_name: str, external_handle: str | None = None):
        user = User(
            id=uuid.uuid4(),
            email=f"{uuid.uuid4().hex[:8]}@example.com",
            display_name=display_name,
            external_handle=external_handle,
            password_hash="not-a-real-hash",
        )
        async with manager.session() as db:
            db.add(user)
            await db.commit()
        return user.id
    return _seed
