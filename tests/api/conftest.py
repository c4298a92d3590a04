"""API test fixtures — ASGI client with the identity store swapped for the fake.

Invariants:
    - The app lifespan does not run: no database is initialized
    - get_identity_store is overridden for every test and restored afterwards
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.infrastructure.identity_store import get_identity_store
from app.main import app


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_identity_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Set the session cookie for the given user id."""
    def _login(user_id) -> AsyncClient:
        client.cookies.set("userId", str(user_id))
        return client
    return _login
