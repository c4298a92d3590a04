"""Root conftest — shared test configuration and identity fixtures.

Invariants:
    - Tests never touch a real database
    - Every test gets a fresh in-memory store with alice, bob and carol
      and no relations between them
"""

import os
from dataclasses import dataclass

import pytest

# Ensure tests never touch a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")

from app.core.domain_types import UserId  # noqa: E402

from tests.services.fake_identity_store import InMemoryIdentityStore  # noqa: E402


@dataclass
class Users:
    alice: UserId
    bob: UserId
    carol: UserId


@pytest.fixture
def store():
    return InMemoryIdentityStore()


@pytest.fixture
def users(store):
    return Users(
        alice=store.add_user("Alice", "alice-gh"),
        bob=store.add_user("Bob"),
        carol=store.add_user("carol", "cdev"),
    )
