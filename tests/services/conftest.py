"""Service test fixtures — a RelationshipService bound to the in-memory store.

Invariants:
    - Service timeout is short so timeout tests run fast
"""

import pytest

from app.services.relationship_service import RelationshipService


@pytest.fixture
def service(store):
    return RelationshipService(store, timeout_seconds=0.5)
