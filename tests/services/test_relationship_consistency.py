"""Relationship Consistency — partial failures, timeouts, and reconciliation.

Invariants:
    - Paired updates are issued concurrently (both in flight at once)
    - A store outage surfaces as INTERNAL_ERROR with an opaque message
    - A half-applied pair is logged with the side that applied
    - Retrying after an outage converges: missing halves are re-applied or
      residual requests are cleared; friend edges are never auto-healed
    - A timeout surfaces as INTERNAL_ERROR, never as a hang
"""

import asyncio
import logging

import pytest

from app.core.domain_types import RelationField, RelationshipStatus
from app.core.errors import (
    AlreadyFriendsConflictError,
    DatabaseError,
    InvalidRequestStateError,
    RelationshipOperationError,
    RequestAlreadySentError,
)

FRIENDS = RelationField.FRIENDS
OUTGOING = RelationField.OUTGOING_REQUESTS
INCOMING = RelationField.INCOMING_REQUESTS

SERVICE_LOGGER = "app.services.relationship_service"


async def test_paired_updates_run_concurrently(service, store, users):
    await service.request_connection(users.alice, users.bob)
    assert store.max_in_flight == 2


async def test_accept_updates_run_concurrently(service, store, users):
    await service.request_connection(users.alice, users.bob)
    store.max_in_flight = 0

    await service.accept_connection(users.bob, users.alice)

    assert store.max_in_flight == 2


# ==============================================================================
# Store outages
# ==============================================================================


async def test_outage_surfaces_as_opaque_internal_error(service, store, users):
    store.failing_owners = {users.alice, users.bob}

    with pytest.raises(RelationshipOperationError) as exc:
        await service.request_connection(users.alice, users.bob)

    assert exc.value.code == "INTERNAL_ERROR"
    assert exc.value.http_status == 500
    assert exc.value.message == "Failed to send friend request"
    assert "simulated" not in exc.value.message


async def test_half_applied_request_is_logged(service, store, users, caplog):
    store.failing_owners = {users.bob}

    with caplog.at_level(logging.ERROR, logger=SERVICE_LOGGER):
        with pytest.raises(RelationshipOperationError):
            await service.request_connection(users.alice, users.bob)

    partial = [r for r in caplog.records if r.getMessage() == "Paired update partially applied"]
    assert len(partial) == 1
    assert partial[0].principal_applied is True
    assert partial[0].counterparty_applied is False
    assert partial[0].operation == "request_connection"
    assert store.members(users.alice, OUTGOING) == {users.bob}
    assert store.members(users.bob, INCOMING) == set()


async def test_retry_after_half_applied_request_repairs_target(service, store, users):
    store.failing_owners = {users.bob}
    with pytest.raises(RelationshipOperationError):
        await service.request_connection(users.alice, users.bob)
    store.failing_owners = set()

    with pytest.raises(RequestAlreadySentError):
        await service.request_connection(users.alice, users.bob)

    assert store.members(users.bob, INCOMING) == {users.alice}
    await service.accept_connection(users.bob, users.alice)
    assert store.members(users.alice, FRIENDS) == {users.bob}


async def test_retry_during_outage_still_fails_opaquely(service, store, users):
    store.failing_owners = {users.bob}
    with pytest.raises(RelationshipOperationError):
        await service.request_connection(users.alice, users.bob)

    with pytest.raises(RelationshipOperationError):
        await service.request_connection(users.alice, users.bob)


async def test_half_applied_request_invisible_to_target(service, store, users):
    store.failing_owners = {users.bob}
    with pytest.raises(RelationshipOperationError):
        await service.request_connection(users.alice, users.bob)
    store.failing_owners = set()

    # Bob never received the request on his record
    assert await service.list_incoming(users.bob) == []
    assert (
        await service.relationship_status(users.alice, users.bob)
        is RelationshipStatus.REQUEST_SENT
    )


async def test_retried_accept_after_half_applied_accept(service, store, users):
    await service.request_connection(users.alice, users.bob)
    store.failing_owners = {users.alice}
    with pytest.raises(RelationshipOperationError):
        await service.accept_connection(users.bob, users.alice)
    store.failing_owners = set()
    assert store.members(users.bob, FRIENDS) == {users.alice}
    assert store.members(users.alice, OUTGOING) == {users.bob}
    before = store.snapshot()
    writes = len(store.writes)

    with pytest.raises(InvalidRequestStateError) as exc:
        await service.accept_connection(users.bob, users.alice)

    assert exc.value.http_status == 409
    # No pending pair left to accept: state left as found, nothing written
    assert store.snapshot() == before
    assert len(store.writes) == writes


async def test_accept_on_resolved_pair_clears_both_directions(service, store, users):
    store.link(users.alice, FRIENDS, users.bob)
    store.link(users.bob, FRIENDS, users.alice)
    store.link(users.alice, OUTGOING, users.bob)
    store.link(users.alice, INCOMING, users.bob)
    store.link(users.bob, INCOMING, users.alice)
    store.link(users.bob, OUTGOING, users.alice)

    with pytest.raises(AlreadyFriendsConflictError):
        await service.accept_connection(users.bob, users.alice)

    for owner in (users.alice, users.bob):
        assert store.members(owner, OUTGOING) == set()
        assert store.members(owner, INCOMING) == set()
        assert len(store.members(owner, FRIENDS)) == 1


async def test_accept_with_one_sided_request_logs_asymmetry(service, store, users, caplog):
    store.link(users.bob, INCOMING, users.alice)

    with caplog.at_level(logging.WARNING, logger=SERVICE_LOGGER):
        with pytest.raises(InvalidRequestStateError) as exc:
            await service.accept_connection(users.bob, users.alice)

    assert exc.value.code == "INVALID_REQUEST_STATE"
    record = next(r for r in caplog.records if hasattr(r, "principal_has_incoming"))
    assert record.principal_has_incoming is True
    assert record.requester_has_outgoing is False
    assert store.members(users.bob, INCOMING) == {users.alice}


async def test_one_sided_friend_edge_removed_cleanly(service, store, users):
    store.link(users.alice, FRIENDS, users.bob)

    await service.remove_connection(users.bob, users.alice)

    assert store.members(users.alice, FRIENDS) == set()


async def test_listing_outage_is_opaque(service, store, users):
    async def broken_get(user_id):
        raise OSError("connection reset")

    store.get = broken_get

    with pytest.raises(RelationshipOperationError) as exc:
        await service.list_friends(users.alice)
    assert exc.value.message == "Failed to fetch friend list"


# ==============================================================================
# Timeouts and races
# ==============================================================================


async def test_slow_store_times_out(service, store, users, caplog):
    store.write_delay = 1.0

    with caplog.at_level(logging.ERROR, logger=SERVICE_LOGGER):
        with pytest.raises(RelationshipOperationError) as exc:
            await service.remove_connection(users.alice, users.bob)

    assert exc.value.message == "Failed to remove friend"
    assert any("timed out" in r.getMessage() for r in caplog.records)


async def test_concurrent_duplicate_requests_record_one_edge(service, store, users):
    results = await asyncio.gather(
        service.request_connection(users.alice, users.bob),
        service.request_connection(users.alice, users.bob),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(failures) == 1
    assert isinstance(failures[0], RequestAlreadySentError)
    assert store.members(users.alice, OUTGOING) == {users.bob}
    assert store.members(users.bob, INCOMING) == {users.alice}


async def test_friends_status_wins_over_residual_requests(service, store, users):
    store.link(users.alice, FRIENDS, users.bob)
    store.link(users.alice, INCOMING, users.bob)

    status = await service.relationship_status(users.alice, users.bob)

    assert status is RelationshipStatus.FRIENDS


async def test_identity_lookup_outage_is_opaque(service, store, users):
    async def broken_get(user_id):
        raise DatabaseError("simulated outage", "execute")

    store.get = broken_get

    with pytest.raises(RelationshipOperationError) as exc:
        await service.principal_exists(users.alice)
    assert exc.value.message == "Failed to resolve session"
