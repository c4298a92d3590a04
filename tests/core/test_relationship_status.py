"""Relationship Status — pure derivation, annotation, ordering, and asymmetry.

Invariants:
    - friends > request_sent > request_received > none
    - Annotation preserves the input order of candidates
    - Listing order is case-insensitive by display name, id breaks ties
"""

import uuid

from app.core.domain_types import (
    IdentityRecord, PublicProfile, RelationshipStatus, UserId,
)
from app.core.relationship_status import (
    annotate_candidates,
    derive_status,
    friendship_recorded,
    pending_asymmetry,
    sort_profiles,
)


def _uid() -> UserId:
    return UserId(uuid.uuid4())


def _record(user_id=None, name="Viewer", **sets) -> IdentityRecord:
    return IdentityRecord(
        id=user_id or _uid(),
        display_name=name,
        **{k: frozenset(v) for k, v in sets.items()},
    )


def test_derive_status_none_for_stranger():
    assert derive_status(_record(), _uid()) is RelationshipStatus.NONE


def test_derive_status_each_set():
    a, b, c = _uid(), _uid(), _uid()
    viewer = _record(friends={a}, outgoing_requests={b}, incoming_requests={c})

    assert derive_status(viewer, a) is RelationshipStatus.FRIENDS
    assert derive_status(viewer, b) is RelationshipStatus.REQUEST_SENT
    assert derive_status(viewer, c) is RelationshipStatus.REQUEST_RECEIVED


def test_derive_status_precedence():
    x = _uid()
    assert derive_status(
        _record(friends={x}, outgoing_requests={x}, incoming_requests={x}), x,
    ) is RelationshipStatus.FRIENDS
    assert derive_status(
        _record(outgoing_requests={x}, incoming_requests={x}), x,
    ) is RelationshipStatus.REQUEST_SENT


def test_status_serializes_as_wire_string():
    assert RelationshipStatus.REQUEST_RECEIVED.value == "request_received"


def test_annotate_preserves_order():
    a, b = _uid(), _uid()
    viewer = _record(incoming_requests={b})
    candidates = [PublicProfile(b, "Zed"), PublicProfile(a, "Amy")]

    annotated = annotate_candidates(viewer, candidates)

    assert [x.profile.id for x in annotated] == [b, a]
    assert [x.relationship_status for x in annotated] == [
        RelationshipStatus.REQUEST_RECEIVED, RelationshipStatus.NONE,
    ]


def test_annotate_empty():
    assert annotate_candidates(_record(), []) == []


def test_sort_profiles_case_insensitive():
    profiles = [
        PublicProfile(_uid(), "bob"),
        PublicProfile(_uid(), "Alice"),
        PublicProfile(_uid(), "Carol"),
    ]
    assert [p.display_name for p in sort_profiles(profiles)] == ["Alice", "bob", "Carol"]


def test_sort_profiles_ties_broken_by_id():
    low = UserId(uuid.UUID(int=1))
    high = UserId(uuid.UUID(int=2))
    ordered = sort_profiles([PublicProfile(high, "Sam"), PublicProfile(low, "sam")])
    assert [p.id for p in ordered] == [low, high]


def test_pending_asymmetry_none_when_consistent():
    p, r = _uid(), _uid()
    principal = _record(p, incoming_requests={r})
    requester = _record(r, outgoing_requests={p})
    assert pending_asymmetry(principal, requester) is None


def test_pending_asymmetry_reports_missing_sides():
    p, r = _uid(), _uid()
    principal = _record(p)
    requester = _record(r, outgoing_requests={p})

    assert pending_asymmetry(principal, requester) == {
        "principal_has_incoming": False,
        "requester_has_outgoing": True,
    }


def test_friendship_recorded_on_either_side():
    a, b = _uid(), _uid()
    assert friendship_recorded(_record(a, friends={b}), _record(b))
    assert friendship_recorded(_record(a), _record(b, friends={a}))
    assert not friendship_recorded(_record(a), _record(b))
