"""Relationship Status — derives the viewer-relative status of a candidate.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Precedence: friends > request_sent > request_received > none
    - Only the viewer's own record is consulted; a half-applied edge on the
      candidate's record is invisible here

Design Decisions:
    - friends wins over pending states: tie-break against a transient double state
    - Annotator reuses derive_status instead of re-implementing the checks
"""

from dataclasses import dataclass

from app.core.domain_types import (
    IdentityRecord, PublicProfile, RelationshipStatus, UserId,
)


def derive_status(viewer: IdentityRecord, candidate: UserId) -> RelationshipStatus:
    """Status of `candidate` as seen from `viewer`'s three relation sets."""
    if candidate in viewer.friends:
        return RelationshipStatus.FRIENDS
    if candidate in viewer.outgoing_requests:
        return RelationshipStatus.REQUEST_SENT
    if candidate in viewer.incoming_requests:
        return RelationshipStatus.REQUEST_RECEIVED
    return RelationshipStatus.NONE


@dataclass(frozen=True)
class AnnotatedProfile:
    """Public profile plus the viewer-relative relationship status."""
    profile: PublicProfile
    relationship_status: RelationshipStatus


def annotate_candidates(
    viewer: IdentityRecord, candidates: list[PublicProfile],
) -> list[AnnotatedProfile]:
    """Attach derive_status to each candidate, preserving input order."""
    return [
        AnnotatedProfile(c, derive_status(viewer, c.id)) for c in candidates
    ]


def sort_profiles(profiles: list[PublicProfile]) -> list[PublicProfile]:
    """Stable listing order: display name, case-insensitive, then id."""
    return sorted(profiles, key=lambda p: (p.display_name.casefold(), str(p.id)))


def pending_asymmetry(
    principal: IdentityRecord, requester: IdentityRecord,
) -> dict | None:
    """Describe a broken incoming/outgoing pair, or None when both sides agree.

    Used for logging when accept finds no matching request.
    """
    has_incoming = requester.id in principal.incoming_requests
    has_outgoing = principal.id in requester.outgoing_requests
    if has_incoming and has_outgoing:
        return None
    return {
        "principal_has_incoming": has_incoming,
        "requester_has_outgoing": has_outgoing,
    }


def friendship_recorded(a: IdentityRecord, b: IdentityRecord) -> bool:
    """True if either record already lists the other as a friend."""
    return b.id in a.friends or a.id in b.friends
