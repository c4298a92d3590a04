"""Relationship Service — friend request/accept/reject/remove over two owner records.

Invariants:
    - Every edge is stored on BOTH endpoints; there is no cross-record transaction
    - Records are read fresh on each call (never cached), both in parallel
    - Paired writes: one per-record update per party, issued concurrently
    - reject/remove are idempotent: "nothing to change" is success
    - accept without a matching incoming/outgoing pair fails with
      InvalidRequestStateError and writes nothing
    - accept with a pending pair on an already-resolved friendship cleans the
      residual requests and reports AlreadyFriendsConflictError; friend edges
      are never auto-healed
    - Store failures and timeouts surface as RelationshipOperationError with an
      opaque message; the details are logged with operation context

Design Decisions:
    - Validation order in request_connection is first-match-wins:
      friends > outgoing > incoming
    - accept checks the pending-request pair BEFORE the existing-friendship
      check: cleanup writes only run when there is something pending to clear
    - Partial failure of a paired write is logged with the side that applied;
      the next read sees the asymmetry and the defensive paths take over
    - A repeated request whose first attempt only reached the principal's record
      re-applies the missing (idempotent) insert, then still reports
      RequestAlreadySentError
"""

import asyncio
import logging
from collections.abc import Awaitable
from contextlib import asynccontextmanager
from typing import Any

from app.core.domain_types import (
    IdentityRecord, PublicProfile, RelationField, RelationshipStatus, UserId,
    add, pull,
)
from app.core.errors import (
    AlreadyFriendsConflictError,
    AlreadyFriendsError,
    DatabaseError,
    ErrorContext,
    InvalidRequestStateError,
    InvalidSelfOperationError,
    ReciprocalRequestExistsError,
    RelationshipOperationError,
    RelationshipValidationError,
    RequestAlreadySentError,
    ResourceNotFoundError,
    UnauthenticatedError,
)
from app.core.relationship_status import (
    AnnotatedProfile,
    annotate_candidates,
    derive_status,
    friendship_recorded,
    pending_asymmetry,
    sort_profiles,
)
from app.core.repository_protocols import IdentityStore

logger = logging.getLogger(__name__)

FRIENDS = RelationField.FRIENDS
OUTGOING = RelationField.OUTGOING_REQUESTS
INCOMING = RelationField.INCOMING_REQUESTS

_FAILURE_MESSAGES = {
    "request_connection": "Failed to send friend request",
    "accept_connection": "Failed to accept friend request",
    "reject_connection": "Failed to reject friend request",
    "remove_connection": "Failed to remove friend",
    "list_friends": "Failed to fetch friend list",
    "list_incoming": "Failed to fetch incoming friend requests",
    "relationship_status": "Failed to fetch relationship status",
    "search_users": "Failed to search users",
    "principal_exists": "Failed to resolve session",
}


def _context(
    operation: str, principal: UserId, counterparty: UserId | None = None,
) -> ErrorContext:
    return ErrorContext(
        principal_id=str(principal),
        counterparty_id=str(counterparty) if counterparty else None,
        operation=operation,
    )


def _log_extra(ctx: ErrorContext, **fields: Any) -> dict:
    return {
        "principal_id": ctx.principal_id,
        "counterparty_id": ctx.counterparty_id,
        "operation": ctx.operation,
        **fields,
    }


class RelationshipService:
    """Transition service for the friend-relationship state machine."""

    def __init__(self, store: IdentityStore, timeout_seconds: float = 10.0):
        self._store = store
        self._timeout = timeout_seconds

    # ─── Transitions ────────────────────────────────────────────

    async def request_connection(self, principal: UserId, target: UserId) -> None:
        ctx = _context("request_connection", principal, target)
        if principal == target:
            raise InvalidSelfOperationError(
                "Cannot send a friend request to yourself", "target_user_id", ctx,
            )
        async with self._guard(ctx):
            me, other = await self._read_pair(principal, target, ctx)

            if target in me.friends:
                raise AlreadyFriendsError(ctx)
            if target in me.outgoing_requests:
                if principal not in other.incoming_requests:
                    logger.warning(
                        "Outgoing request missing on target record; re-applying",
                        extra=_log_extra(ctx),
                    )
                    await self._bounded(
                        self._store.add_to_set(target, INCOMING, principal),
                    )
                raise RequestAlreadySentError(ctx)
            if target in me.incoming_requests:
                raise ReciprocalRequestExistsError(ctx)

            added = await self._paired(
                ctx,
                self._store.add_to_set(principal, OUTGOING, target),
                self._store.add_to_set(target, INCOMING, principal),
            )

        if not any(added):
            logger.warning(
                "Friend request produced no changes; a concurrent request "
                "already recorded it",
                extra=_log_extra(ctx),
            )
            raise RequestAlreadySentError(ctx)
        logger.info("Friend request sent", extra=_log_extra(ctx))

    async def accept_connection(self, principal: UserId, requester: UserId) -> None:
        ctx = _context("accept_connection", principal, requester)
        if principal == requester:
            raise InvalidSelfOperationError(
                "Cannot accept a friend request from yourself",
                "requester_user_id", ctx,
            )
        async with self._guard(ctx):
            me, other = await self._read_pair(principal, requester, ctx)

            asymmetry = pending_asymmetry(me, other)
            if asymmetry:
                logger.warning(
                    "Friend request acceptance failed due to inconsistent "
                    "request state",
                    extra=_log_extra(ctx, **asymmetry),
                )
                raise InvalidRequestStateError(ctx)

            if friendship_recorded(me, other):
                logger.warning(
                    "Accept on users who are already friends; "
                    "clearing residual requests",
                    extra=_log_extra(
                        ctx,
                        principal_lists_friend=requester in me.friends,
                        requester_lists_friend=principal in other.friends,
                    ),
                )
                await self._clear_pending(ctx, principal, requester)
                raise AlreadyFriendsConflictError(ctx)

            await self._paired(
                ctx,
                self._store.apply(
                    principal, [pull(INCOMING, requester), add(FRIENDS, requester)],
                ),
                self._store.apply(
                    requester, [pull(OUTGOING, principal), add(FRIENDS, principal)],
                ),
            )
        logger.info("Friend request accepted", extra=_log_extra(ctx))

    async def reject_connection(self, principal: UserId, requester: UserId) -> None:
        ctx = _context("reject_connection", principal, requester)
        if principal == requester:
            raise InvalidSelfOperationError(
                "Cannot reject a friend request from yourself",
                "requester_user_id", ctx,
            )
        async with self._guard(ctx):
            removed = await self._paired(
                ctx,
                self._store.remove_from_set(principal, INCOMING, requester),
                self._store.remove_from_set(requester, OUTGOING, principal),
            )
        logger.info(
            "Friend request rejected",
            extra=_log_extra(ctx, changed=sum(bool(r) for r in removed)),
        )

    async def remove_connection(self, principal: UserId, friend: UserId) -> None:
        ctx = _context("remove_connection", principal, friend)
        if principal == friend:
            raise InvalidSelfOperationError(
                "You cannot remove yourself as a friend", "friend_user_id", ctx,
            )
        async with self._guard(ctx):
            removed = await self._paired(
                ctx,
                self._store.remove_from_set(principal, FRIENDS, friend),
                self._store.remove_from_set(friend, FRIENDS, principal),
            )
        if not any(removed):
            logger.info(
                "Remove friend made no changes; users were not friends",
                extra=_log_extra(ctx),
            )
        else:
            logger.info("Friend removed", extra=_log_extra(ctx))

    # ─── Reads ──────────────────────────────────────────────────

    async def principal_exists(self, principal: UserId) -> bool:
        """Identity check for the session resolver, under the same bounds."""
        ctx = _context("principal_exists", principal)
        async with self._guard(ctx):
            record = await self._bounded(self._store.get(principal))
        return record is not None

    async def list_friends(self, principal: UserId) -> list[PublicProfile]:
        return await self._list_members(principal, FRIENDS, "list_friends")

    async def list_incoming(self, principal: UserId) -> list[PublicProfile]:
        return await self._list_members(principal, INCOMING, "list_incoming")

    async def relationship_status(
        self, principal: UserId, candidate: UserId,
    ) -> RelationshipStatus:
        ctx = _context("relationship_status", principal, candidate)
        async with self._guard(ctx):
            me = await self._read_principal(principal, ctx)
        return derive_status(me, candidate)

    async def search_users(
        self, principal: UserId, query: str | None,
        min_length: int = 3, limit: int = 20,
    ) -> list[AnnotatedProfile]:
        ctx = _context("search_users", principal)
        term = (query or "").strip()
        if len(term) < min_length:
            raise RelationshipValidationError(
                f"Search query must be at least {min_length} characters",
                "username", ctx,
            )
        async with self._guard(ctx):
            me, found = await self._bounded(asyncio.gather(
                self._store.get(principal),
                self._store.search(term, exclude=principal, limit=limit),
            ))
        if me is None:
            raise UnauthenticatedError(ctx)
        logger.info(
            "User search completed",
            extra=_log_extra(ctx, result_count=len(found)),
        )
        return annotate_candidates(me, found)

    # ─── Internals ──────────────────────────────────────────────

    async def _list_members(
        self, principal: UserId, relation: RelationField, operation: str,
    ) -> list[PublicProfile]:
        ctx = _context(operation, principal)
        async with self._guard(ctx):
            me = await self._read_principal(principal, ctx)
            members = me.members(relation)
            if not members:
                return []
            profiles = await self._bounded(self._store.find_many(members))
        if len(profiles) < len(members):
            logger.info(
                f"{len(members) - len(profiles)} {relation.value} member(s) "
                f"no longer exist",
                extra=_log_extra(ctx),
            )
        return sort_profiles(profiles)

    async def _read_principal(
        self, principal: UserId, ctx: ErrorContext,
    ) -> IdentityRecord:
        me = await self._bounded(self._store.get(principal))
        if me is None:
            raise UnauthenticatedError(ctx)
        return me

    async def _read_pair(
        self, principal: UserId, counterparty: UserId, ctx: ErrorContext,
    ) -> tuple[IdentityRecord, IdentityRecord]:
        """Fetch both records fresh, in parallel."""
        me, other = await self._bounded(asyncio.gather(
            self._store.get(principal), self._store.get(counterparty),
        ))
        if me is None:
            logger.error(
                "Principal record missing after identity resolution",
                extra=_log_extra(ctx),
            )
            raise UnauthenticatedError(ctx)
        if other is None:
            raise ResourceNotFoundError("User", str(counterparty), ctx)
        return me, other

    async def _clear_pending(
        self, ctx: ErrorContext, principal: UserId, counterparty: UserId,
    ) -> None:
        """Pull every pending entry between the pair, in both directions."""
        await self._paired(
            ctx,
            self._store.apply(
                principal,
                [pull(INCOMING, counterparty), pull(OUTGOING, counterparty)],
            ),
            self._store.apply(
                counterparty,
                [pull(OUTGOING, principal), pull(INCOMING, principal)],
            ),
        )

    async def _paired(
        self, ctx: ErrorContext, principal_update: Awaitable, counterparty_update: Awaitable,
    ) -> list:
        """Run both per-record updates concurrently; report a half-applied pair."""
        results = await self._bounded(asyncio.gather(
            principal_update, counterparty_update, return_exceptions=True,
        ))
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            if len(failures) < len(results):
                logger.error(
                    "Paired update partially applied",
                    extra=_log_extra(
                        ctx,
                        principal_applied=not isinstance(results[0], BaseException),
                        counterparty_applied=not isinstance(results[1], BaseException),
                    ),
                )
            raise failures[0]
        return results

    async def _bounded(self, awaitable: Awaitable):
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    @asynccontextmanager
    async def _guard(self, ctx: ErrorContext):
        """Map store failures and timeouts to an opaque operation error."""
        try:
            yield
        except asyncio.TimeoutError:
            logger.error(
                f"{ctx.operation} timed out after {self._timeout}s; "
                f"outcome unknown",
                extra=_log_extra(ctx),
            )
            raise RelationshipOperationError(
                _FAILURE_MESSAGES[ctx.operation], ctx,
            )
        except (DatabaseError, OSError) as e:
            logger.error(
                f"{ctx.operation} failed: {e}",
                extra=_log_extra(ctx),
                exc_info=True,
            )
            raise RelationshipOperationError(
                _FAILURE_MESSAGES[ctx.operation], ctx,
            ) from e
