"""
Follow requests domain — pure business logic (zero FastAPI imports).

Lifecycle:
  pending -> approved   target approves; the follow edge is created in the
                        same SAVEPOINT as the status change
  pending -> rejected   target rejects; no edge
  pending -> cancelled  requester withdraws, or a block between the pair lands
  pending -> expired    REQUEST_TTL passed; written lazily when the requester
                        files a new request for the same target

A pending row past its expires_at is treated as absent everywhere: lookups,
lists and transitions only see live requests.

Transitions are compare-and-set updates guarded on status = 'pending', so two
concurrent approvals of one request cannot both create an edge, and a request
that already left 'pending' reads as not found.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from socialgraph.exceptions import (
    AlreadyFollowingError,
    AuthorizationError,
    BlockedError,
    ConflictError,
    FollowRequestAlreadyPending,
    FollowRequestNotFound,
    NotFoundError,
    SelfReferenceError,
    ValidationError,
)
from socialgraph.follow_requests.constants import (
    MESSAGE_MAX_LENGTH,
    MUTUAL_FOLLOWERS_SHOWN,
    FollowRequestStatus,
)
from socialgraph.follow_requests.models import FollowRequest
from socialgraph.relationships import service as rel_svc
from socialgraph.relationships.models import FollowEdge
from socialgraph.users.models import User

logger = logging.getLogger(__name__)

_ITEM_ERRORS = (ValidationError, AuthorizationError, NotFoundError, ConflictError)


@dataclass(frozen=True)
class BulkItemResult:
    request_id: uuid.UUID
    ok: bool
    error: str | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _live() -> tuple:
    """Conditions selecting requests that are still pending."""
    return (
        FollowRequest.status == FollowRequestStatus.PENDING,
        FollowRequest.expires_at > _now(),
    )


async def _transition(
    session: AsyncSession,
    status: FollowRequestStatus,
    *conditions,
) -> int:
    """Move every live request matching `conditions` to `status`; returns the row count."""
    result = await session.execute(
        sa.update(FollowRequest)
        .where(*_live(), *conditions)
        .values(status=status, updated_at=_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def _expire_stale(
    session: AsyncSession,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
) -> int:
    """Mark lapsed pending requests for the pair expired, freeing the pending slot."""
    result = await session.execute(
        sa.update(FollowRequest)
        .where(
            FollowRequest.requester_id == requester_id,
            FollowRequest.target_id == target_id,
            FollowRequest.status == FollowRequestStatus.PENDING,
            FollowRequest.expires_at <= _now(),
        )
        .values(status=FollowRequestStatus.EXPIRED, updated_at=_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ── Lookups ────────────────────────────────────────────────────────────────────

async def get_pending(
    session: AsyncSession,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
) -> FollowRequest | None:
    result = await session.execute(
        sa.select(FollowRequest).where(
            FollowRequest.requester_id == requester_id,
            FollowRequest.target_id == target_id,
            *_live(),
        )
    )
    return result.scalar_one_or_none()


async def _get_pending_by_id(
    session: AsyncSession,
    request_id: uuid.UUID,
    target_id: uuid.UUID | None,
) -> FollowRequest:
    result = await session.execute(
        sa.select(FollowRequest)
        .where(FollowRequest.id == request_id, *_live())
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise FollowRequestNotFound()
    # Requests addressed to someone else are indistinguishable from missing ones
    if target_id is not None and request.target_id != target_id:
        raise FollowRequestNotFound()
    return request


# ── Create ─────────────────────────────────────────────────────────────────────

async def create_request(
    session: AsyncSession,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
    *,
    message: str | None = None,
) -> FollowRequest:
    if requester_id == target_id:
        raise SelfReferenceError("You cannot send a follow request to yourself.")
    if message is not None and len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message must be at most {MESSAGE_MAX_LENGTH} characters.")
    if await rel_svc.is_blocked(session, requester_id, target_id):
        raise BlockedError()
    if await rel_svc.is_following(session, requester_id, target_id):
        raise AlreadyFollowingError()
    if await get_pending(session, requester_id, target_id) is not None:
        raise FollowRequestAlreadyPending()

    request = FollowRequest(
        requester_id=requester_id,
        target_id=target_id,
        status=FollowRequestStatus.PENDING,
        message=message,
    )
    try:
        async with session.begin_nested():
            await rel_svc.lock_pair(session, requester_id, target_id)
            if await rel_svc.is_blocked(session, requester_id, target_id):
                raise BlockedError()
            await _expire_stale(session, requester_id, target_id)
            session.add(request)
            await session.flush()
    except IntegrityError:
        # Lost the race against a concurrent request for the same pair
        raise FollowRequestAlreadyPending() from None
    return request


# ── Transitions ────────────────────────────────────────────────────────────────

async def approve(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    target_id: uuid.UUID | None = None,
) -> FollowRequest:
    """
    Approve a pending request and create the follow edge atomically.

    target_id, when given, must be the request's target (the caller).
    If the edge already exists the request is still marked approved and the
    counters are left alone.  The pair lock is taken before the status change,
    so a concurrent block either completes first (and this raises
    BlockedError) or waits until the approval is done and then removes the
    new edge.
    """
    request = await _get_pending_by_id(session, request_id, target_id)
    requester_id, owner_id = request.requester_id, request.target_id

    async with session.begin_nested():
        await rel_svc.lock_pair(session, requester_id, owner_id)
        if await rel_svc.is_blocked(session, requester_id, owner_id):
            raise BlockedError()
        if not await _transition(
            session, FollowRequestStatus.APPROVED, FollowRequest.id == request_id
        ):
            raise FollowRequestNotFound()
        try:
            await rel_svc.create_follow_edge(session, requester_id, owner_id)
        except AlreadyFollowingError:
            logger.info(
                "Follow request %s approved but %s already follows %s",
                request_id, requester_id, owner_id,
            )

    await session.refresh(request)
    logger.info("Follow request %s approved (%s -> %s)", request_id, requester_id, owner_id)
    return request

async def reject(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    target_id: uuid.UUID | None = None,
) -> FollowRequest:
    request = await _get_pending_by_id(session, request_id, target_id)
    if not await _transition(
        session, FollowRequestStatus.REJECTED, FollowRequest.id == request_id
    ):
        raise FollowRequestNotFound()
    await session.refresh(request)
    logger.info("Follow request %s rejected", request_id)
    return request


async def cancel(
    session: AsyncSession,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
) -> bool:
    """Withdraw the caller's pending request to target_id. False if none was pending."""
    cancelled = await _transition(
        session,
        FollowRequestStatus.CANCELLED,
        FollowRequest.requester_id == requester_id,
        FollowRequest.target_id == target_id,
    )
    return cancelled > 0


async def cancel_pending_between(
    session: AsyncSession,
    a: uuid.UUID,
    b: uuid.UUID,
) -> int:
    """Cancel pending requests between a and b in both directions (used by block)."""
    return await _transition(
        session,
        FollowRequestStatus.CANCELLED,
        sa.or_(
            sa.and_(FollowRequest.requester_id == a, FollowRequest.target_id == b),
            sa.and_(FollowRequest.requester_id == b, FollowRequest.target_id == a),
        ),
    )


# ── Bulk ───────────────────────────────────────────────────────────────────────

async def _bulk(action, session: AsyncSession, request_ids, target_id) -> list[BulkItemResult]:
    """Apply `action` to each id; each item commits or fails on its own."""
    results: list[BulkItemResult] = []
    for request_id in dict.fromkeys(request_ids):
        try:
            await action(session, request_id, target_id=target_id)
        except _ITEM_ERRORS as exc:
            logger.warning("Bulk %s of request %s failed: %s", action.__name__, request_id, exc.detail)
            results.append(BulkItemResult(request_id=request_id, ok=False, error=exc.detail))
        else:
            results.append(BulkItemResult(request_id=request_id, ok=True))
    return results


async def bulk_approve(
    session: AsyncSession,
    request_ids: list[uuid.UUID],
    *,
    target_id: uuid.UUID | None = None,
) -> list[BulkItemResult]:
    return await _bulk(approve, session, request_ids, target_id)


async def bulk_reject(
    session: AsyncSession,
    request_ids: list[uuid.UUID],
    *,
    target_id: uuid.UUID | None = None,
) -> list[BulkItemResult]:
    return await _bulk(reject, session, request_ids, target_id)


async def approve_all_pending(session: AsyncSession, target_id: uuid.UUID) -> int:
    """Approve every pending request addressed to target_id. Returns how many succeeded."""
    result = await session.execute(
        sa.select(FollowRequest.id)
        .where(FollowRequest.target_id == target_id, *_live())
        .order_by(FollowRequest.created_at)
    )
    ids = list(result.scalars().all())
    if not ids:
        return 0
    results = await bulk_approve(session, ids, target_id=target_id)
    return sum(1 for r in results if r.ok)


# ── Lists ──────────────────────────────────────────────────────────────────────

async def list_requests(
    session: AsyncSession,
    target_id: uuid.UUID,
    *,
    page: int,
    limit: int,
) -> tuple[list[tuple[FollowRequest, User]], int]:
    """Pending requests addressed to target_id with their requesters, newest first."""
    where = (FollowRequest.target_id == target_id, *_live())
    total = await session.scalar(
        sa.select(sa.func.count()).select_from(FollowRequest).where(*where)
    )
    rows = await session.execute(
        sa.select(FollowRequest, User)
        .join(User, User.id == FollowRequest.requester_id)
        .where(*where)
        .order_by(FollowRequest.created_at.desc(), FollowRequest.id)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return [tuple(r) for r in rows.all()], total


async def list_sent_requests(
    session: AsyncSession,
    requester_id: uuid.UUID,
    *,
    page: int,
    limit: int,
) -> tuple[list[tuple[FollowRequest, User]], int]:
    """Pending requests sent by requester_id with their targets, newest first."""
    where = (FollowRequest.requester_id == requester_id, *_live())
    total = await session.scalar(
        sa.select(sa.func.count()).select_from(FollowRequest).where(*where)
    )
    rows = await session.execute(
        sa.select(FollowRequest, User)
        .join(User, User.id == FollowRequest.target_id)
        .where(*where)
        .order_by(FollowRequest.created_at.desc(), FollowRequest.id)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return [tuple(r) for r in rows.all()], total


async def mutual_followers(
    session: AsyncSession,
    target_id: uuid.UUID,
    requester_ids: list[uuid.UUID],
    *,
    limit: int = MUTUAL_FOLLOWERS_SHOWN,
) -> dict[uuid.UUID, list[User]]:
    """
    For each requester, up to `limit` active users who follow both the
    requester and target_id, ordered by username.  One query for the page.
    """
    if not requester_ids:
        return {}
    of_target = aliased(FollowEdge)
    of_requester = aliased(FollowEdge)
    ranked = (
        sa.select(
            of_requester.following_id.label("requester_id"),
            of_requester.follower_id.label("user_id"),
            sa.func.row_number()
            .over(partition_by=of_requester.following_id, order_by=[User.username, User.id])
            .label("row_num"),
        )
        .select_from(of_requester)
        .join(of_target, of_target.follower_id == of_requester.follower_id)
        .join(User, User.id == of_requester.follower_id)
        .where(
            of_target.following_id == target_id,
            of_requester.following_id.in_(requester_ids),
            User.is_active.is_(True),
        )
        .subquery()
    )
    rows = await session.execute(
        sa.select(ranked.c.requester_id, User)
        .join(User, User.id == ranked.c.user_id)
        .where(ranked.c.row_num <= limit)
        .order_by(ranked.c.requester_id, ranked.c.row_num)
    )
    mutuals: dict[uuid.UUID, list[User]] = {rid: [] for rid in requester_ids}
    for requester_id, user in rows.all():
        mutuals[requester_id].append(user)
    return mutuals
