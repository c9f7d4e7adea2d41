"""
Relationships domain — pure business logic (zero FastAPI imports).

State rules:
  follow:   cannot follow self, cannot follow across a block (either direction),
            max FOLLOW_LIMIT following; approval-requiring targets get a
            follow request instead of an edge
  unfollow: the edge must exist
  block:    cannot block self; removes follow edges in both directions and
            cancels pending follow requests in both directions
  unblock:  reports False when there was nothing to remove

Every write touching more than one row (edge + counters, block + cascade)
runs inside one SAVEPOINT: it is applied completely or not at all.  Counter
changes are SQL expressions (col = col + 1), issued only after the edge
write succeeded, so racing requests cannot double-count.

Follow-edge creation and blocking first lock both user rows (lock_pair), and
the block check is repeated under that lock: a follow and a block on the same
pair never both commit.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.exceptions import (
    AlreadyBlockedError,
    AlreadyFollowingError,
    BlockedError,
    FollowLimitExceeded,
    FollowRequestAlreadyPending,
    FollowRequestsDisabled,
    NotFollowingError,
    SelfReferenceError,
)
from socialgraph.follow_requests import service as request_svc
from socialgraph.privacy import service as privacy_svc
from socialgraph.relationships.constants import FOLLOW_LIMIT, BlockReason
from socialgraph.relationships.models import BlockEdge, FollowEdge
from socialgraph.users.models import User
from socialgraph.users.service import get_active_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Relationship:
    """Edge state between a subject and another user, seen from the subject."""

    is_following: bool = False
    is_followed_by: bool = False
    is_blocking: bool = False
    is_blocked_by: bool = False

    @property
    def is_mutual(self) -> bool:
        return self.is_following and self.is_followed_by

    @property
    def any_block(self) -> bool:
        return self.is_blocking or self.is_blocked_by


@dataclass(frozen=True)
class FollowOutcome:
    """Either the new counters, or the id of the follow request that was filed."""

    pending: bool
    following_count: int | None = None
    target_followers_count: int | None = None
    request_id: uuid.UUID | None = None


# ── Internal helpers ───────────────────────────────────────────────────────────

def _follow_clause(follower_id: uuid.UUID, following_id: uuid.UUID):
    return sa.exists().where(
        FollowEdge.follower_id == follower_id,
        FollowEdge.following_id == following_id,
    )


def _block_clause(blocker_id: uuid.UUID, blocked_id: uuid.UUID):
    return sa.exists().where(
        BlockEdge.blocker_id == blocker_id,
        BlockEdge.blocked_id == blocked_id,
    )


def _pair_filter(model, left, right, a: uuid.UUID, b: uuid.UUID):
    """Match rows of `model` linking a and b in either direction."""
    return sa.or_(
        sa.and_(getattr(model, left) == a, getattr(model, right) == b),
        sa.and_(getattr(model, left) == b, getattr(model, right) == a),
    )


async def _bump(session: AsyncSession, user_id: uuid.UUID, column: str, delta: int) -> None:
    """Atomically add `delta` to a counter column, never going below zero."""
    col = getattr(User, column)
    value = col + delta if delta >= 0 else sa.case((col + delta < 0, 0), else_=col + delta)
    await session.execute(
        sa.update(User)
        .where(User.id == user_id)
        .values({column: value})
        .execution_options(synchronize_session="fetch")
    )


async def _pair_counts(
    session: AsyncSession, follower_id: uuid.UUID, following_id: uuid.UUID
) -> tuple[int, int]:
    """Return (follower.following_count, following.followers_count)."""
    following_count = await session.scalar(
        sa.select(User.following_count).where(User.id == follower_id)
    )
    followers_count = await session.scalar(
        sa.select(User.followers_count).where(User.id == following_id)
    )
    return following_count or 0, followers_count or 0


async def _delete_follow_edges(session: AsyncSession, condition) -> int:
    """Delete matching follow edges one by one, decrementing counters per removed edge.

    Deleting by primary key and checking the rowcount means an edge removed
    concurrently by another transaction is never decremented twice.
    """
    rows = (
        await session.execute(
            sa.select(FollowEdge.id, FollowEdge.follower_id, FollowEdge.following_id).where(condition)
        )
    ).all()
    removed = 0
    for edge_id, follower_id, following_id in rows:
        result = await session.execute(
            sa.delete(FollowEdge)
            .where(FollowEdge.id == edge_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await _bump(session, follower_id, "following_count", -1)
            await _bump(session, following_id, "followers_count", -1)
            removed += 1
    return removed


async def lock_pair(session: AsyncSession, a: uuid.UUID, b: uuid.UUID) -> None:
    """Row-lock both users in id order for the rest of the transaction.

    Every write that creates a follow edge or a block takes this lock first,
    so a follow and a block on the same pair are serialized.  SQLite renders
    no FOR UPDATE; it serializes writers on its own.
    """
    await session.execute(
        sa.select(User.id)
        .where(User.id.in_([a, b]))
        .order_by(User.id)
        .with_for_update()
    )


# ── Lookups ────────────────────────────────────────────────────────────────────

async def is_following(
    session: AsyncSession, follower_id: uuid.UUID, following_id: uuid.UUID
) -> bool:
    result = await session.execute(sa.select(_follow_clause(follower_id, following_id)))
    return result.scalar_one()


async def has_blocked(
    session: AsyncSession, blocker_id: uuid.UUID, blocked_id: uuid.UUID
) -> bool:
    """True only if blocker_id blocked blocked_id (directional)."""
    result = await session.execute(sa.select(_block_clause(blocker_id, blocked_id)))
    return result.scalar_one()


async def is_blocked(session: AsyncSession, a: uuid.UUID, b: uuid.UUID) -> bool:
    """True if either user has blocked the other (symmetric)."""
    result = await session.execute(
        sa.select(sa.or_(_block_clause(a, b), _block_clause(b, a)))
    )
    return bool(result.scalar_one())


async def get_relationship(
    session: AsyncSession, subject_id: uuid.UUID, other_id: uuid.UUID
) -> Relationship:
    """All four edge lookups in a single statement, so they share one snapshot."""
    if subject_id == other_id:
        return Relationship()
    row = (
        await session.execute(
            sa.select(
                _follow_clause(subject_id, other_id).label("is_following"),
                _follow_clause(other_id, subject_id).label("is_followed_by"),
                _block_clause(subject_id, other_id).label("is_blocking"),
                _block_clause(other_id, subject_id).label("is_blocked_by"),
            )
        )
    ).one()
    return Relationship(
        is_following=bool(row.is_following),
        is_followed_by=bool(row.is_followed_by),
        is_blocking=bool(row.is_blocking),
        is_blocked_by=bool(row.is_blocked_by),
    )


# ── Follow ─────────────────────────────────────────────────────────────────────

async def create_follow_edge(
    session: AsyncSession,
    follower_id: uuid.UUID,
    following_id: uuid.UUID,
) -> tuple[int, int]:
    """
    Insert the edge and increment both counters as one unit.

    This is the edge-creation path shared by follow_user and request approval;
    it performs no approval checks.  The block check is repeated here under
    the pair lock, so a block committed after the caller's own check still
    wins.  The unique constraint on the pair decides concurrent inserts: the
    loser gets AlreadyFollowingError and its counters are never touched.

    Returns (follower.following_count, following.followers_count).
    """
    try:
        async with session.begin_nested():
            await lock_pair(session, follower_id, following_id)
            if await is_blocked(session, follower_id, following_id):
                raise BlockedError()
            session.add(FollowEdge(follower_id=follower_id, following_id=following_id))
            await session.flush()
            await _bump(session, follower_id, "following_count", 1)
            await _bump(session, following_id, "followers_count", 1)
    except IntegrityError:
        raise AlreadyFollowingError() from None
    return await _pair_counts(session, follower_id, following_id)


async def follow_user(
    session: AsyncSession,
    follower_id: uuid.UUID,
    target_id: uuid.UUID,
    *,
    message: str | None = None,
) -> FollowOutcome:
    if follower_id == target_id:
        raise SelfReferenceError("You cannot follow yourself.")
    follower = await get_active_user(session, follower_id)
    await get_active_user(session, target_id)
    if await is_blocked(session, follower_id, target_id):
        raise BlockedError()
    if await is_following(session, follower_id, target_id):
        raise AlreadyFollowingError()
    if await request_svc.get_pending(session, follower_id, target_id) is not None:
        raise FollowRequestAlreadyPending()
    if follower.following_count >= FOLLOW_LIMIT:
        raise FollowLimitExceeded(FOLLOW_LIMIT)

    privacy = await privacy_svc.get_settings(session, target_id)
    if privacy.require_follow_approval and str(follower_id) not in privacy.auto_approve_followers:
        if not privacy.allow_follow_requests:
            raise FollowRequestsDisabled()
        request = await request_svc.create_request(
            session, follower_id, target_id, message=message
        )
        logger.info("Follow %s -> %s pending approval (request %s)", follower_id, target_id, request.id)
        return FollowOutcome(pending=True, request_id=request.id)

    following_count, followers_count = await create_follow_edge(session, follower_id, target_id)
    logger.info("User %s followed %s", follower_id, target_id)
    return FollowOutcome(
        pending=False,
        following_count=following_count,
        target_followers_count=followers_count,
    )


async def unfollow_user(
    session: AsyncSession,
    follower_id: uuid.UUID,
    target_id: uuid.UUID,
) -> tuple[int, int]:
    """Remove the edge and decrement both counters. Returns the new counts."""
    if follower_id == target_id:
        raise SelfReferenceError("You cannot unfollow yourself.")
    async with session.begin_nested():
        removed = await _delete_follow_edges(
            session,
            sa.and_(FollowEdge.follower_id == follower_id, FollowEdge.following_id == target_id),
        )
        if not removed:
            raise NotFollowingError()
    logger.info("User %s unfollowed %s", follower_id, target_id)
    return await _pair_counts(session, follower_id, target_id)


# ── Block ──────────────────────────────────────────────────────────────────────

async def block_user(
    session: AsyncSession,
    blocker_id: uuid.UUID,
    target_id: uuid.UUID,
    reason: BlockReason | None = None,
    report_id: uuid.UUID | None = None,
) -> BlockEdge:
    if blocker_id == target_id:
        raise SelfReferenceError("You cannot block yourself.")
    await get_active_user(session, target_id)
    if await has_blocked(session, blocker_id, target_id):
        raise AlreadyBlockedError()

    edge = BlockEdge(
        blocker_id=blocker_id,
        blocked_id=target_id,
        reason=BlockReason(reason) if reason is not None else None,
        report_id=report_id,
    )
    try:
        async with session.begin_nested():
            await lock_pair(session, blocker_id, target_id)
            session.add(edge)
            await session.flush()
            removed = await _delete_follow_edges(
                session,
                _pair_filter(FollowEdge, "follower_id", "following_id", blocker_id, target_id),
            )
            cancelled = await request_svc.cancel_pending_between(session, blocker_id, target_id)
    except IntegrityError:
        raise AlreadyBlockedError() from None
    logger.info(
        "User %s blocked %s (removed %d follow edge(s), cancelled %d request(s))",
        blocker_id, target_id, removed, cancelled,
    )
    return edge


async def unblock_user(
    session: AsyncSession,
    blocker_id: uuid.UUID,
    target_id: uuid.UUID,
) -> bool:
    result = await session.execute(
        sa.delete(BlockEdge)
        .where(BlockEdge.blocker_id == blocker_id, BlockEdge.blocked_id == target_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


# ── Lists ──────────────────────────────────────────────────────────────────────

async def list_blocked(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    page: int,
    limit: int,
) -> tuple[list[tuple[BlockEdge, User]], int]:
    """Users that user_id has blocked, newest block first."""
    total = await session.scalar(
        sa.select(sa.func.count()).select_from(BlockEdge).where(BlockEdge.blocker_id == user_id)
    )
    rows = await session.execute(
        sa.select(BlockEdge, User)
        .join(User, User.id == BlockEdge.blocked_id)
        .where(BlockEdge.blocker_id == user_id)
        .order_by(BlockEdge.created_at.desc(), BlockEdge.id)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return [tuple(r) for r in rows.all()], total


async def list_blocked_by(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    page: int,
    limit: int,
) -> tuple[list[tuple[BlockEdge, User]], int]:
    """Users who have blocked user_id, newest block first."""
    total = await session.scalar(
        sa.select(sa.func.count()).select_from(BlockEdge).where(BlockEdge.blocked_id == user_id)
    )
    rows = await session.execute(
        sa.select(BlockEdge, User)
        .join(User, User.id == BlockEdge.blocker_id)
        .where(BlockEdge.blocked_id == user_id)
        .order_by(BlockEdge.created_at.desc(), BlockEdge.id)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return [tuple(r) for r in rows.all()], total


async def get_block_stats(session: AsyncSession, user_id: uuid.UUID) -> dict[str, int]:
    row = (
        await session.execute(
            sa.select(
                sa.select(sa.func.count())
                .select_from(BlockEdge)
                .where(BlockEdge.blocker_id == user_id)
                .scalar_subquery()
                .label("blocking"),
                sa.select(sa.func.count())
                .select_from(BlockEdge)
                .where(BlockEdge.blocked_id == user_id)
                .scalar_subquery()
                .label("blocked_by"),
            )
        )
    ).one()
    return {"blocking": row.blocking, "blocked_by": row.blocked_by}


async def _batch_followed_by(
    session: AsyncSession,
    viewer_id: uuid.UUID | None,
    target_ids: list[uuid.UUID],
) -> set[uuid.UUID]:
    """Return the subset of target_ids that viewer_id follows."""
    if viewer_id is None or not target_ids:
        return set()
    result = await session.execute(
        sa.select(FollowEdge.following_id).where(
            FollowEdge.follower_id == viewer_id,
            FollowEdge.following_id.in_(target_ids),
        )
    )
    return {row[0] for row in result.all()}


async def _list_edges(
    session: AsyncSession,
    *,
    anchor_column,
    other_column,
    user_id: uuid.UUID,
    viewer_id: uuid.UUID | None,
    page: int,
    limit: int,
) -> tuple[list[tuple[FollowEdge, User, bool]], int]:
    total = await session.scalar(
        sa.select(sa.func.count()).select_from(FollowEdge).where(anchor_column == user_id)
    )
    rows = (
        await session.execute(
            sa.select(FollowEdge, User)
            .join(User, User.id == other_column)
            .where(anchor_column == user_id)
            .order_by(FollowEdge.created_at.desc(), FollowEdge.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
    ).all()
    followed = await _batch_followed_by(session, viewer_id, [u.id for _, u in rows])
    return [(f, u, u.id in followed) for f, u in rows], total


async def list_following(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    viewer_id: uuid.UUID | None,
    page: int,
    limit: int,
) -> tuple[list[tuple[FollowEdge, User, bool]], int]:
    """
    Return (rows, total) where each row is (FollowEdge, User[following], is_followed_by_viewer).
    """
    return await _list_edges(
        session,
        anchor_column=FollowEdge.follower_id,
        other_column=FollowEdge.following_id,
        user_id=user_id,
        viewer_id=viewer_id,
        page=page,
        limit=limit,
    )


async def list_followers(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    viewer_id: uuid.UUID | None,
    page: int,
    limit: int,
) -> tuple[list[tuple[FollowEdge, User, bool]], int]:
    """
    Return (rows, total) where each row is (FollowEdge, User[follower], is_followed_by_viewer).
    """
    return await _list_edges(
        session,
        anchor_column=FollowEdge.following_id,
        other_column=FollowEdge.follower_id,
        user_id=user_id,
        viewer_id=viewer_id,
        page=page,
        limit=limit,
    )
