"""
Counter reconciler — recomputes followers_count / following_count from the
follow edges and repairs any drift.

Single-flight per user: an in-process set guards against overlapping runs in
this worker, and an optional Redis lock (SET NX EX) against other workers.
A run that cannot take the lock returns skipped=True instead of waiting.

When drift is found the user row is locked (SELECT ... FOR UPDATE) and the
edges are counted again before the write, so an edge write racing a repair
waits for it instead of having its counter change overwritten.

Repairs are idempotent ("set the counter to the computed value").  Drift that
survives MAX_REPAIR_ATTEMPTS repairs means something writes counters outside
the edge transaction: that raises ConsistencyError, logged at ERROR.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

import redis.asyncio as aioredis
import sqlalchemy as sa
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.exceptions import ConsistencyError, UserNotFound
from socialgraph.relationships.models import FollowEdge
from socialgraph.users.models import User

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "socialgraph:reconcile:lock:"
MAX_REPAIR_ATTEMPTS = 2
DEFAULT_LOCK_TTL_SECONDS = 60

_in_flight: set[uuid.UUID] = set()


@dataclass(frozen=True)
class ReconcileResult:
    user_id: uuid.UUID
    followers_before: int = 0
    followers_after: int = 0
    following_before: int = 0
    following_after: int = 0
    corrected: bool = False
    skipped: bool = False


@dataclass
class ReconcileSummary:
    checked: int = 0
    corrected: int = 0
    skipped: int = 0
    failed: list[uuid.UUID] = field(default_factory=list)


# ── Counts ─────────────────────────────────────────────────────────────────────

def _stored_counts_query(user_id: uuid.UUID, *, for_update: bool = False) -> sa.Select:
    query = sa.select(User.followers_count, User.following_count).where(User.id == user_id)
    return query.with_for_update() if for_update else query


async def _stored_counts(
    session: AsyncSession, user_id: uuid.UUID, *, for_update: bool = False
) -> tuple[int, int] | None:
    """Read the counters; with for_update, row-lock the user until the transaction ends."""
    row = (
        await session.execute(_stored_counts_query(user_id, for_update=for_update))
    ).one_or_none()
    return (row.followers_count, row.following_count) if row is not None else None


async def _actual_counts(session: AsyncSession, user_id: uuid.UUID) -> tuple[int, int]:
    row = (
        await session.execute(
            sa.select(
                sa.select(sa.func.count())
                .select_from(FollowEdge)
                .where(FollowEdge.following_id == user_id)
                .scalar_subquery()
                .label("followers"),
                sa.select(sa.func.count())
                .select_from(FollowEdge)
                .where(FollowEdge.follower_id == user_id)
                .scalar_subquery()
                .label("following"),
            )
        )
    ).one()
    return row.followers, row.following


async def _set_counts(
    session: AsyncSession, user_id: uuid.UUID, counts: tuple[int, int]
) -> None:
    await session.execute(
        sa.update(User)
        .where(User.id == user_id)
        .values(followers_count=counts[0], following_count=counts[1])
        .execution_options(synchronize_session="fetch")
    )


async def _reconcile(session: AsyncSession, user_id: uuid.UUID) -> ReconcileResult:
    stored = await _stored_counts(session, user_id)
    if stored is None:
        raise UserNotFound()
    actual = await _actual_counts(session, user_id)
    if stored != actual:
        # Follow and unfollow write this row, so once it is locked no edge
        # write can commit between the recount and the repair.
        stored = await _stored_counts(session, user_id, for_update=True)
        actual = await _actual_counts(session, user_id)
    before = stored

    attempts = 0
    while stored != actual:
        if attempts == MAX_REPAIR_ATTEMPTS:
            error = ConsistencyError(
                user_id,
                followers=(stored[0], actual[0]),
                following=(stored[1], actual[1]),
            )
            logger.error("%s", error)
            raise error
        attempts += 1
        logger.warning(
            "Counter drift for user %s (repair %d/%d): stored followers=%d following=%d, "
            "actual followers=%d following=%d",
            user_id, attempts, MAX_REPAIR_ATTEMPTS, stored[0], stored[1], actual[0], actual[1],
        )
        await _set_counts(session, user_id, actual)
        stored = await _stored_counts(session, user_id, for_update=True)
        actual = await _actual_counts(session, user_id)

    return ReconcileResult(
        user_id=user_id,
        followers_before=before[0],
        followers_after=stored[0],
        following_before=before[1],
        following_after=stored[1],
        corrected=attempts > 0,
    )


# ── Entry points ───────────────────────────────────────────────────────────────

async def _acquire_redis_lock(redis: aioredis.Redis, key: str, ttl: int) -> bool | None:
    """True if acquired, False if held elsewhere, None if Redis is unreachable."""
    try:
        return bool(await redis.set(key, "1", nx=True, ex=ttl))
    except RedisError as exc:
        logger.warning("Reconcile lock unavailable (%s); continuing with the local guard", exc)
        return None


async def reconcile_user(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    redis: aioredis.Redis | None = None,
    lock_ttl: int = DEFAULT_LOCK_TTL_SECONDS,
) -> ReconcileResult:
    if user_id in _in_flight:
        logger.info("Reconcile for %s already running in this process; skipped", user_id)
        return ReconcileResult(user_id=user_id, skipped=True)

    _in_flight.add(user_id)
    key = f"{LOCK_KEY_PREFIX}{user_id}"
    locked = None
    try:
        if redis is not None:
            locked = await _acquire_redis_lock(redis, key, lock_ttl)
            if locked is False:
                logger.info("Reconcile for %s already running elsewhere; skipped", user_id)
                return ReconcileResult(user_id=user_id, skipped=True)
        result = await _reconcile(session, user_id)
        if result.corrected:
            logger.info(
                "Reconciled %s: followers %d -> %d, following %d -> %d",
                user_id,
                result.followers_before, result.followers_after,
                result.following_before, result.following_after,
            )
        return result
    finally:
        if locked:
            try:
                await redis.delete(key)
            except RedisError as exc:
                logger.warning("Could not release reconcile lock %s: %s", key, exc)
        _in_flight.discard(user_id)


async def reconcile_all(
    session: AsyncSession,
    *,
    batch_size: int = 500,
    redis: aioredis.Redis | None = None,
    lock_ttl: int = DEFAULT_LOCK_TTL_SECONDS,
) -> ReconcileSummary:
    """Sweep every user in id order, batch_size ids per query (keyset pagination)."""
    summary = ReconcileSummary()
    last_id: uuid.UUID | None = None
    while True:
        query = sa.select(User.id).order_by(User.id).limit(batch_size)
        if last_id is not None:
            query = query.where(User.id > last_id)
        ids = list((await session.execute(query)).scalars().all())
        if not ids:
            break
        for user_id in ids:
            try:
                result = await reconcile_user(session, user_id, redis=redis, lock_ttl=lock_ttl)
            except ConsistencyError:
                # Already logged at ERROR; reported in the summary
                summary.failed.append(user_id)
                continue
            summary.checked += 1
            summary.corrected += int(result.corrected)
            summary.skipped += int(result.skipped)
        last_id = ids[-1]

    logger.info(
        "Reconcile sweep done: checked=%d corrected=%d skipped=%d failed=%d",
        summary.checked, summary.corrected, summary.skipped, len(summary.failed),
    )
    return summary
