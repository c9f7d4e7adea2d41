import uuid

import pytest
import sqlalchemy as sa

from socialgraph.exceptions import (
    AlreadyBlockedError,
    AlreadyFollowingError,
    BlockedError,
    FollowLimitExceeded,
    FollowRequestAlreadyPending,
    FollowRequestsDisabled,
    NotFollowingError,
    SelfReferenceError,
    UserNotFound,
    ValidationError,
)
from socialgraph.follow_requests.constants import FollowRequestStatus
from socialgraph.follow_requests.models import FollowRequest
from socialgraph.privacy import service as privacy_svc
from socialgraph.relationships import service as svc
from socialgraph.relationships.constants import FOLLOW_LIMIT, BlockReason
from socialgraph.relationships.models import BlockEdge, FollowEdge
from socialgraph.users.models import User


async def _edge_count(session, model) -> int:
    return await session.scalar(sa.select(sa.func.count()).select_from(model))


# ── Follow ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_follow_public_account_creates_edge_and_counts(db_session, alice, bob, counts) -> None:
    outcome = await svc.follow_user(db_session, alice.id, bob.id)

    assert outcome.pending is False
    assert outcome.following_count == 1
    assert outcome.target_followers_count == 1
    assert await counts(alice.id) == (0, 1)
    assert await counts(bob.id) == (1, 0)

    rel = await svc.get_relationship(db_session, alice.id, bob.id)
    assert rel.is_following is True
    assert rel.is_followed_by is False
    assert rel.is_mutual is False


@pytest.mark.asyncio
async def test_follow_self_is_rejected_without_writes(db_session, alice, counts) -> None:
    with pytest.raises(SelfReferenceError) as exc_info:
        await svc.follow_user(db_session, alice.id, alice.id)

    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.status_code == 400
    assert await _edge_count(db_session, FollowEdge) == 0
    assert await counts(alice.id) == (0, 0)


@pytest.mark.asyncio
async def test_follow_twice_conflicts_and_keeps_counts(db_session, alice, bob, counts) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)

    with pytest.raises(AlreadyFollowingError):
        await svc.follow_user(db_session, alice.id, bob.id)

    assert await counts(bob.id) == (1, 0)
    assert await _edge_count(db_session, FollowEdge) == 1


@pytest.mark.asyncio
async def test_create_follow_edge_duplicate_maps_to_conflict(db_session, alice, bob, counts) -> None:
    await svc.create_follow_edge(db_session, alice.id, bob.id)

    # The unique constraint decides; counters of the losing insert are never applied
    with pytest.raises(AlreadyFollowingError):
        await svc.create_follow_edge(db_session, alice.id, bob.id)

    assert await counts(alice.id) == (0, 1)
    assert await counts(bob.id) == (1, 0)


@pytest.mark.asyncio
async def test_follow_unknown_user_is_not_found(db_session, alice) -> None:
    with pytest.raises(UserNotFound):
        await svc.follow_user(db_session, alice.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_follow_inactive_user_is_not_found(db_session, alice, make_user) -> None:
    ghost = await make_user("ghost", is_active=False)
    with pytest.raises(UserNotFound):
        await svc.follow_user(db_session, alice.id, ghost.id)


@pytest.mark.asyncio
async def test_follow_across_block_is_forbidden_both_ways(db_session, alice, bob) -> None:
    await svc.block_user(db_session, bob.id, alice.id)

    with pytest.raises(BlockedError):
        await svc.follow_user(db_session, alice.id, bob.id)
    with pytest.raises(BlockedError):
        await svc.follow_user(db_session, bob.id, alice.id)


@pytest.mark.asyncio
async def test_follow_limit(db_session, alice, bob) -> None:
    await db_session.execute(
        sa.update(User).where(User.id == alice.id).values(following_count=FOLLOW_LIMIT)
    )

    with pytest.raises(FollowLimitExceeded) as exc_info:
        await svc.follow_user(db_session, alice.id, bob.id)
    assert exc_info.value.status_code == 403
    assert not await svc.is_following(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_follow_private_account_files_request(db_session, alice, bob, counts) -> None:
    await privacy_svc.update_settings(db_session, bob.id, {"is_private": True})

    outcome = await svc.follow_user(db_session, alice.id, bob.id, message="hi bob")

    assert outcome.pending is True
    assert outcome.request_id is not None
    assert not await svc.is_following(db_session, alice.id, bob.id)
    assert await counts(bob.id) == (0, 0)

    request = await db_session.get(FollowRequest, outcome.request_id)
    assert request.status == FollowRequestStatus.PENDING
    assert request.message == "hi bob"

    with pytest.raises(FollowRequestAlreadyPending):
        await svc.follow_user(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_follow_private_account_with_requests_disabled(db_session, alice, bob) -> None:
    await privacy_svc.update_settings(
        db_session, bob.id, {"is_private": True, "allow_follow_requests": False}
    )

    with pytest.raises(FollowRequestsDisabled):
        await svc.follow_user(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_auto_approved_follower_skips_request(db_session, alice, bob, carol) -> None:
    await privacy_svc.update_settings(
        db_session,
        bob.id,
        {"is_private": True, "auto_approve_followers": [alice.id]},
    )

    direct = await svc.follow_user(db_session, alice.id, bob.id)
    filed = await svc.follow_user(db_session, carol.id, bob.id)

    assert direct.pending is False
    assert filed.pending is True


# ── Unfollow ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_unfollow_decrements_counts(db_session, alice, bob, counts) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)

    following, followers = await svc.unfollow_user(db_session, alice.id, bob.id)

    assert (following, followers) == (0, 0)
    assert await counts(alice.id) == (0, 0)
    assert await counts(bob.id) == (0, 0)
    assert not await svc.is_following(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_unfollow_without_edge(db_session, alice, bob) -> None:
    with pytest.raises(NotFollowingError) as exc_info:
        await svc.unfollow_user(db_session, alice.id, bob.id)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_counters_never_go_negative(db_session, alice, bob, counts) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    # Simulate drift: counters already at zero while the edge still exists
    await db_session.execute(
        sa.update(User)
        .where(User.id.in_([alice.id, bob.id]))
        .values(followers_count=0, following_count=0)
    )

    await svc.unfollow_user(db_session, alice.id, bob.id)

    assert await counts(alice.id) == (0, 0)
    assert await counts(bob.id) == (0, 0)


@pytest.mark.asyncio
async def test_counter_invariant_after_mixed_operations(
    db_session, alice, bob, carol, counts
) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    await svc.follow_user(db_session, carol.id, bob.id)
    await svc.follow_user(db_session, bob.id, alice.id)
    await svc.follow_user(db_session, alice.id, carol.id)
    await svc.unfollow_user(db_session, carol.id, bob.id)
    await svc.block_user(db_session, carol.id, alice.id)

    for user in (alice, bob, carol):
        followers = await db_session.scalar(
            sa.select(sa.func.count()).select_from(FollowEdge).where(FollowEdge.following_id == user.id)
        )
        following = await db_session.scalar(
            sa.select(sa.func.count()).select_from(FollowEdge).where(FollowEdge.follower_id == user.id)
        )
        assert await counts(user.id) == (followers, following)


# ── Block ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_block_removes_follow_edges_both_ways(db_session, alice, bob, counts) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    await svc.follow_user(db_session, bob.id, alice.id)

    edge = await svc.block_user(db_session, alice.id, bob.id, reason=BlockReason.SPAM)

    assert edge.reason == BlockReason.SPAM
    assert not await svc.is_following(db_session, alice.id, bob.id)
    assert not await svc.is_following(db_session, bob.id, alice.id)
    assert await counts(alice.id) == (0, 0)
    assert await counts(bob.id) == (0, 0)


@pytest.mark.asyncio
async def test_block_cancels_pending_requests_both_ways(db_session, alice, bob) -> None:
    await privacy_svc.update_settings(db_session, bob.id, {"is_private": True})
    outcome = await svc.follow_user(db_session, alice.id, bob.id)

    await svc.block_user(db_session, bob.id, alice.id)

    request = await db_session.get(FollowRequest, outcome.request_id)
    await db_session.refresh(request)
    assert request.status == FollowRequestStatus.CANCELLED


@pytest.mark.asyncio
async def test_block_self_is_rejected(db_session, alice) -> None:
    with pytest.raises(SelfReferenceError):
        await svc.block_user(db_session, alice.id, alice.id)
    assert await _edge_count(db_session, BlockEdge) == 0


@pytest.mark.asyncio
async def test_block_twice_conflicts(db_session, alice, bob) -> None:
    await svc.block_user(db_session, alice.id, bob.id)
    with pytest.raises(AlreadyBlockedError):
        await svc.block_user(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_block_both_directions_is_allowed(db_session, alice, bob) -> None:
    await svc.block_user(db_session, alice.id, bob.id)
    await svc.block_user(db_session, bob.id, alice.id)

    rel = await svc.get_relationship(db_session, alice.id, bob.id)
    assert rel.is_blocking and rel.is_blocked_by


@pytest.mark.asyncio
async def test_is_blocked_is_symmetric_has_blocked_is_not(db_session, alice, bob) -> None:
    await svc.block_user(db_session, alice.id, bob.id)

    assert await svc.is_blocked(db_session, alice.id, bob.id)
    assert await svc.is_blocked(db_session, bob.id, alice.id)
    assert await svc.has_blocked(db_session, alice.id, bob.id)
    assert not await svc.has_blocked(db_session, bob.id, alice.id)


@pytest.mark.asyncio
async def test_unblock(db_session, alice, bob) -> None:
    await svc.block_user(db_session, alice.id, bob.id)

    assert await svc.unblock_user(db_session, alice.id, bob.id) is True
    assert await svc.unblock_user(db_session, alice.id, bob.id) is False
    assert not await svc.is_blocked(db_session, alice.id, bob.id)

    # Unblocking does not restore anything; following works again
    outcome = await svc.follow_user(db_session, alice.id, bob.id)
    assert outcome.pending is False


@pytest.mark.asyncio
async def test_follow_and_block_are_mutually_exclusive(db_session, alice, bob, carol) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    await svc.follow_user(db_session, carol.id, alice.id)
    await svc.block_user(db_session, bob.id, alice.id)
    await svc.block_user(db_session, alice.id, carol.id)

    both = await db_session.execute(
        sa.select(FollowEdge.id).join(
            BlockEdge,
            sa.or_(
                sa.and_(
                    BlockEdge.blocker_id == FollowEdge.follower_id,
                    BlockEdge.blocked_id == FollowEdge.following_id,
                ),
                sa.and_(
                    BlockEdge.blocker_id == FollowEdge.following_id,
                    BlockEdge.blocked_id == FollowEdge.follower_id,
                ),
            ),
        )
    )
    assert both.all() == []


@pytest.mark.asyncio
async def test_block_after_follow_checks_prevents_edge(
    db_session, alice, bob, counts, monkeypatch
) -> None:
    get_pending = svc.request_svc.get_pending

    async def _block_then_get_pending(session, requester_id, target_id):
        # bob's block lands after follow_user already checked for blocks
        await svc.block_user(session, bob.id, alice.id)
        return await get_pending(session, requester_id, target_id)

    monkeypatch.setattr(svc.request_svc, "get_pending", _block_then_get_pending)

    with pytest.raises(BlockedError):
        await svc.follow_user(db_session, alice.id, bob.id)

    assert await _edge_count(db_session, FollowEdge) == 0
    assert await _edge_count(db_session, BlockEdge) == 1
    assert await counts(alice.id) == (0, 0)
    assert await counts(bob.id) == (0, 0)


@pytest.mark.asyncio
async def test_create_follow_edge_refuses_blocked_pair(db_session, alice, bob, counts) -> None:
    await svc.block_user(db_session, alice.id, bob.id)

    with pytest.raises(BlockedError):
        await svc.create_follow_edge(db_session, bob.id, alice.id)

    assert await _edge_count(db_session, FollowEdge) == 0
    assert await counts(alice.id) == (0, 0)


# ── Lookups & lists ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_relationship_with_self_is_empty(db_session, alice) -> None:
    rel = await svc.get_relationship(db_session, alice.id, alice.id)
    assert rel == svc.Relationship()


@pytest.mark.asyncio
async def test_mutual_relationship(db_session, alice, bob) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    await svc.follow_user(db_session, bob.id, alice.id)

    rel = await svc.get_relationship(db_session, alice.id, bob.id)
    assert rel.is_mutual is True
    assert rel.any_block is False


@pytest.mark.asyncio
async def test_list_followers_marks_viewer_follows(db_session, alice, bob, carol) -> None:
    await svc.follow_user(db_session, alice.id, bob.id)
    await svc.follow_user(db_session, carol.id, bob.id)
    await svc.follow_user(db_session, alice.id, carol.id)

    rows, total = await svc.list_followers(
        db_session, bob.id, viewer_id=alice.id, page=1, limit=20
    )

    assert total == 2
    flags = {user.username: followed for _, user, followed in rows}
    assert flags == {"alice": False, "carol": True}


@pytest.mark.asyncio
async def test_list_following_paginates(db_session, alice, make_user) -> None:
    for i in range(3):
        other = await make_user(f"target{i}")
        await svc.follow_user(db_session, alice.id, other.id)

    rows, total = await svc.list_following(
        db_session, alice.id, viewer_id=None, page=2, limit=2
    )

    assert total == 3
    assert len(rows) == 1
    assert rows[0][2] is False


@pytest.mark.asyncio
async def test_block_lists_and_stats(db_session, alice, bob, carol) -> None:
    await svc.block_user(db_session, alice.id, bob.id, reason=BlockReason.HARASSMENT)
    await svc.block_user(db_session, carol.id, bob.id)

    blocked, total = await svc.list_blocked(db_session, alice.id, page=1, limit=20)
    assert total == 1
    edge, user = blocked[0]
    assert user.id == bob.id
    assert edge.reason == BlockReason.HARASSMENT

    blocked_by, total_by = await svc.list_blocked_by(db_session, bob.id, page=1, limit=20)
    assert total_by == 2
    assert {u.id for _, u in blocked_by} == {alice.id, carol.id}

    assert await svc.get_block_stats(db_session, bob.id) == {"blocking": 0, "blocked_by": 2}
