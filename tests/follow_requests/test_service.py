import uuid
from datetime import datetime, timedelta, timezone

import pytest
import sqlalchemy as sa

from socialgraph.exceptions import (
    AlreadyFollowingError,
    BlockedError,
    FollowRequestAlreadyPending,
    FollowRequestNotFound,
    SelfReferenceError,
)
from socialgraph.follow_requests import service as svc
from socialgraph.follow_requests.constants import REQUEST_TTL, FollowRequestStatus
from socialgraph.follow_requests.models import FollowRequest
from socialgraph.relationships import service as rel_svc
from socialgraph.relationships.models import BlockEdge, FollowEdge


@pytest.mark.asyncio
async def test_create_request(db_session, alice, bob) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id, message="let me in")

    assert request.status == FollowRequestStatus.PENDING
    assert request.requester_id == alice.id
    assert request.target_id == bob.id
    assert (await svc.get_pending(db_session, alice.id, bob.id)).id == request.id


@pytest.mark.asyncio
async def test_create_request_rules(db_session, alice, bob, carol) -> None:
    with pytest.raises(SelfReferenceError):
        await svc.create_request(db_session, alice.id, alice.id)

    await svc.create_request(db_session, alice.id, bob.id)
    with pytest.raises(FollowRequestAlreadyPending):
        await svc.create_request(db_session, alice.id, bob.id)

    await rel_svc.create_follow_edge(db_session, carol.id, bob.id)
    with pytest.raises(AlreadyFollowingError):
        await svc.create_request(db_session, carol.id, bob.id)

    await rel_svc.block_user(db_session, bob.id, carol.id)
    with pytest.raises(BlockedError):
        await svc.create_request(db_session, carol.id, bob.id)


@pytest.mark.asyncio
async def test_approve_creates_edge_and_counts(db_session, alice, bob, counts) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)

    approved = await svc.approve(db_session, request.id, target_id=bob.id)

    assert approved.status == FollowRequestStatus.APPROVED
    assert await rel_svc.is_following(db_session, alice.id, bob.id)
    assert await counts(bob.id) == (1, 0)
    assert await counts(alice.id) == (0, 1)


@pytest.mark.asyncio
async def test_approve_twice_is_not_found(db_session, alice, bob, counts) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)
    await svc.approve(db_session, request.id)

    with pytest.raises(FollowRequestNotFound):
        await svc.approve(db_session, request.id)
    assert await counts(bob.id) == (1, 0)


@pytest.mark.asyncio
async def test_approve_by_someone_else_is_not_found(db_session, alice, bob, carol) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)

    with pytest.raises(FollowRequestNotFound):
        await svc.approve(db_session, request.id, target_id=carol.id)
    with pytest.raises(FollowRequestNotFound):
        await svc.approve(db_session, uuid.uuid4(), target_id=bob.id)


@pytest.mark.asyncio
async def test_approve_when_edge_exists_leaves_counts(db_session, alice, bob, counts) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)
    await rel_svc.create_follow_edge(db_session, alice.id, bob.id)

    approved = await svc.approve(db_session, request.id, target_id=bob.id)

    assert approved.status == FollowRequestStatus.APPROVED
    assert await counts(bob.id) == (1, 0)


@pytest.mark.asyncio
async def test_reject_then_request_again(db_session, alice, bob) -> None:
    first = await svc.create_request(db_session, alice.id, bob.id)
    rejected = await svc.reject(db_session, first.id, target_id=bob.id)
    assert rejected.status == FollowRequestStatus.REJECTED
    assert not await rel_svc.is_following(db_session, alice.id, bob.id)

    second = await svc.create_request(db_session, alice.id, bob.id)

    assert second.id != first.id
    assert second.status == FollowRequestStatus.PENDING
    total = await db_session.scalar(
        sa.select(sa.func.count()).select_from(FollowRequest).where(
            FollowRequest.requester_id == alice.id
        )
    )
    assert total == 2


@pytest.mark.asyncio
async def test_cancel(db_session, alice, bob) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)

    assert await svc.cancel(db_session, alice.id, bob.id) is True
    assert await svc.cancel(db_session, alice.id, bob.id) is False
    with pytest.raises(FollowRequestNotFound):
        await svc.approve(db_session, request.id, target_id=bob.id)


@pytest.mark.asyncio
async def test_bulk_approve_collects_failures(db_session, alice, bob, carol, make_user, counts) -> None:
    dave = await make_user("dave")
    ok_one = await svc.create_request(db_session, alice.id, bob.id)
    ok_two = await svc.create_request(db_session, carol.id, bob.id)
    not_mine = await svc.create_request(db_session, dave.id, alice.id)
    missing = uuid.uuid4()

    results = await svc.bulk_approve(
        db_session, [ok_one.id, missing, ok_two.id, not_mine.id], target_id=bob.id
    )

    by_id = {r.request_id: r for r in results}
    assert by_id[ok_one.id].ok and by_id[ok_two.id].ok
    assert not by_id[missing].ok
    assert not by_id[not_mine.id].ok
    assert by_id[missing].error == "Follow request not found."
    assert await counts(bob.id) == (2, 0)
    assert not await rel_svc.is_following(db_session, dave.id, alice.id)


@pytest.mark.asyncio
async def test_bulk_approve_skips_blocked_pair(db_session, alice, bob, carol) -> None:
    from_alice = await svc.create_request(db_session, alice.id, bob.id)
    from_carol = await svc.create_request(db_session, carol.id, bob.id)
    # Blocking cancels alice's request, so it can no longer be approved
    await rel_svc.block_user(db_session, bob.id, alice.id)

    results = await svc.bulk_approve(db_session, [from_alice.id, from_carol.id], target_id=bob.id)

    assert [r.ok for r in results] == [False, True]
    assert not await rel_svc.is_following(db_session, alice.id, bob.id)
    assert await rel_svc.is_following(db_session, carol.id, bob.id)


@pytest.mark.asyncio
async def test_bulk_reject(db_session, alice, bob, carol) -> None:
    one = await svc.create_request(db_session, alice.id, bob.id)
    two = await svc.create_request(db_session, carol.id, bob.id)

    results = await svc.bulk_reject(db_session, [one.id, two.id, one.id], target_id=bob.id)

    # Duplicate ids are processed once
    assert len(results) == 2
    assert all(r.ok for r in results)
    assert await svc.list_requests(db_session, bob.id, page=1, limit=20) == ([], 0)


@pytest.mark.asyncio
async def test_list_received_and_sent(db_session, alice, bob, carol) -> None:
    await svc.create_request(db_session, alice.id, bob.id, message="hello")
    await svc.create_request(db_session, carol.id, bob.id)
    await svc.create_request(db_session, alice.id, carol.id)

    received, total = await svc.list_requests(db_session, bob.id, page=1, limit=20)
    assert total == 2
    assert {u.username for _, u in received} == {"alice", "carol"}

    sent, sent_total = await svc.list_sent_requests(db_session, alice.id, page=1, limit=20)
    assert sent_total == 2
    assert {u.username for _, u in sent} == {"bob", "carol"}


@pytest.mark.asyncio
async def test_approve_all_pending(db_session, alice, bob, carol, counts) -> None:
    await svc.create_request(db_session, alice.id, bob.id)
    await svc.create_request(db_session, carol.id, bob.id)

    approved = await svc.approve_all_pending(db_session, bob.id)

    assert approved == 2
    assert await counts(bob.id) == (2, 0)
    assert await svc.approve_all_pending(db_session, bob.id) == 0


# ── Expiry ─────────────────────────────────────────────────────────────────────

async def _lapse(session, request_id) -> None:
    await session.execute(
        sa.update(FollowRequest)
        .where(FollowRequest.id == request_id)
        .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )


@pytest.mark.asyncio
async def test_request_expires_after_ttl(db_session, alice, bob) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)

    assert abs(request.expires_at - request.created_at - REQUEST_TTL) < timedelta(seconds=1)


@pytest.mark.asyncio
async def test_expired_request_is_no_longer_pending(db_session, alice, bob, counts) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)
    await _lapse(db_session, request.id)

    assert await svc.get_pending(db_session, alice.id, bob.id) is None
    assert await svc.list_requests(db_session, bob.id, page=1, limit=20) == ([], 0)
    assert await svc.list_sent_requests(db_session, alice.id, page=1, limit=20) == ([], 0)
    assert await svc.approve_all_pending(db_session, bob.id) == 0
    with pytest.raises(FollowRequestNotFound):
        await svc.approve(db_session, request.id, target_id=bob.id)
    with pytest.raises(FollowRequestNotFound):
        await svc.reject(db_session, request.id, target_id=bob.id)
    assert await svc.cancel(db_session, alice.id, bob.id) is False
    assert await counts(bob.id) == (0, 0)


@pytest.mark.asyncio
async def test_new_request_replaces_expired_one(db_session, alice, bob) -> None:
    stale = await svc.create_request(db_session, alice.id, bob.id)
    await _lapse(db_session, stale.id)

    fresh = await svc.create_request(db_session, alice.id, bob.id)

    assert fresh.id != stale.id
    assert (await svc.get_pending(db_session, alice.id, bob.id)).id == fresh.id
    status = await db_session.scalar(
        sa.select(FollowRequest.status).where(FollowRequest.id == stale.id)
    )
    assert status == FollowRequestStatus.EXPIRED


# ── Mutual followers ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_mutual_followers(db_session, alice, bob, carol, make_user) -> None:
    dave = await make_user("dave")
    erin = await make_user("erin")
    await rel_svc.create_follow_edge(db_session, carol.id, alice.id)
    await rel_svc.create_follow_edge(db_session, carol.id, bob.id)
    await rel_svc.create_follow_edge(db_session, dave.id, alice.id)
    await rel_svc.create_follow_edge(db_session, erin.id, bob.id)

    mutuals = await svc.mutual_followers(db_session, bob.id, [alice.id, dave.id])

    assert [u.username for u in mutuals[alice.id]] == ["carol"]
    assert mutuals[dave.id] == []
    assert await svc.mutual_followers(db_session, bob.id, []) == {}


@pytest.mark.asyncio
async def test_mutual_followers_capped_per_requester(db_session, alice, bob, carol, make_user) -> None:
    for name in ("m4", "m2", "m1", "m3"):
        user = await make_user(name)
        await rel_svc.create_follow_edge(db_session, user.id, alice.id)
        await rel_svc.create_follow_edge(db_session, user.id, carol.id)
        await rel_svc.create_follow_edge(db_session, user.id, bob.id)

    mutuals = await svc.mutual_followers(db_session, bob.id, [alice.id, carol.id])

    assert [u.username for u in mutuals[alice.id]] == ["m1", "m2", "m3"]
    assert [u.username for u in mutuals[carol.id]] == ["m1", "m2", "m3"]


# ── Blocks racing writes ───────────────────────────────────────────────────────

def _stale_first_block_check(monkeypatch):
    """Make the first is_blocked call miss a block that is already stored."""
    is_blocked = rel_svc.is_blocked
    calls = []

    async def _is_blocked(session, a, b):
        calls.append((a, b))
        if len(calls) == 1:
            return False
        return await is_blocked(session, a, b)

    monkeypatch.setattr(rel_svc, "is_blocked", _is_blocked)
    return calls


@pytest.mark.asyncio
async def test_approve_rechecks_block_before_creating_edge(
    db_session, alice, bob, counts, monkeypatch
) -> None:
    request = await svc.create_request(db_session, alice.id, bob.id)
    # Block row stored after the approval read the request
    db_session.add(BlockEdge(blocker_id=bob.id, blocked_id=alice.id))
    await db_session.flush()
    calls = _stale_first_block_check(monkeypatch)

    with pytest.raises(BlockedError):
        await svc.approve(db_session, request.id, target_id=bob.id)

    assert len(calls) == 2
    assert await db_session.scalar(sa.select(sa.func.count()).select_from(FollowEdge)) == 0
    assert await rel_svc.has_blocked(db_session, bob.id, alice.id)
    assert await counts(alice.id) == (0, 0)
    assert await counts(bob.id) == (0, 0)


@pytest.mark.asyncio
async def test_create_request_rechecks_block_under_lock(db_session, alice, bob, monkeypatch) -> None:
    db_session.add(BlockEdge(blocker_id=bob.id, blocked_id=alice.id))
    await db_session.flush()
    _stale_first_block_check(monkeypatch)

    with pytest.raises(BlockedError):
        await svc.create_request(db_session, alice.id, bob.id)

    assert await db_session.scalar(sa.select(sa.func.count()).select_from(FollowRequest)) == 0
