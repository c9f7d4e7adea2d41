"""
Relationships domain — request orchestration.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import total_pages
from socialgraph.access_control import evaluator
from socialgraph.access_control.constants import AccessReason
from socialgraph.access_control.service import load_access_context
from socialgraph.exceptions import NotBlocked, PrivateAccount, UserHiddenByBlock
from socialgraph.relationships import service as svc
from socialgraph.relationships.schemas import (
    BlockedListResponse,
    BlockedUserItem,
    BlockRequest,
    BlockStatsResponse,
    FollowListItem,
    FollowListResponse,
    FollowResponse,
    MessageResponse,
    RelationshipResponse,
    SocialUserRef,
    UnfollowResponse,
)
from socialgraph.users.service import get_active_user


def _user_ref(user) -> SocialUserRef:
    return SocialUserRef.model_validate(user)


def relationship_response(rel: svc.Relationship) -> RelationshipResponse:
    return RelationshipResponse(
        is_following=rel.is_following,
        is_followed_by=rel.is_followed_by,
        is_mutual=rel.is_mutual,
        is_blocking=rel.is_blocking,
        is_blocked_by=rel.is_blocked_by,
    )


# ── Follow ─────────────────────────────────────────────────────────────────────

async def follow_user(
    session: AsyncSession,
    follower_id: uuid.UUID,
    target_id: uuid.UUID,
    message: str | None = None,
) -> FollowResponse:
    outcome = await svc.follow_user(session, follower_id, target_id, message=message)
    return FollowResponse(
        pending=outcome.pending,
        following_count=outcome.following_count,
        target_followers_count=outcome.target_followers_count,
        request_id=outcome.request_id,
    )


async def unfollow_user(
    session: AsyncSession,
    follower_id: uuid.UUID,
    target_id: uuid.UUID,
) -> UnfollowResponse:
    following_count, followers_count = await svc.unfollow_user(session, follower_id, target_id)
    return UnfollowResponse(
        following_count=following_count,
        target_followers_count=followers_count,
    )


async def get_relationship(
    session: AsyncSession,
    viewer_id: uuid.UUID,
    user_id: uuid.UUID,
) -> RelationshipResponse:
    return relationship_response(await svc.get_relationship(session, viewer_id, user_id))


async def _ensure_connections_visible(
    session: AsyncSession,
    user_id: uuid.UUID,
    viewer_id: uuid.UUID | None,
) -> None:
    await get_active_user(session, user_id)
    ctx = await load_access_context(session, viewer_id, user_id)
    decision = evaluator.can_view_connections(viewer_id, user_id, ctx.privacy, ctx.relationship)
    if decision.allowed:
        return
    if decision.reason == AccessReason.BLOCKED:
        raise UserHiddenByBlock()
    raise PrivateAccount()


def _follow_list(rows, total: int, page: int, limit: int) -> FollowListResponse:
    items = [
        FollowListItem(
            id=f.id,
            user=_user_ref(u),
            followed_at=f.created_at,
            is_followed_by_me=is_followed,
        )
        for f, u, is_followed in rows
    ]
    return FollowListResponse(
        users=items, total=total, page=page, total_pages=total_pages(total, limit)
    )


async def list_followers(
    session: AsyncSession,
    user_id: uuid.UUID,
    viewer_id: uuid.UUID | None,
    page: int,
    limit: int,
) -> FollowListResponse:
    """Followers of user_id — 404 across a block, 403 for a private account the viewer does not follow."""
    await _ensure_connections_visible(session, user_id, viewer_id)
    rows, total = await svc.list_followers(
        session, user_id, viewer_id=viewer_id, page=page, limit=limit
    )
    return _follow_list(rows, total, page, limit)


async def list_following(
    session: AsyncSession,
    user_id: uuid.UUID,
    viewer_id: uuid.UUID | None,
    page: int,
    limit: int,
) -> FollowListResponse:
    await _ensure_connections_visible(session, user_id, viewer_id)
    rows, total = await svc.list_following(
        session, user_id, viewer_id=viewer_id, page=page, limit=limit
    )
    return _follow_list(rows, total, page, limit)


# ── Block ──────────────────────────────────────────────────────────────────────

async def block_user(
    session: AsyncSession,
    blocker_id: uuid.UUID,
    body: BlockRequest,
) -> MessageResponse:
    await svc.block_user(
        session, blocker_id, body.user_id, reason=body.reason, report_id=body.report_id
    )
    return MessageResponse(message="User blocked.")


async def unblock_user(
    session: AsyncSession,
    blocker_id: uuid.UUID,
    target_id: uuid.UUID,
) -> MessageResponse:
    if not await svc.unblock_user(session, blocker_id, target_id):
        raise NotBlocked()
    return MessageResponse(message="User unblocked.")


def _blocked_list(rows, total: int, page: int, limit: int) -> BlockedListResponse:
    items = [
        BlockedUserItem(user=_user_ref(u), reason=b.reason, blocked_at=b.created_at)
        for b, u in rows
    ]
    return BlockedListResponse(
        users=items, total=total, page=page, total_pages=total_pages(total, limit)
    )


async def list_blocked(
    session: AsyncSession,
    user_id: uuid.UUID,
    page: int,
    limit: int,
) -> BlockedListResponse:
    rows, total = await svc.list_blocked(session, user_id, page=page, limit=limit)
    return _blocked_list(rows, total, page, limit)


async def list_blocked_by(
    session: AsyncSession,
    user_id: uuid.UUID,
    page: int,
    limit: int,
) -> BlockedListResponse:
    rows, total = await svc.list_blocked_by(session, user_id, page=page, limit=limit)
    return _blocked_list(rows, total, page, limit)


async def get_block_stats(session: AsyncSession, user_id: uuid.UUID) -> BlockStatsResponse:
    return BlockStatsResponse(**await svc.get_block_stats(session, user_id))
