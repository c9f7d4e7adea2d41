"""
Users domain — profile orchestration.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.access_control import evaluator
from socialgraph.access_control.constants import ProfileField
from socialgraph.access_control.service import load_access_context
from socialgraph.exceptions import UserHiddenByBlock
from socialgraph.relationships.controller import relationship_response
from socialgraph.users.schemas import UserProfileResponse
from socialgraph.users.service import get_active_user

# last_seen_at within this window counts as online
ONLINE_WINDOW = timedelta(minutes=5)


def _is_online(last_seen_at: datetime | None) -> bool:
    if last_seen_at is None:
        return False
    if last_seen_at.tzinfo is None:
        last_seen_at = last_seen_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - last_seen_at <= ONLINE_WINDOW


async def get_profile(
    session: AsyncSession,
    user_id: uuid.UUID,
    viewer_id: uuid.UUID | None,
) -> UserProfileResponse:
    user = await get_active_user(session, user_id)
    ctx = await load_access_context(session, viewer_id, user_id)
    # Someone who blocked the viewer does not exist for them
    if ctx.relationship.is_blocked_by:
        raise UserHiddenByBlock()

    fields = evaluator.visible_profile_fields(viewer_id, user_id, ctx.privacy, ctx.relationship)
    is_other = viewer_id is not None and viewer_id != user_id
    return UserProfileResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        profile_image_url=user.profile_image_url,
        bio=user.bio,
        is_private=user.is_private,
        followers_count=user.followers_count if ProfileField.FOLLOWER_COUNT in fields else None,
        following_count=user.following_count if ProfileField.FOLLOWING_COUNT in fields else None,
        post_count=user.post_count if ProfileField.POST_COUNT in fields else None,
        joined_at=user.created_at if ProfileField.JOIN_DATE in fields else None,
        is_online=_is_online(user.last_seen_at) if ProfileField.ONLINE_STATUS in fields else None,
        last_seen_at=user.last_seen_at if ProfileField.LAST_SEEN in fields else None,
        relationship=relationship_response(ctx.relationship) if is_other else None,
    )
