"""
Users domain — public profile route.

  GET /api/v1/users/{user_id}   Profile projection honoring the owner's display flags
                                (404 when the owner has blocked the viewer)
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from socialgraph.auth.dependencies import get_optional_user
from socialgraph.database import get_read_db
from socialgraph.users import controller as ctrl
from socialgraph.users.schemas import UserProfileResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/{user_id}",
    response_model=UserProfileResponse,
    response_model_exclude_none=True,
    summary="Get a user's profile",
)
async def get_profile(
    user_id: uuid.UUID,
    current_user: CurrentUser | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_read_db),
) -> UserProfileResponse:
    viewer_id = current_user.id if current_user else None
    return await ctrl.get_profile(session, user_id, viewer_id)
