"""
Relationships domain — user-facing routes.

All routes mounted under /api/v1.

Routes:
  POST   /follow/{target_id}           Follow, or file a follow request  (50/hour rate limit)
  DELETE /follow/{target_id}           Unfollow
  GET    /relationships/{user_id}      Edge state between the caller and user_id
  GET    /users/{user_id}/followers    Followers (404 across a block, 403 if private and not following)
  GET    /users/{user_id}/following    Following (same visibility rules)
  POST   /blocks                       Block (removes follow edges and pending requests both ways)
  DELETE /blocks?user_id=              Unblock
  GET    /blocks                       My block list (paginated)
"""
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import PageParams
from shared.models.user import CurrentUser
from socialgraph.auth.dependencies import get_current_user, get_optional_user
from socialgraph.database import get_db, get_read_db
from socialgraph.pagination import page_params
from socialgraph.rate_limit import limiter
from socialgraph.relationships import controller as ctrl
from socialgraph.relationships.schemas import (
    BlockedListResponse,
    BlockRequest,
    FollowListResponse,
    FollowRequestBody,
    FollowResponse,
    MessageResponse,
    RelationshipResponse,
    UnfollowResponse,
)

router = APIRouter(tags=["Relationships"])


# ── Follow ─────────────────────────────────────────────────────────────────────

@router.post(
    "/follow/{target_id}",
    response_model=FollowResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Follow a user",
    description=(
        "Creates the follow edge, or a pending follow request when the target "
        "requires approval. Rate-limited to 50 follow actions per hour."
    ),
)
@limiter.limit("50/hour")
async def follow_user(
    request: Request,
    target_id: uuid.UUID,
    body: FollowRequestBody | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowResponse:
    message = body.message if body is not None else None
    return await ctrl.follow_user(session, current_user.id, target_id, message)


@router.delete(
    "/follow/{target_id}",
    response_model=UnfollowResponse,
    summary="Unfollow a user",
)
async def unfollow_user(
    target_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UnfollowResponse:
    return await ctrl.unfollow_user(session, current_user.id, target_id)


@router.get(
    "/relationships/{user_id}",
    response_model=RelationshipResponse,
    summary="Relationship between the caller and a user",
)
async def get_relationship(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_read_db),
) -> RelationshipResponse:
    return await ctrl.get_relationship(session, current_user.id, user_id)


@router.get(
    "/users/{user_id}/followers",
    response_model=FollowListResponse,
    summary="List a user's followers",
)
async def list_followers(
    user_id: uuid.UUID,
    pagination: PageParams = Depends(page_params),
    current_user: CurrentUser | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_read_db),
) -> FollowListResponse:
    viewer_id = current_user.id if current_user else None
    return await ctrl.list_followers(
        session, user_id, viewer_id, pagination.page, pagination.limit
    )


@router.get(
    "/users/{user_id}/following",
    response_model=FollowListResponse,
    summary="List who a user follows",
)
async def list_following(
    user_id: uuid.UUID,
    pagination: PageParams = Depends(page_params),
    current_user: CurrentUser | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_read_db),
) -> FollowListResponse:
    viewer_id = current_user.id if current_user else None
    return await ctrl.list_following(
        session, user_id, viewer_id, pagination.page, pagination.limit
    )


# ── Block ──────────────────────────────────────────────────────────────────────

@router.post(
    "/blocks",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Block a user",
    description="Removes follow edges and cancels pending follow requests in both directions.",
)
async def block_user(
    body: BlockRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await ctrl.block_user(session, current_user.id, body)


@router.delete(
    "/blocks",
    response_model=MessageResponse,
    summary="Unblock a user",
)
async def unblock_user(
    user_id: uuid.UUID = Query(..., description="User to unblock"),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await ctrl.unblock_user(session, current_user.id, user_id)


@router.get(
    "/blocks",
    response_model=BlockedListResponse,
    summary="List users I have blocked",
)
async def list_blocked(
    pagination: PageParams = Depends(page_params),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> BlockedListResponse:
    return await ctrl.list_blocked(session, current_user.id, pagination.page, pagination.limit)
