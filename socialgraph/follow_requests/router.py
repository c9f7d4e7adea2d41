"""
Follow requests domain — user-facing routes.

All routes mounted under /api/v1/follow-requests.

Routes:
  GET    /                         Pending requests addressed to me (paginated)
  GET    /sent                     Pending requests I sent (paginated)
  POST   /bulk-approve             Approve many; per-id results
  POST   /bulk-reject              Reject many; per-id results
  POST   /{request_id}/approve     Approve (creates the follow edge)
  POST   /{request_id}/reject      Reject
  DELETE /{target_id}              Withdraw my pending request to target_id

Note: literal paths (/sent, /bulk-*) are registered before the
/{request_id}/... routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import PageParams
from shared.models.user import CurrentUser
from socialgraph.auth.dependencies import get_current_user
from socialgraph.database import get_db
from socialgraph.follow_requests import controller as ctrl
from socialgraph.follow_requests.schemas import (
    BulkActionRequest,
    BulkActionResponse,
    FollowRequestListResponse,
    SentFollowRequestListResponse,
)
from socialgraph.pagination import page_params
from socialgraph.relationships.schemas import MessageResponse

router = APIRouter(prefix="/follow-requests", tags=["Follow Requests"])


@router.get(
    "",
    response_model=FollowRequestListResponse,
    summary="List follow requests addressed to me",
)
async def list_requests(
    pagination: PageParams = Depends(page_params),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowRequestListResponse:
    return await ctrl.list_requests(session, current_user.id, pagination.page, pagination.limit)


@router.get(
    "/sent",
    response_model=SentFollowRequestListResponse,
    summary="List follow requests I have sent",
)
async def list_sent_requests(
    pagination: PageParams = Depends(page_params),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> SentFollowRequestListResponse:
    return await ctrl.list_sent_requests(
        session, current_user.id, pagination.page, pagination.limit
    )


@router.post(
    "/bulk-approve",
    response_model=BulkActionResponse,
    summary="Approve several follow requests",
    description="Each id succeeds or fails independently; failures are reported per id.",
)
async def bulk_approve(
    body: BulkActionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> BulkActionResponse:
    return await ctrl.bulk_approve(session, current_user.id, body.ids)


@router.post(
    "/bulk-reject",
    response_model=BulkActionResponse,
    summary="Reject several follow requests",
)
async def bulk_reject(
    body: BulkActionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> BulkActionResponse:
    return await ctrl.bulk_reject(session, current_user.id, body.ids)


@router.post(
    "/{request_id}/approve",
    response_model=MessageResponse,
    summary="Approve a follow request",
)
async def approve(
    request_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await ctrl.approve(session, current_user.id, request_id)


@router.post(
    "/{request_id}/reject",
    response_model=MessageResponse,
    summary="Reject a follow request",
)
async def reject(
    request_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await ctrl.reject(session, current_user.id, request_id)


@router.delete(
    "/{target_id}",
    response_model=MessageResponse,
    summary="Cancel my pending follow request",
)
async def cancel(
    target_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await ctrl.cancel(session, current_user.id, target_id)
