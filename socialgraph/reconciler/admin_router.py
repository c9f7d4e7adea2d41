"""
Admin routes — counter reconciliation and block inspection.

Routes:
  POST  /api/v1/admin/reconcile/{user_id}            Reconcile one user's counters
  POST  /api/v1/admin/reconcile                      Sweep every user
  GET   /api/v1/admin/users/{user_id}/blocked-by     Who has blocked this user (paginated)
  GET   /api/v1/admin/users/{user_id}/block-stats    Block counts in both directions

Requires: ADMIN or SUPER_ADMIN role.
"""
from __future__ import annotations

import uuid

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import PageParams
from shared.models.user import CurrentUser
from socialgraph.auth.dependencies import require_admin
from socialgraph.config import Settings, get_settings
from socialgraph.database import get_db
from socialgraph.pagination import page_params
from socialgraph.reconciler import service as svc
from socialgraph.reconciler.schemas import ReconcileResultResponse, ReconcileSummaryResponse
from socialgraph.redis_client import get_redis_client
from socialgraph.relationships import controller as rel_ctrl
from socialgraph.relationships.schemas import BlockedListResponse, BlockStatsResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_lock_redis(settings: Settings = Depends(get_settings)) -> aioredis.Redis | None:
    """Redis client for the cross-worker reconcile lock."""
    return get_redis_client(settings.redis_url)


@router.post(
    "/reconcile/{user_id}",
    response_model=ReconcileResultResponse,
    summary="[Admin] Reconcile one user's follower/following counters",
    description="Returns skipped=true when a reconcile for this user is already running.",
)
async def reconcile_user(
    user_id: uuid.UUID,
    admin: CurrentUser = Depends(require_admin),
    redis: aioredis.Redis | None = Depends(get_lock_redis),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db),
) -> ReconcileResultResponse:
    result = await svc.reconcile_user(
        session, user_id, redis=redis, lock_ttl=settings.reconcile_lock_ttl_seconds
    )
    return ReconcileResultResponse.model_validate(result)


@router.post(
    "/reconcile",
    response_model=ReconcileSummaryResponse,
    summary="[Admin] Reconcile counters for every user",
)
async def reconcile_all(
    admin: CurrentUser = Depends(require_admin),
    redis: aioredis.Redis | None = Depends(get_lock_redis),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db),
) -> ReconcileSummaryResponse:
    summary = await svc.reconcile_all(
        session,
        batch_size=settings.reconcile_batch_size,
        redis=redis,
        lock_ttl=settings.reconcile_lock_ttl_seconds,
    )
    return ReconcileSummaryResponse.model_validate(summary)


@router.get(
    "/users/{user_id}/blocked-by",
    response_model=BlockedListResponse,
    summary="[Admin] List users who have blocked this user",
)
async def list_blocked_by(
    user_id: uuid.UUID,
    pagination: PageParams = Depends(page_params),
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> BlockedListResponse:
    return await rel_ctrl.list_blocked_by(session, user_id, pagination.page, pagination.limit)


@router.get(
    "/users/{user_id}/block-stats",
    response_model=BlockStatsResponse,
    summary="[Admin] Block counts for a user",
)
async def block_stats(
    user_id: uuid.UUID,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> BlockStatsResponse:
    return await rel_ctrl.get_block_stats(session, user_id)
