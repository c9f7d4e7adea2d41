"""
Privacy domain — routes for the caller's own settings.

All routes mounted under /api/v1/privacy.

Routes:
  GET   /         Current settings (defaults when never saved)
  PUT   /         Partial update  {"settings": {...}}
  POST  /reset    Restore the default configuration
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser
from socialgraph.auth.dependencies import get_current_user
from socialgraph.database import get_db
from socialgraph.privacy import controller as ctrl
from socialgraph.privacy.schemas import PrivacyResponse, PrivacyUpdateRequest

router = APIRouter(prefix="/privacy", tags=["Privacy"])


@router.get(
    "",
    response_model=PrivacyResponse,
    response_model_exclude_none=True,
    summary="Get my privacy settings",
)
async def get_settings(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> PrivacyResponse:
    return await ctrl.get_settings(session, current_user.id)


@router.put(
    "",
    response_model=PrivacyResponse,
    summary="Update my privacy settings",
    description=(
        "Partial update. Turning is_private on also turns require_follow_approval on; "
        "turning approval off approves every pending follow request."
    ),
)
async def update_settings(
    body: PrivacyUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> PrivacyResponse:
    return await ctrl.update_settings(session, current_user.id, body)


@router.post(
    "/reset",
    response_model=PrivacyResponse,
    summary="Reset my privacy settings to defaults",
)
async def reset_settings(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> PrivacyResponse:
    return await ctrl.reset_settings(session, current_user.id)
