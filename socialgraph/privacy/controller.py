"""
Privacy domain — request orchestration.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.privacy import service as svc
from socialgraph.privacy.schemas import (
    PrivacyResponse,
    PrivacySettingsOut,
    PrivacyUpdateRequest,
)


def _response(settings, message: str | None = None) -> PrivacyResponse:
    return PrivacyResponse(
        settings=PrivacySettingsOut.from_values(svc.settings_to_dict(settings)),
        message=message,
    )


async def get_settings(session: AsyncSession, user_id: uuid.UUID) -> PrivacyResponse:
    return _response(await svc.get_settings(session, user_id))


async def update_settings(
    session: AsyncSession,
    user_id: uuid.UUID,
    body: PrivacyUpdateRequest,
) -> PrivacyResponse:
    settings = await svc.update_settings(session, user_id, body.settings.to_updates())
    return _response(settings, "Privacy settings updated.")


async def reset_settings(session: AsyncSession, user_id: uuid.UUID) -> PrivacyResponse:
    settings = await svc.reset_to_default(session, user_id)
    return _response(settings, "Privacy settings reset to defaults.")
