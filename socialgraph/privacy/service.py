"""
Privacy domain — pure business logic (zero FastAPI imports).

A user without a privacy_settings row has the documented defaults; the row
is created on first write.  Every write goes through _write(), which:

  1. merges the partial update onto the current values
  2. forces require_follow_approval on when is_private is on
  3. validates the merged result (InvalidPrivacySettings, nothing written)
  4. mirrors is_private onto users.is_private
  5. auto-approves pending requests when approval stops being required
"""
from __future__ import annotations

import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.exceptions import InvalidPrivacySettings
from socialgraph.follow_requests import service as request_svc
from socialgraph.privacy.constants import (
    DEFAULT_PRIVACY_SETTINGS,
    InteractionLevel,
    MessageRequestFilter,
    PostVisibility,
)
from socialgraph.privacy.models import PrivacySettings
from socialgraph.users.models import User
from socialgraph.users.service import get_active_user

logger = logging.getLogger(__name__)

_ENUM_FIELDS = {
    "default_post_visibility": PostVisibility,
    "allow_comments": InteractionLevel,
    "allow_likes": InteractionLevel,
    "allow_shares": InteractionLevel,
    "allow_messages": InteractionLevel,
    "message_request_filter": MessageRequestFilter,
}

# Interactions that cannot be open to everyone while posts default to private
_PRIVATE_POST_INTERACTIONS = ("allow_comments", "allow_likes", "allow_shares")


def default_values() -> dict:
    values = dict(DEFAULT_PRIVACY_SETTINGS)
    values["auto_approve_followers"] = []
    return values


def default_settings(user_id: uuid.UUID) -> PrivacySettings:
    """Transient (never added to the session) settings object holding the defaults."""
    return PrivacySettings(user_id=user_id, **default_values())


def settings_to_dict(settings: PrivacySettings) -> dict:
    return {key: getattr(settings, key) for key in DEFAULT_PRIVACY_SETTINGS}


def _coerce(key: str, value):
    if key not in DEFAULT_PRIVACY_SETTINGS:
        raise InvalidPrivacySettings([f"unknown setting '{key}'"])
    if key in _ENUM_FIELDS:
        try:
            return _ENUM_FIELDS[key](value)
        except ValueError:
            raise InvalidPrivacySettings([f"invalid value for {key}: {value!r}"]) from None
    if key == "auto_approve_followers":
        try:
            return [str(uuid.UUID(str(v))) for v in dict.fromkeys(value or [])]
        except (TypeError, ValueError):
            raise InvalidPrivacySettings([f"{key} must be a list of user ids"]) from None
    if not isinstance(value, bool):
        raise InvalidPrivacySettings([f"{key} must be a boolean"])
    return value


def validate_settings(values: dict) -> list[str]:
    """Return the rule violations of a complete settings dict (empty when valid)."""
    errors: list[str] = []
    if values["default_post_visibility"] == PostVisibility.PRIVATE:
        for field in _PRIVATE_POST_INTERACTIONS:
            if values[field] == InteractionLevel.EVERYONE:
                errors.append(
                    f"{field} cannot be 'everyone' when default_post_visibility is 'private'"
                )
    return errors


# ── Read ───────────────────────────────────────────────────────────────────────

async def get_settings(session: AsyncSession, user_id: uuid.UUID) -> PrivacySettings:
    """Stored settings, or a transient defaults object when the user never saved any."""
    settings = await session.get(PrivacySettings, user_id)
    if settings is None:
        return default_settings(user_id)
    return settings


# ── Write ──────────────────────────────────────────────────────────────────────

async def _write(
    session: AsyncSession,
    user_id: uuid.UUID,
    merge_onto_current: bool,
    updates: dict,
) -> PrivacySettings:
    await get_active_user(session, user_id)
    row = await session.get(PrivacySettings, user_id)
    current = settings_to_dict(row) if row is not None else default_values()

    coerced = {key: _coerce(key, value) for key, value in updates.items()}
    merged = {**(current if merge_onto_current else default_values()), **coerced}
    if merged["is_private"]:
        merged["require_follow_approval"] = True

    errors = validate_settings(merged)
    if errors:
        raise InvalidPrivacySettings(errors)

    if row is None:
        row = PrivacySettings(user_id=user_id, **merged)
        session.add(row)
    else:
        for key, value in merged.items():
            setattr(row, key, value)

    await session.execute(
        sa.update(User)
        .where(User.id == user_id)
        .values(is_private=merged["is_private"])
        .execution_options(synchronize_session="fetch")
    )
    await session.flush()

    if current["require_follow_approval"] and not merged["require_follow_approval"]:
        approved = await request_svc.approve_all_pending(session, user_id)
        if approved:
            logger.info("Auto-approved %d pending follow request(s) for %s", approved, user_id)

    logger.info("Privacy settings updated for %s (%d field(s))", user_id, len(coerced))
    return row


async def update_settings(
    session: AsyncSession,
    user_id: uuid.UUID,
    updates: dict,
) -> PrivacySettings:
    """Merge a partial update (flat column names) onto the user's settings."""
    return await _write(session, user_id, True, updates)


async def reset_to_default(session: AsyncSession, user_id: uuid.UUID) -> PrivacySettings:
    return await _write(session, user_id, False, {})
