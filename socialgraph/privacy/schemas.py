"""
Privacy domain — Pydantic V2 request/response schemas.

Notification toggles travel as a nested `notifications` object on the wire
and are stored as notify_* columns.  Unknown keys are rejected everywhere.
"""
from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from socialgraph.privacy.constants import (
    NOTIFICATION_TYPES,
    InteractionLevel,
    MessageRequestFilter,
    PostVisibility,
)


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Response ───────────────────────────────────────────────────────────────────

class NotificationSettings(_Base):
    likes: bool
    comments: bool
    follows: bool
    mentions: bool
    shares: bool
    messages: bool
    follow_requests: bool


class PrivacySettingsOut(BaseModel):
    is_private: bool
    require_follow_approval: bool
    allow_follow_requests: bool
    auto_approve_followers: list[uuid.UUID]
    default_post_visibility: PostVisibility
    allow_comments: InteractionLevel
    allow_likes: InteractionLevel
    allow_shares: InteractionLevel
    allow_messages: InteractionLevel
    message_request_filter: MessageRequestFilter
    allow_search_indexing: bool
    show_follower_count: bool
    show_following_count: bool
    show_post_count: bool
    show_join_date: bool
    show_online_status: bool
    show_last_seen: bool
    notifications: NotificationSettings

    @classmethod
    def from_values(cls, values: dict) -> "PrivacySettingsOut":
        flat = {k: v for k, v in values.items() if not k.startswith("notify_")}
        notifications = {name: values[f"notify_{name}"] for name in NOTIFICATION_TYPES}
        return cls(**flat, notifications=NotificationSettings(**notifications))


class PrivacyResponse(BaseModel):
    settings: PrivacySettingsOut
    message: str | None = None


# ── Update ─────────────────────────────────────────────────────────────────────

class NotificationSettingsUpdate(_Base):
    likes: bool | None = None
    comments: bool | None = None
    follows: bool | None = None
    mentions: bool | None = None
    shares: bool | None = None
    messages: bool | None = None
    follow_requests: bool | None = None


class PrivacySettingsUpdate(_Base):
    """Partial update: only the keys present are changed."""

    is_private: bool | None = None
    require_follow_approval: bool | None = None
    allow_follow_requests: bool | None = None
    auto_approve_followers: list[uuid.UUID] | None = None
    default_post_visibility: PostVisibility | None = None
    allow_comments: InteractionLevel | None = None
    allow_likes: InteractionLevel | None = None
    allow_shares: InteractionLevel | None = None
    allow_messages: InteractionLevel | None = None
    message_request_filter: MessageRequestFilter | None = None
    allow_search_indexing: bool | None = None
    show_follower_count: bool | None = None
    show_following_count: bool | None = None
    show_post_count: bool | None = None
    show_join_date: bool | None = None
    show_online_status: bool | None = None
    show_last_seen: bool | None = None
    notifications: NotificationSettingsUpdate | None = None

    def to_updates(self) -> dict:
        """Flatten to column names, dropping keys that were not sent or sent as null."""
        data = self.model_dump(exclude_unset=True, exclude={"notifications"})
        updates = {k: v for k, v in data.items() if v is not None}
        if self.notifications is not None:
            for name, value in self.notifications.model_dump(exclude_unset=True).items():
                if value is not None:
                    updates[f"notify_{name}"] = value
        return updates


class PrivacyUpdateRequest(_Base):
    settings: PrivacySettingsUpdate
