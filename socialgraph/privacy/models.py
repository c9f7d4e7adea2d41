"""
Privacy domain — SQLAlchemy ORM model.

Table:
  privacy_settings — one row per user, created lazily on first write.
                     Notification toggles are fixed boolean columns (notify_*).
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from socialgraph.privacy.constants import (
    InteractionLevel,
    MessageRequestFilter,
    PostVisibility,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> sa.Enum:
    return sa.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [x.value for x in e],
    )


def _flag(default: bool = True) -> Mapped[bool]:
    return mapped_column(
        sa.Boolean,
        nullable=False,
        default=default,
        server_default=sa.true() if default else sa.false(),
    )


class PrivacySettings(Base):
    __tablename__ = "privacy_settings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    # ── Account ──────────────────────────────────────────────────────────────
    is_private: Mapped[bool] = _flag(False)
    allow_search_indexing: Mapped[bool] = _flag()

    # ── Follow ───────────────────────────────────────────────────────────────
    # Forced true whenever is_private is true (enforced by the service on write)
    require_follow_approval: Mapped[bool] = _flag(False)
    allow_follow_requests: Mapped[bool] = _flag()
    # User ids (as strings) whose follow attempts skip approval
    auto_approve_followers: Mapped[list[str]] = mapped_column(
        sa.JSON, nullable=False, default=list
    )

    # ── Posts & interactions ─────────────────────────────────────────────────
    default_post_visibility: Mapped[PostVisibility] = mapped_column(
        _enum(PostVisibility, "postvisibility"), nullable=False, default=PostVisibility.PUBLIC
    )
    allow_comments: Mapped[InteractionLevel] = mapped_column(
        _enum(InteractionLevel, "interactionlevel"), nullable=False, default=InteractionLevel.EVERYONE
    )
    allow_likes: Mapped[InteractionLevel] = mapped_column(
        _enum(InteractionLevel, "interactionlevel"), nullable=False, default=InteractionLevel.EVERYONE
    )
    allow_shares: Mapped[InteractionLevel] = mapped_column(
        _enum(InteractionLevel, "interactionlevel"), nullable=False, default=InteractionLevel.EVERYONE
    )
    allow_messages: Mapped[InteractionLevel] = mapped_column(
        _enum(InteractionLevel, "interactionlevel"), nullable=False, default=InteractionLevel.EVERYONE
    )
    message_request_filter: Mapped[MessageRequestFilter] = mapped_column(
        _enum(MessageRequestFilter, "messagerequestfilter"),
        nullable=False,
        default=MessageRequestFilter.ALL,
    )

    # ── Notifications ────────────────────────────────────────────────────────
    notify_likes: Mapped[bool] = _flag()
    notify_comments: Mapped[bool] = _flag()
    notify_follows: Mapped[bool] = _flag()
    notify_mentions: Mapped[bool] = _flag()
    notify_shares: Mapped[bool] = _flag()
    notify_messages: Mapped[bool] = _flag()
    notify_follow_requests: Mapped[bool] = _flag()

    # ── Profile display ──────────────────────────────────────────────────────
    show_follower_count: Mapped[bool] = _flag()
    show_following_count: Mapped[bool] = _flag()
    show_post_count: Mapped[bool] = _flag()
    show_join_date: Mapped[bool] = _flag()
    show_online_status: Mapped[bool] = _flag()
    show_last_seen: Mapped[bool] = _flag()

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )
