"""
Users — the subset of the account record this service owns.

Accounts are provisioned by the identity system; this service maintains the
denormalized follow counters and mirrors the account privacy flag so both
can be read without joining privacy_settings.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(sa.String(50), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    profile_image_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)

    # Mirror of privacy_settings.is_private, written in the same transaction
    is_private: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true()
    )

    # ── Denormalized counters ────────────────────────────────────────────────
    followers_count: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0, server_default="0"
    )
    following_count: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0, server_default="0"
    )
    # Maintained by the content service; only displayed here
    post_count: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0, server_default="0"
    )

    last_seen_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (
        sa.CheckConstraint("followers_count >= 0", name="ck_users_followers_count_non_negative"),
        sa.CheckConstraint("following_count >= 0", name="ck_users_following_count_non_negative"),
    )
