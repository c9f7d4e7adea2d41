"""
Follow requests domain — SQLAlchemy ORM model.

Table:
  follow_requests — one row per request; terminal rows are kept as history,
                    so uniqueness of (requester, target) holds only while pending.
                    A pending row past expires_at is stale and reads as absent.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from socialgraph.follow_requests.constants import (
    MESSAGE_MAX_LENGTH,
    REQUEST_TTL,
    FollowRequestStatus,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _expiry() -> datetime:
    return _now() + REQUEST_TTL


class FollowRequest(Base):
    __tablename__ = "follow_requests"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[FollowRequestStatus] = mapped_column(
        sa.Enum(
            FollowRequestStatus,
            name="followrequeststatus",
            native_enum=False,
            length=20,
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
        default=FollowRequestStatus.PENDING,
    )
    message: Mapped[str | None] = mapped_column(sa.String(MESSAGE_MAX_LENGTH), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_expiry
    )

    __table_args__ = (
        sa.CheckConstraint("requester_id != target_id", name="ck_follow_requests_no_self"),
        sa.Index(
            "uq_follow_requests_pending_pair",
            "requester_id",
            "target_id",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
        sa.Index("idx_follow_requests_target_status", "target_id", "status", "created_at"),
        sa.Index("idx_follow_requests_requester_status", "requester_id", "status", "created_at"),
    )
