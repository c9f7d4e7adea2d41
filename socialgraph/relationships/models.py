"""
Relationships domain — SQLAlchemy ORM models.

Tables:
  follow_edges  — directed follow edges (follower → following)
  block_edges   — directed block edges (blocker blocks blocked)

The composite unique constraints are the concurrency guard for follow/block:
of two racing inserts for the same ordered pair exactly one commits.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from socialgraph.relationships.constants import BlockReason


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FollowEdge(Base):
    __tablename__ = "follow_edges"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    follower_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    following_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follow_edges_pair"),
        sa.CheckConstraint("follower_id != following_id", name="ck_follow_edges_no_self"),
        # Reverse lookups: who follows X
        sa.Index("idx_follow_edges_following_id", "following_id", "created_at"),
    )


class BlockEdge(Base):
    __tablename__ = "block_edges"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    blocker_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blocked_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[BlockReason | None] = mapped_column(
        sa.Enum(
            BlockReason,
            name="blockreason",
            native_enum=False,
            length=20,
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=True,
    )
    # Report held by the moderation service, if the block came out of one
    report_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_block_edges_pair"),
        sa.CheckConstraint("blocker_id != blocked_id", name="ck_block_edges_no_self"),
        # Reverse lookups: who blocked X
        sa.Index("idx_block_edges_blocked_id", "blocked_id", "created_at"),
    )
