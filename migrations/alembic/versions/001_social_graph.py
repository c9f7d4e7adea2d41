"""Social graph schema: users, follow_edges, block_edges, follow_requests, privacy_settings

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables created:
  - users              Account subset: denormalized follow counters + privacy mirror
  - follow_edges       Directed follower -> following edges
  - block_edges        Directed blocker -> blocked edges (optional reason / report link)
  - follow_requests    Request lifecycle; uniqueness per pair only while pending;
                       pending rows lapse at expires_at
  - privacy_settings   One row per user, created on first write

Enumerated columns are stored as VARCHAR(20) (non-native enums) so the same
schema runs on PostgreSQL and SQLite.

Downgrade: drops all tables in reverse dependency order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _flag(name: str, default: bool = True) -> sa.Column:
    return sa.Column(
        name, sa.Boolean(), nullable=False, server_default=sa.true() if default else sa.false()
    )


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("full_name", sa.String(150), nullable=False),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        _flag("is_private", False),
        _flag("is_active", True),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("post_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("followers_count >= 0", name="ck_users_followers_count_non_negative"),
        sa.CheckConstraint("following_count >= 0", name="ck_users_following_count_non_negative"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── 2. follow_edges ───────────────────────────────────────────────────────
    op.create_table(
        "follow_edges",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "follower_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "following_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follow_edges_pair"),
        sa.CheckConstraint("follower_id != following_id", name="ck_follow_edges_no_self"),
    )
    op.create_index(
        "idx_follow_edges_following_id", "follow_edges", ["following_id", "created_at"]
    )

    # ── 3. block_edges ────────────────────────────────────────────────────────
    op.create_table(
        "block_edges",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "blocker_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "blocked_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reason", sa.String(20), nullable=True),
        sa.Column("report_id", sa.Uuid(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_block_edges_pair"),
        sa.CheckConstraint("blocker_id != blocked_id", name="ck_block_edges_no_self"),
    )
    op.create_index("idx_block_edges_blocked_id", "block_edges", ["blocked_id", "created_at"])

    # ── 4. follow_requests ────────────────────────────────────────────────────
    op.create_table(
        "follow_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "requester_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "target_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("message", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        # Written by the service (created_at + 30 days); pending rows past it read as gone
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("requester_id != target_id", name="ck_follow_requests_no_self"),
    )
    # Terminal rows are kept as history: the pair is unique only while pending.
    op.create_index(
        "uq_follow_requests_pending_pair",
        "follow_requests",
        ["requester_id", "target_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        "idx_follow_requests_target_status",
        "follow_requests",
        ["target_id", "status", "created_at"],
    )
    op.create_index(
        "idx_follow_requests_requester_status",
        "follow_requests",
        ["requester_id", "status", "created_at"],
    )

    # ── 5. privacy_settings ───────────────────────────────────────────────────
    op.create_table(
        "privacy_settings",
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _flag("is_private", False),
        _flag("allow_search_indexing"),
        _flag("require_follow_approval", False),
        _flag("allow_follow_requests"),
        sa.Column("auto_approve_followers", sa.JSON(), nullable=False),
        sa.Column("default_post_visibility", sa.String(20), nullable=False, server_default="public"),
        sa.Column("allow_comments", sa.String(20), nullable=False, server_default="everyone"),
        sa.Column("allow_likes", sa.String(20), nullable=False, server_default="everyone"),
        sa.Column("allow_shares", sa.String(20), nullable=False, server_default="everyone"),
        sa.Column("allow_messages", sa.String(20), nullable=False, server_default="everyone"),
        sa.Column("message_request_filter", sa.String(20), nullable=False, server_default="all"),
        _flag("notify_likes"),
        _flag("notify_comments"),
        _flag("notify_follows"),
        _flag("notify_mentions"),
        _flag("notify_shares"),
        _flag("notify_messages"),
        _flag("notify_follow_requests"),
        _flag("show_follower_count"),
        _flag("show_following_count"),
        _flag("show_post_count"),
        _flag("show_join_date"),
        _flag("show_online_status"),
        _flag("show_last_seen"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_table("privacy_settings")
    op.drop_index("idx_follow_requests_requester_status", table_name="follow_requests")
    op.drop_index("idx_follow_requests_target_status", table_name="follow_requests")
    op.drop_index("uq_follow_requests_pending_pair", table_name="follow_requests")
    op.drop_table("follow_requests")
    op.drop_index("idx_block_edges_blocked_id", table_name="block_edges")
    op.drop_table("block_edges")
    op.drop_index("idx_follow_edges_following_id", table_name="follow_edges")
    op.drop_table("follow_edges")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
