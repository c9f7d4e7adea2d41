"""
Relationships domain — Pydantic V2 request/response schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from socialgraph.follow_requests.constants import MESSAGE_MAX_LENGTH
from socialgraph.relationships.constants import BlockReason


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ── Embedded user reference (used inside list items) ───────────────────────────

class SocialUserRef(BaseModel):
    """Minimal user profile embedded in follower/following/blocked list items."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    full_name: str
    profile_image_url: str | None
    is_private: bool


# ── Follow ─────────────────────────────────────────────────────────────────────

class FollowRequestBody(_Base):
    """Optional body of POST /follow/{target_id}; the message travels with a follow request."""

    message: str | None = Field(None, max_length=MESSAGE_MAX_LENGTH)


class FollowResponse(BaseModel):
    """Counters after a direct follow, or pending=True with the request id."""

    pending: bool = False
    following_count: int | None = None
    target_followers_count: int | None = None
    request_id: uuid.UUID | None = None


class UnfollowResponse(BaseModel):
    following_count: int
    target_followers_count: int


class FollowListItem(BaseModel):
    id: uuid.UUID           # follow edge id
    user: SocialUserRef     # the other party (following or follower depending on context)
    followed_at: datetime
    is_followed_by_me: bool  # does the current viewer follow this person?


class FollowListResponse(BaseModel):
    users: list[FollowListItem]
    total: int
    page: int
    total_pages: int


# ── Relationship ───────────────────────────────────────────────────────────────

class RelationshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_following: bool
    is_followed_by: bool
    is_mutual: bool
    is_blocking: bool
    is_blocked_by: bool


# ── Block ──────────────────────────────────────────────────────────────────────

class BlockRequest(_Base):
    user_id: uuid.UUID
    reason: BlockReason | None = None
    report_id: uuid.UUID | None = None


class BlockedUserItem(BaseModel):
    user: SocialUserRef
    reason: BlockReason | None
    blocked_at: datetime


class BlockedListResponse(BaseModel):
    users: list[BlockedUserItem]
    total: int
    page: int
    total_pages: int


class BlockStatsResponse(BaseModel):
    blocking: int
    blocked_by: int


class MessageResponse(BaseModel):
    message: str
