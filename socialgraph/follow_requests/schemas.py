"""
Follow requests domain — Pydantic V2 request/response schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from socialgraph.follow_requests.constants import BULK_MAX_IDS
from socialgraph.relationships.schemas import SocialUserRef


class RequesterRef(SocialUserRef):
    """Requester projection shown to the target: includes their follower count."""

    followers_count: int


class FollowRequestItem(BaseModel):
    id: uuid.UUID
    requester: RequesterRef
    message: str | None
    created_at: datetime
    mutual_followers: list[SocialUserRef]  # up to 3 users following both sides


class SentFollowRequestItem(BaseModel):
    id: uuid.UUID
    target: SocialUserRef
    message: str | None
    created_at: datetime


class FollowRequestListResponse(BaseModel):
    requests: list[FollowRequestItem]
    total: int
    page: int
    total_pages: int


class SentFollowRequestListResponse(BaseModel):
    requests: list[SentFollowRequestItem]
    total: int
    page: int
    total_pages: int


class BulkActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[uuid.UUID] = Field(..., min_length=1, max_length=BULK_MAX_IDS)


class BulkItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: uuid.UUID
    ok: bool
    error: str | None = None


class BulkActionResponse(BaseModel):
    message: str
    succeeded: int
    failed: int
    results: list[BulkItemResponse]
