"""
Users domain — profile projection.

Optional fields are None when the owner's display flags hide them from the
viewer (or a block stands between them).
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from socialgraph.relationships.schemas import RelationshipResponse


class UserProfileResponse(BaseModel):
    id: uuid.UUID
    username: str
    full_name: str
    profile_image_url: str | None
    bio: str | None
    is_private: bool

    followers_count: int | None = None
    following_count: int | None = None
    post_count: int | None = None
    joined_at: datetime | None = None
    is_online: bool | None = None
    last_seen_at: datetime | None = None

    # Absent for anonymous viewers and for the owner
    relationship: RelationshipResponse | None = None
