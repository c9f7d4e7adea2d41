"""
Privacy domain — enumerations and the documented default configuration.
"""
from __future__ import annotations

import enum


class PostVisibility(str, enum.Enum):
    PUBLIC = "public"
    FOLLOWERS = "followers"
    MUTUAL = "mutual"
    PRIVATE = "private"


class InteractionLevel(str, enum.Enum):
    EVERYONE = "everyone"
    FOLLOWERS = "followers"
    MUTUAL = "mutual"
    NONE = "none"


class MessageRequestFilter(str, enum.Enum):
    ALL = "all"
    VERIFIED = "verified"
    NONE = "none"


# Fixed notification event set; unknown keys are rejected at the boundary.
NOTIFICATION_TYPES: tuple[str, ...] = (
    "likes",
    "comments",
    "follows",
    "mentions",
    "shares",
    "messages",
    "follow_requests",
)

PROFILE_FLAGS: tuple[str, ...] = (
    "show_follower_count",
    "show_following_count",
    "show_post_count",
    "show_join_date",
    "show_online_status",
    "show_last_seen",
)

DEFAULT_PRIVACY_SETTINGS: dict = {
    "is_private": False,
    "require_follow_approval": False,
    "allow_follow_requests": True,
    "auto_approve_followers": [],
    "default_post_visibility": PostVisibility.PUBLIC,
    "allow_comments": InteractionLevel.EVERYONE,
    "allow_likes": InteractionLevel.EVERYONE,
    "allow_shares": InteractionLevel.EVERYONE,
    "allow_messages": InteractionLevel.EVERYONE,
    "message_request_filter": MessageRequestFilter.ALL,
    "allow_search_indexing": True,
    **{f"notify_{name}": True for name in NOTIFICATION_TYPES},
    **{flag: True for flag in PROFILE_FLAGS},
}
