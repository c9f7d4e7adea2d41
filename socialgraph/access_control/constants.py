"""
Access control — interaction kinds, decision reasons and profile fields.
"""
from __future__ import annotations

import enum


class InteractionType(str, enum.Enum):
    COMMENT = "comment"
    LIKE = "like"
    SHARE = "share"
    MESSAGE = "message"


class AccessReason(str, enum.Enum):
    OWNER = "owner"
    BLOCKED = "blocked"
    PUBLIC = "public"
    FOLLOWER = "follower"
    NOT_FOLLOWER = "not_follower"
    MUTUAL = "mutual"
    NOT_MUTUAL = "not_mutual"
    PRIVATE = "private"
    EVERYONE = "everyone"
    DISABLED = "disabled"


class ProfileField(str, enum.Enum):
    FOLLOWER_COUNT = "follower_count"
    FOLLOWING_COUNT = "following_count"
    POST_COUNT = "post_count"
    JOIN_DATE = "join_date"
    ONLINE_STATUS = "online_status"
    LAST_SEEN = "last_seen"


# Privacy column that governs each interaction
INTERACTION_SETTING: dict[InteractionType, str] = {
    InteractionType.COMMENT: "allow_comments",
    InteractionType.LIKE: "allow_likes",
    InteractionType.SHARE: "allow_shares",
    InteractionType.MESSAGE: "allow_messages",
}

# Privacy display flag that governs each optional profile field
PROFILE_FIELD_FLAG: dict[ProfileField, str] = {
    ProfileField.FOLLOWER_COUNT: "show_follower_count",
    ProfileField.FOLLOWING_COUNT: "show_following_count",
    ProfileField.POST_COUNT: "show_post_count",
    ProfileField.JOIN_DATE: "show_join_date",
    ProfileField.ONLINE_STATUS: "show_online_status",
    ProfileField.LAST_SEEN: "show_last_seen",
}
