"""
Follow requests domain — lifecycle states and limits.
"""
from __future__ import annotations

import enum
from datetime import timedelta

MESSAGE_MAX_LENGTH: int = 200
BULK_MAX_IDS: int = 100
MUTUAL_FOLLOWERS_SHOWN: int = 3

# A pending request older than this no longer counts as pending
REQUEST_TTL = timedelta(days=30)


class FollowRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
