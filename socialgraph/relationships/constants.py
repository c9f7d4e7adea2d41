"""
Relationships domain — enums and limits.
"""
from __future__ import annotations

import enum

# Hard limit on the number of users one account can follow
FOLLOW_LIMIT: int = 5_000


class BlockReason(str, enum.Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    OTHER = "other"
