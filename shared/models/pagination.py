import math

from pydantic import BaseModel, ConfigDict, Field


class PageParams(BaseModel):
    """Offset pagination used by every list endpoint (1-indexed pages)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(20, ge=1, description="Items per page")


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0
