"""Query-string pagination shared by every list endpoint."""
from fastapi import Query

from shared.models.pagination import PageParams

MAX_LIMIT = 100


def page_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(20, ge=1, le=MAX_LIMIT, description="Items per page"),
) -> PageParams:
    return PageParams(page=page, limit=limit)
