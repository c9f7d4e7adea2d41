from shared.models.pagination import PageParams, total_pages
from shared.models.user import CurrentUser

__all__ = ["CurrentUser", "PageParams", "total_pages"]
