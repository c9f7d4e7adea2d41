"""
Social graph service — auth dependencies.

Routes import from here, not from shared directly, so that augmenting the
caller context only touches this file.
"""
from __future__ import annotations

from fastapi import Depends

from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
)
from shared.models.user import CurrentUser

from socialgraph.exceptions import AdminRequired

get_current_user = get_current_user_required
get_optional_user = get_current_user_optional


def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Raise 403 unless the caller holds the ADMIN or SUPER_ADMIN role."""
    if not current_user.is_admin:
        raise AdminRequired()
    return current_user
