"""
Users domain — account lookups shared by the other domains.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.exceptions import UserNotFound
from socialgraph.users.models import User


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await session.get(User, user_id, populate_existing=True)


async def get_active_user(session: AsyncSession, user_id: uuid.UUID) -> User:
    """Load an active account or raise UserNotFound (deactivated accounts look missing).

    Counters are updated with SQL expressions, so the row is always re-read.
    """
    user = await session.get(User, user_id, populate_existing=True)
    if user is None or not user.is_active:
        raise UserNotFound()
    return user
