"""
Process-wide database handle.

init_db() is called once from the application lifespan (or a script) and
dispose_db() on shutdown; request handlers receive sessions through the
get_db / get_read_db dependencies only.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shared.database.postgres import get_async_engine, get_async_session_factory

# Import all models so Base.metadata is complete for create_all() and Alembic.
import socialgraph.users.models  # noqa: F401
import socialgraph.relationships.models  # noqa: F401
import socialgraph.follow_requests.models  # noqa: F401
import socialgraph.privacy.models  # noqa: F401

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(database_url: str) -> None:
    global _engine, _session_factory
    _engine = get_async_engine(database_url)
    _session_factory = get_async_session_factory(_engine, expire_on_commit=False)


async def dispose_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_read_db() -> AsyncGenerator[AsyncSession, None]:
    """Session for access decisions: every read in the request sees one snapshot."""
    factory = get_session_factory()
    async with factory() as session:
        if session.bind.dialect.name == "postgresql":
            await session.connection(
                execution_options={"isolation_level": "REPEATABLE READ"}
            )
        try:
            yield session
        finally:
            await session.rollback()
