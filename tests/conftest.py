"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite).  SQLite's
driver-level transaction handling is switched off so SQLAlchemy controls
BEGIN / SAVEPOINT itself; the services rely on SAVEPOINTs for atomic writes.
"""
import os

# Must be set before the app (and its limiter) is imported
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
import sqlalchemy as sa
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.auth.config import get_auth_settings
from shared.constants import Role
from shared.database.postgres import Base, get_async_session_factory
from socialgraph.database import get_db, get_read_db
from socialgraph.main import app
from socialgraph.reconciler.admin_router import get_lock_redis
from socialgraph.users.models import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = get_async_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


# ── Users ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make(username: str | None = None, **fields) -> User:
        name = username or f"user_{uuid.uuid4().hex[:8]}"
        user = User(username=name, full_name=name.title(), **fields)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest_asyncio.fixture
async def carol(make_user) -> User:
    return await make_user("carol")


@pytest.fixture
def counts(db_session: AsyncSession) -> Callable[[uuid.UUID], Awaitable[tuple[int, int]]]:
    """Read (followers_count, following_count) straight from the table."""

    async def _counts(user_id: uuid.UUID) -> tuple[int, int]:
        row = (
            await db_session.execute(
                sa.select(User.followers_count, User.following_count).where(User.id == user_id)
            )
        ).one()
        return row.followers_count, row.following_count

    return _counts


# ── HTTP ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build a bearer header with a token the shared auth dependency accepts."""
    settings = get_auth_settings()

    def _headers(user: User, *, admin: bool = False) -> dict[str, str]:
        roles = [Role.USER.value] + ([Role.ADMIN.value] if admin else [])
        claims = {
            "sub": str(user.id),
            "roles": roles,
            "iss": settings.issuer,
            "aud": settings.audience,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        }
        token = jwt.encode(claims, settings.secret, algorithm=settings.algorithm)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests share the test's session (no commit per request)."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_read_db] = override_get_db
    app.dependency_overrides[get_lock_redis] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
