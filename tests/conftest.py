"""Shared test fixtures.

Every test gets a fresh SQLite database file. Schema comes from the ORM
metadata, which mirrors alembic/versions/001_initial_schema.py.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from arena.auth.roles import Role
from arena.config import get_settings
from arena.database import close_db, get_engine, get_session, init_db
from arena.db.base import Base
from arena.db.models import User
from arena.users.service import create_user

UserFactory = Callable[..., Awaitable[int]]


@pytest_asyncio.fixture
async def engine(tmp_path, monkeypatch) -> AsyncGenerator[AsyncEngine, None]:
    """Initialize the engine against a throwaway database and create the schema."""
    monkeypatch.setenv("ARENA_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'arena.db'}")
    monkeypatch.setenv("ARENA_LOG_FORMAT", "console")
    monkeypatch.setenv("ARENA_JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")
    get_settings.cache_clear()

    await init_db(get_settings().database_url)
    eng = get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    await close_db()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client bound to the test database."""
    from arena.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Create a user and return its id."""

    async def _make(username: str, role: Role = Role.USER, points: int = 0) -> int:
        user = await create_user(db_session, username, role)
        user_id = user.id
        if points:
            await db_session.execute(update(User).where(User.id == user_id).values(points=points))
            await db_session.commit()
        return user_id

    return _make


@pytest_asyncio.fixture
async def admin_id(make_user: UserFactory) -> int:
    return await make_user("admin", Role.ADMIN)

