"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.config import Settings, get_settings
from studyxp.database import close_db, get_engine, get_session, init_db
from studyxp.db.base import Base
from studyxp.db.models import Institution, User
from studyxp.engagement.seed import seed_achievements
from studyxp.redis_client import close_redis, init_redis


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch) -> AsyncGenerator[Settings, None]:
    """Fresh SQLite database file with the full schema, Redis disabled."""
    monkeypatch.setenv("STUDYXP_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'studyxp.db'}")
    monkeypatch.setenv("STUDYXP_REDIS_URL", "")
    monkeypatch.setenv("STUDYXP_LOG_FORMAT", "console")
    get_settings.cache_clear()

    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield settings

    await close_db()
    await close_redis()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_session(database: Settings) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Session with the default achievement catalog loaded."""
    await seed_achievements(db_session)
    return db_session


@pytest.fixture
def make_institution(db_session: AsyncSession) -> Callable[..., Awaitable[Institution]]:
    async def _make(full_name: str, acronym: str | None = None, *, is_active: bool = True) -> Institution:
        institution = Institution(full_name=full_name, acronym=acronym, is_active=is_active)
        db_session.add(institution)
        await db_session.commit()
        return institution

    return _make


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[int]]:
    """Create a user row, optionally attached to an institution. Returns the user id."""
    counter = {"n": 0}

    async def _make(institution: Institution | None = None) -> int:
        counter["n"] += 1
        user = User(
            email=f"student{counter['n']}@example.edu",
            display_name=f"Student {counter['n']}",
            institution_id=institution.id if institution else None,
        )
        db_session.add(user)
        await db_session.commit()
        return user.id

    return _make


@pytest_asyncio.fixture
async def client(database: Settings) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the test database."""
    from studyxp.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
