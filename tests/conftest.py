"""Shared test fixtures for settings, async database sessions, users and a controllable clock."""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from audit_trail.core.background import BoundedTaskDispatcher
from audit_trail.core.config import Settings
from audit_trail.models.base import Base
from audit_trail.models.user import User


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        geo_enabled=False,
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2026-03-02 17:00 UTC (noon in Bogota, outside off-hours)."""
    return FakeClock(datetime(2026, 3, 2, 17, 0, tzinfo=UTC))


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed async SQLite engine so separate sessions share data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """Create a regular user in the test database."""
    user = User(id=uuid.uuid4(), email="user@example.com", display_name="Test User")
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(async_session: AsyncSession) -> User:
    """Create an administrator in the test database."""
    user = User(id=uuid.uuid4(), email="admin@example.com", display_name="Admin", is_admin=True)
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
async def dispatcher() -> AsyncGenerator[BoundedTaskDispatcher]:
    """Background dispatcher drained at teardown so no task outlives the test database."""
    runner = BoundedTaskDispatcher()
    yield runner
    await runner.drain()
