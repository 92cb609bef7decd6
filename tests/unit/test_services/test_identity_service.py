"""Tests for actor lookups."""

import uuid
from unittest.mock import MagicMock

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit_trail.models.user import User
from audit_trail.services.identity_service import ActorSnapshot, IdentityService


class TestFindActor:
    """Tests for IdentityService.find_actor."""

    async def test_returns_snapshot(self, session_factory: async_sessionmaker[AsyncSession], sample_user: User) -> None:
        identity = IdentityService(session_factory)
        actor = await identity.find_actor(sample_user.id)
        assert actor == ActorSnapshot(user_id=sample_user.id, email="user@example.com", display_name="Test User")

    async def test_unknown_user_returns_none(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        identity = IdentityService(session_factory)
        assert await identity.find_actor(uuid.uuid4()) is None

    async def test_lookup_failure_returns_none(self) -> None:
        factory = MagicMock(side_effect=RuntimeError("database unavailable"))
        identity = IdentityService(factory)
        assert await identity.find_actor(uuid.uuid4()) is None


class TestListAdmins:
    """Tests for IdentityService.list_admins."""

    async def test_lists_active_admins_only(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        async_session: AsyncSession,
        sample_user: User,
        admin_user: User,
    ) -> None:
        async_session.add(User(id=uuid.uuid4(), email="former@example.com", is_admin=True, is_active=False))
        await async_session.commit()

        admins = await IdentityService(session_factory).list_admins()
        assert [a.email for a in admins] == ["admin@example.com"]
