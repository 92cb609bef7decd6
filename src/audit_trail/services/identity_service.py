"""Actor lookups against the user table.

Audit records carry a snapshot of the acting user's email and display name so
later renames or deletions do not rewrite history.
"""

import uuid
from dataclasses import dataclass

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit_trail.models.user import User


@dataclass(frozen=True)
class ActorSnapshot:
    """Identity fields copied onto an audit record at write time."""

    user_id: uuid.UUID
    email: str
    display_name: str | None = None


class IdentityService:
    """Read-only access to application users."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_actor(self, user_id: uuid.UUID) -> ActorSnapshot | None:
        """Look up the user behind an audit event.

        Never raises: a missing user or a failing query yields None.

        Args:
            user_id: The acting user's ID.

        Returns:
            The actor snapshot, or None.
        """
        try:
            async with self.session_factory() as session:
                user = await session.get(User, user_id)
        except Exception:
            logger.warning(f"Actor lookup failed for user {user_id}")
            return None
        if user is None:
            return None
        return ActorSnapshot(user_id=user.id, email=user.email, display_name=user.display_name)

    async def list_admins(self) -> list[ActorSnapshot]:
        """Return every active administrator."""
        query = select(User).where(User.is_admin.is_(True), User.is_active.is_(True)).order_by(User.email)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [
                ActorSnapshot(user_id=u.id, email=u.email, display_name=u.display_name) for u in result.scalars().all()
            ]
