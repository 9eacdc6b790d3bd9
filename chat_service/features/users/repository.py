"""Repository for the users feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_service.core.database.repository import BaseRepository
from chat_service.features.users.models import User

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class UserRepository(BaseRepository[User]):
    """Repository for User model.

    Inherits get, get_or_raise, get_by, list, create and delete from
    BaseRepository; adds creation-ordered lookups.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def find_by_name(self, session: AsyncSession, name: str) -> User | None:
        """Return the oldest user with exactly this name, if any."""
        return await self.get_by(
            session,
            User.name,
            name,
            order_by=(User.created_at.asc(), User.id.asc()),
        )

    async def list_ordered(self, session: AsyncSession) -> Sequence[User]:
        """All users in creation order."""
        return await self.list(session, order_by=(User.created_at.asc(), User.id.asc()))


_user_repository: UserRepository | None = None


def get_user_repository() -> UserRepository:
    """Get the shared UserRepository instance (repositories are stateless)."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
