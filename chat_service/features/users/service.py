"""Service layer for the users feature."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chat_service.core.database import NotFoundError
from chat_service.features.users.models import User
from chat_service.features.users.repository import UserRepository, get_user_repository
from chat_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from chat_service.features.users.schemas import UserCreate


# Standard logger for INFO/WARNING/ERROR
logger = logging.getLogger(__name__)
# Lazy logger for DEBUG
lazy_logger = get_lazy_logger(__name__)


class UserService:
    """Identity directory operations.

    Flushes but does not commit; the caller owns the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        repo: UserRepository | None = None,
    ) -> None:
        self._session = session
        self._repo = repo or get_user_repository()

    async def create_user(self, payload: UserCreate) -> User:
        """Create a user. Duplicate names are allowed."""
        user = User(name=payload.name, color=payload.color, image=payload.image)
        created = await self._repo.create(self._session, user)

        logger.info(
            "User created",
            extra={"user_id": str(created.id), "user_name": created.name},
        )
        return created

    async def find_user(self, user_id: UUID) -> User | None:
        return await self._repo.get(self._session, user_id)

    async def get_user(self, user_id: UUID) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: If user not found
        """
        user = await self._repo.get(self._session, user_id)
        if user is None:
            raise NotFoundError("User", {"id": str(user_id)})
        return user

    async def find_by_name(self, name: str) -> User | None:
        user = await self._repo.find_by_name(self._session, name)
        lazy_logger.debug(lambda: f"service.find_by_name({name!r}) -> {user is not None}")
        return user

    async def list_users(self) -> Sequence[User]:
        return await self._repo.list_ordered(self._session)

    async def update_color(self, user_id: UUID, color: str) -> User:
        """Change a user's color.

        Raises:
            NotFoundError: If user not found
        """
        user = await self.get_user(user_id)
        previous = user.color
        user.color = color
        await self._session.flush()

        logger.info(
            "User color updated",
            extra={"user_id": str(user_id), "old_color": previous, "new_color": color},
        )
        return user
