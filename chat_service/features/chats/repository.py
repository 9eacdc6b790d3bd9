"""Repository for the chats feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_service.core.database.repository import BaseRepository
from chat_service.features.chats.models import Chat

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class ChatRepository(BaseRepository[Chat]):
    """Repository for Chat model.

    Authors are loaded eagerly (``lazy="selectin"`` on the relationship),
    so returned chats can be serialized outside an awaitable context.
    """

    def __init__(self) -> None:
        super().__init__(Chat)

    async def list_ordered(self, session: AsyncSession) -> Sequence[Chat]:
        """All chats, oldest first."""
        chats = await self.list(session, order_by=(Chat.created_at.asc(), Chat.id.asc()))
        self._lazy.debug(lambda: f"db.list_ordered -> {len(chats)} chats")
        return chats


_chat_repository: ChatRepository | None = None


def get_chat_repository() -> ChatRepository:
    """Get the shared ChatRepository instance."""
    global _chat_repository
    if _chat_repository is None:
        _chat_repository = ChatRepository()
    return _chat_repository
