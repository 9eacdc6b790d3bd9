"""Service layer for the chats feature."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chat_service.core.database import NotFoundError
from chat_service.features.chats.models import Chat
from chat_service.features.chats.repository import ChatRepository, get_chat_repository
from chat_service.features.users.repository import UserRepository, get_user_repository
from chat_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class ChatService:
    """Message log operations.

    Handles:
    - Appending messages for an existing author
    - Creation-ordered listing
    - Edits (which mark the message modified) and removal

    Flushes but does not commit; the caller owns the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        repo: ChatRepository | None = None,
        user_repo: UserRepository | None = None,
    ) -> None:
        self._session = session
        self._repo = repo or get_chat_repository()
        self._user_repo = user_repo or get_user_repository()

    async def create_chat(self, text: str, author_id: UUID) -> Chat:
        """Append a message.

        Raises:
            NotFoundError: If the author does not exist
        """
        author = await self._user_repo.get_or_raise(self._session, author_id)
        chat = Chat(text=text, author_id=author.id, modified=False)
        chat.author = author
        created = await self._repo.create(self._session, chat)

        logger.info(
            "Chat created",
            extra={"chat_id": str(created.id), "author_id": str(author_id)},
        )
        return created

    async def list_chats(self) -> Sequence[Chat]:
        return await self._repo.list_ordered(self._session)

    async def find_chat(self, chat_id: UUID) -> Chat | None:
        return await self._repo.get(self._session, chat_id)

    async def get_chat(self, chat_id: UUID) -> Chat:
        """Get a chat by ID.

        Raises:
            NotFoundError: If chat not found
        """
        chat = await self._repo.get(self._session, chat_id)
        if chat is None:
            raise NotFoundError("Chat", {"id": str(chat_id)})
        return chat

    async def update_text(self, chat_id: UUID, text: str) -> Chat:
        """Replace a message's text and mark it modified.

        Raises:
            NotFoundError: If chat not found
        """
        chat = await self.get_chat(chat_id)
        chat.text = text
        chat.modified = True
        await self._session.flush()

        lazy_logger.debug(lambda: f"service.update_text({chat_id}) -> modified")
        return chat

    async def delete_chat(self, chat_id: UUID) -> Chat:
        """Remove a message and return it as it was.

        Raises:
            NotFoundError: If chat not found
        """
        chat = await self.get_chat(chat_id)
        await self._repo.delete(self._session, chat)
        return chat
