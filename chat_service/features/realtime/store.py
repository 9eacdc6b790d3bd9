"""Persistence contract used by the realtime coordinator.

The coordinator only sees ``ChatStore``; values crossing it are wire
schemas (UserRead, ChatRead), never ORM instances, so the coordinator can
be exercised against an in-memory fake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from chat_service.features.chats.schemas import ChatRead
from chat_service.features.chats.service import ChatService
from chat_service.features.users.schemas import UserRead
from chat_service.features.users.service import UserService

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from chat_service.features.users.schemas import UserCreate


class ChatStore(Protocol):
    """Users and messages as the coordinator needs them.

    Methods named ``find_*`` return None for a missing row; ``update_*``
    and ``delete_*`` raise NotFoundError.
    """

    async def create_user(self, data: UserCreate) -> UserRead: ...

    async def find_user_by_id(self, user_id: UUID) -> UserRead | None: ...

    async def find_user_by_name(self, name: str) -> UserRead | None: ...

    async def list_users(self) -> list[UserRead]: ...

    async def update_user_color(self, user_id: UUID, color: str) -> UserRead: ...

    async def create_message(self, text: str, author_id: UUID) -> ChatRead: ...

    async def list_messages(self) -> list[ChatRead]: ...

    async def find_message_by_id(self, chat_id: UUID) -> ChatRead | None: ...

    async def update_message_text(self, chat_id: UUID, text: str) -> ChatRead: ...

    async def delete_message(self, chat_id: UUID) -> ChatRead: ...


class SqlAlchemyChatStore:
    """ChatStore over the users/chats services, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_user(self, data: UserCreate) -> UserRead:
        async with self._session_factory() as session:
            user = await UserService(session).create_user(data)
            result = UserRead.model_validate(user)
            await session.commit()
        return result

    async def find_user_by_id(self, user_id: UUID) -> UserRead | None:
        async with self._session_factory() as session:
            user = await UserService(session).find_user(user_id)
            return UserRead.model_validate(user) if user else None

    async def find_user_by_name(self, name: str) -> UserRead | None:
        async with self._session_factory() as session:
            user = await UserService(session).find_by_name(name)
            return UserRead.model_validate(user) if user else None

    async def list_users(self) -> list[UserRead]:
        async with self._session_factory() as session:
            users = await UserService(session).list_users()
            return [UserRead.model_validate(u) for u in users]

    async def update_user_color(self, user_id: UUID, color: str) -> UserRead:
        async with self._session_factory() as session:
            user = await UserService(session).update_color(user_id, color)
            result = UserRead.model_validate(user)
            await session.commit()
        return result

    async def create_message(self, text: str, author_id: UUID) -> ChatRead:
        async with self._session_factory() as session:
            chat = await ChatService(session).create_chat(text, author_id)
            result = ChatRead.model_validate(chat)
            await session.commit()
        return result

    async def list_messages(self) -> list[ChatRead]:
        async with self._session_factory() as session:
            chats = await ChatService(session).list_chats()
            return [ChatRead.model_validate(c) for c in chats]

    async def find_message_by_id(self, chat_id: UUID) -> ChatRead | None:
        async with self._session_factory() as session:
            chat = await ChatService(session).find_chat(chat_id)
            return ChatRead.model_validate(chat) if chat else None

    async def update_message_text(self, chat_id: UUID, text: str) -> ChatRead:
        async with self._session_factory() as session:
            chat = await ChatService(session).update_text(chat_id, text)
            result = ChatRead.model_validate(chat)
            await session.commit()
        return result

    async def delete_message(self, chat_id: UUID) -> ChatRead:
        async with self._session_factory() as session:
            chat = await ChatService(session).delete_chat(chat_id)
            result = ChatRead.model_validate(chat)
            await session.commit()
        return result
