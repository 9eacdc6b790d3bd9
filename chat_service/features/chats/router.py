"""API router for the chats feature.

Endpoints:
    POST   /chats/            - Post a message for an existing author
    GET    /chats/            - List messages, oldest first
    GET    /chats/{chat_id}   - Get a single message
    DELETE /chats/{chat_id}   - Delete a message

These endpoints write straight to the store; connected WebSocket clients
are not notified.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_service.core.dependencies.database import get_db_session
from chat_service.features.chats.schemas import ChatCreate, ChatRead
from chat_service.features.chats.service import ChatService

router = APIRouter(prefix="/chats", tags=["chats"])


@router.post(
    "/",
    response_model=ChatRead,
    status_code=status.HTTP_201_CREATED,
    summary="Post a message",
    responses={404: {"description": "Author not found"}},
)
async def create_chat(
    payload: ChatCreate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ChatRead:
    service = ChatService(session)
    chat = await service.create_chat(payload.text, payload.author_id)
    await session.commit()

    return ChatRead.model_validate(chat)


@router.get(
    "/",
    response_model=list[ChatRead],
    summary="List messages",
    description="Return every message in creation order, each with its author.",
)
async def list_chats(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> list[ChatRead]:
    service = ChatService(session)
    chats = await service.list_chats()
    return [ChatRead.model_validate(chat) for chat in chats]


@router.get(
    "/{chat_id}",
    response_model=ChatRead,
    summary="Get a message",
    responses={404: {"description": "Chat not found"}},
)
async def get_chat(
    chat_id: UUID,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ChatRead:
    service = ChatService(session)
    chat = await service.get_chat(chat_id)
    return ChatRead.model_validate(chat)


@router.delete(
    "/{chat_id}",
    response_model=ChatRead,
    summary="Delete a message",
    description="Delete a message and return it as it was.",
    responses={404: {"description": "Chat not found"}},
)
async def delete_chat(
    chat_id: UUID,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ChatRead:
    service = ChatService(session)
    chat = await service.delete_chat(chat_id)
    removed = ChatRead.model_validate(chat)
    await session.commit()
    return removed
