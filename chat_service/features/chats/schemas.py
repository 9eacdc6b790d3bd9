"""Pydantic schemas for the chats feature."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from pydantic import Field, field_validator

from chat_service.core.schemas import CamelModel
from chat_service.features.users.schemas import UserRead


class ChatText(CamelModel):
    """Message text; surrounding whitespace is kept, blank text is rejected."""

    text: str = Field(..., min_length=1, max_length=10_000)

    @field_validator("text")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be blank")
        return v


class ChatCreate(ChatText):
    """HTTP payload for posting a message on behalf of a user."""

    author_id: UUID


class ChatRead(CamelModel):
    """Wire representation: ``{id, text, authorId, author, createdAt, modified}``."""

    id: UUID
    text: str
    author_id: UUID
    author: UserRead
    created_at: datetime
    modified: bool = False

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """SQLite hands back naive datetimes; they are stored as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v
