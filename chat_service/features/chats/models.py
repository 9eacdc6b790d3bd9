"""SQLAlchemy models for the chats feature."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_service.core.database import Base, TimestampMixin, UUIDv7PKMixin
from chat_service.features.users.models import User


class Chat(Base, UUIDv7PKMixin, TimestampMixin):
    """A chat message.

    Displayed in ``created_at`` order; the UUID v7 id breaks ties.
    Editing replaces ``text`` and sets ``modified``.
    """

    __tablename__ = "chats"

    text: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    modified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Set once the text has been edited",
    )

    author: Mapped[User] = relationship(User, lazy="selectin")

    def __repr__(self) -> str:
        return f"<Chat(id={self.id}, author_id={self.author_id}, modified={self.modified})>"
