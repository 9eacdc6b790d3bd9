"""SQLAlchemy models for the users feature."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from chat_service.core.database import Base, TimestampMixin, UUIDv7PKMixin


class User(Base, UUIDv7PKMixin, TimestampMixin):
    """A chat participant.

    Names are not unique; login-by-name resolves to the oldest match.
    Only ``color`` changes after creation.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Display name, also the fallback login key",
    )
    color: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Hex color code (e.g., '#FF5733')",
    )
    image: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
        comment="Optional avatar reference (URL or asset key)",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r})>"
