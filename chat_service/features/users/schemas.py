"""Pydantic schemas for the users feature."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field, field_validator

from chat_service.core.schemas import CamelModel

HEX_COLOR_PATTERN = r"^#(?:[0-9A-Fa-f]{3}){1,2}$"


class UserBase(CamelModel):
    """Shared attributes for user payloads."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name",
    )
    color: str = Field(
        ...,
        pattern=HEX_COLOR_PATTERN,
        description="Hex color code (e.g., '#FF5733')",
    )
    image: str | None = Field(
        default=None,
        max_length=2048,
        description="Optional avatar reference",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Trim surrounding whitespace and reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class UserCreate(UserBase):
    """Payload used when registering a user."""


class UserRead(CamelModel):
    """Wire representation of a user: ``{id, name, color, image}``."""

    id: UUID
    name: str
    color: str
    image: str | None = None
