"""Base schema classes for API and WebSocket payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose wire form uses camelCase keys.

    Fields are declared in snake_case and exposed as camelCase
    (``created_at`` -> ``createdAt``). Input accepts either spelling.

    Example:
        class ChatRead(CamelModel):
            id: UUID
            created_at: datetime

        ChatRead.model_validate(orm_chat).model_dump(mode="json", by_alias=True)
    """

    model_config = ConfigDict(
        # camelCase on the wire
        alias_generator=to_camel,
        # Accept snake_case too
        populate_by_name=True,
        # Allow creation from ORM models (SQLAlchemy)
        from_attributes=True,
        # Ignore extra fields (silently drop unexpected data)
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
