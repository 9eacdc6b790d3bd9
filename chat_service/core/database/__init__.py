"""Core database package: declarative base, mixins and the thin repository.

Base Classes and Mixins:
    - Base: Declarative base with auto table naming
    - UUIDv7PKMixin: Time-sortable UUID primary key
    - TimestampMixin: created_at, updated_at tracking

Repository:
    - BaseRepository[T]: Generic CRUD with explicit session passing

Exceptions:
    - RepositoryError, NotFoundError
"""

from __future__ import annotations

from chat_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDv7PKMixin,
    generate_uuid7,
)
from chat_service.core.database.exceptions import NotFoundError, RepositoryError
from chat_service.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "RepositoryError",
    "TimestampMixin",
    "UUIDv7PKMixin",
    "generate_uuid7",
]
