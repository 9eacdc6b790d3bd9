"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing.
For complex queries, use the session directly.

Example:
    class UserRepository(BaseRepository[User]):
        async def find_by_name(self, session: AsyncSession, name: str) -> User | None:
            stmt = select(User).where(User.name == name).limit(1)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from chat_service.core.database.exceptions import NotFoundError
from chat_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


class BaseRepository[T]:
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises NotFoundError)
        - get_by(session, attr, value) -> T | None
        - list(session, order_by, limit, offset) -> Sequence[T]
        - create(session, instance) -> T
        - delete(session, instance) -> None

    Session is always explicit - no hidden state. Repositories flush but
    never commit; the caller owns the transaction.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            options: SQLAlchemy loader options (e.g., selectinload)

        Returns:
            Entity if found, None otherwise
        """
        if options:
            stmt = select(self.model).where(self._pk_attr() == id).options(*options)
            result = await session.execute(stmt)
            instance = result.scalar_one_or_none()
        else:
            instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T:
        """Get entity by primary key or raise NotFoundError.

        Raises:
            NotFoundError: If entity doesn't exist
        """
        instance = await self.get(session, id, options=options)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
        *,
        order_by: Iterable[Any] | None = None,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get the first entity whose ``attr`` equals ``value``.

        Args:
            session: Database session
            attr: Model attribute to filter by (e.g., User.name)
            value: Value to match
            order_by: Ordering that decides which row is "first"
            options: SQLAlchemy loader options

        Returns:
            First matching entity or None
        """
        stmt = select(self.model).where(attr == value)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if options:
            stmt = stmt.options(*options)
        result = await session.execute(stmt.limit(1))
        instance = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def list(
        self,
        session: AsyncSession,
        *,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
        options: Iterable[Any] | None = None,
    ) -> Sequence[T]:
        """List entities, optionally ordered and paginated.

        Args:
            session: Database session
            order_by: Column expressions to sort by
            limit: Maximum results to return (None for all)
            offset: Number of results to skip
            options: SQLAlchemy loader options

        Returns:
            Sequence of entities
        """
        stmt = select(self.model)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        if options:
            stmt = stmt.options(*options)
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.list: {self.model.__name__}(limit={limit}, offset={offset}) -> {len(items)} items"
        )
        return items

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        """Delete an entity."""
        entity_id = getattr(instance, "id", None)
        await session.delete(instance)
        await session.flush()

        self._logger.info(
            "Entity deleted",
            extra={"entity": self.model.__name__, "id": str(entity_id), "operation": "db.delete"},
        )

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        attr = getattr(self.model, "id", None)
        if attr is None:
            raise AttributeError(f"{self.model.__name__} has no 'id' attribute")
        return attr


__all__ = [
    "BaseRepository",
]
