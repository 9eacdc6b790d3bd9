"""Async SQLAlchemy engine and session management.

The engine is built lazily from DatabaseSettings on first use, so importing
this module never touches the database. In-memory SQLite shares a single
connection (StaticPool) so every session sees the same data.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from chat_service.core.database import Base
from chat_service.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from chat_service.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine_from_settings(db_settings: DatabaseSettings) -> AsyncEngine:
    """Build an async engine for the configured URL."""
    kwargs: dict = {"echo": db_settings.echo}
    if db_settings.is_memory:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif not db_settings.is_sqlite:
        kwargs["pool_pre_ping"] = db_settings.pool_pre_ping
    return create_async_engine(db_settings.url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the project's session defaults."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings(get_db_settings())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(User))
            users = result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


def _import_models() -> None:
    # Registers every table on Base.metadata
    import chat_service.features.chats.models  # noqa: F401
    import chat_service.features.users.models  # noqa: F401


async def init_database(*, create_tables: bool | None = None) -> None:
    """Check connectivity and create missing tables.

    Args:
        create_tables: Override DB_CREATE_TABLES for this call.

    Raises:
        Exception: Whatever the driver raises when the database is unreachable.
    """
    db_settings = get_db_settings()
    should_create = db_settings.create_tables if create_tables is None else create_tables
    engine = get_engine()

    logger.info(
        "Initializing database",
        extra={"backend": engine.dialect.name, "create_tables": should_create},
    )

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if should_create:
                _import_models()
                await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(
            "Failed to initialize database",
            extra={"backend": engine.dialect.name, "error": str(e)},
        )
        raise

    logger.info("Database ready", extra={"backend": engine.dialect.name})


async def reset_database() -> None:
    """Drop and recreate every table. Destroys all users and chats."""
    _import_models()
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.warning("Database reset", extra={"backend": engine.dialect.name})


async def close_database() -> None:
    """Dispose the engine. Called during application shutdown."""
    global _engine, _session_factory

    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None


__all__ = [
    "close_database",
    "create_engine_from_settings",
    "create_session_factory",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
    "reset_database",
]
