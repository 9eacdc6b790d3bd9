"""Database infrastructure: engine, sessions, lifecycle."""

from chat_service.infra.database.session import (
    close_database,
    create_engine_from_settings,
    create_session_factory,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
    reset_database,
)

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
