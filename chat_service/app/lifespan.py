"""Application lifespan management.

Startup order:
1. Core (logging)
2. Database (engine, tables)
3. WebSocket connection manager
4. Chat coordinator (needs database and connection manager)

Shutdown runs in reverse.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from chat_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_websocket_settings,
)
from chat_service.infra.logging.config import setup_logging, shutdown as shutdown_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)

_websocket_enabled = False


async def _startup_core() -> None:
    """Configure logging."""
    app = get_app_settings()
    log = get_logging_settings()

    setup_logging(log_settings=log, force=True)
    logger.info(
        "Application starting",
        extra={"service": app.service_name, "environment": app.environment},
    )


async def _startup_database() -> None:
    """Initialize the engine and create missing tables."""
    from chat_service.infra.database import init_database

    await init_database()
    logger.info("Database connection initialized", extra={"sqlite": get_db_settings().is_sqlite})


async def _startup_websocket() -> None:
    """Start the connection manager and the chat coordinator."""
    global _websocket_enabled

    from chat_service.features.realtime import SqlAlchemyChatStore, start_chat_coordinator
    from chat_service.infra.database import get_session_factory
    from chat_service.infra.realtime import start_connection_manager

    ws = get_websocket_settings()
    _websocket_enabled = False

    if not ws.enabled:
        return

    manager = await start_connection_manager(ws)
    await start_chat_coordinator(SqlAlchemyChatStore(get_session_factory()), manager, ws)
    _websocket_enabled = True
    logger.info(
        "Realtime chat started",
        extra={"max_connections": ws.max_connections, "heartbeat_interval": ws.heartbeat_interval},
    )


async def _shutdown_websocket() -> None:
    """Stop the coordinator, then close every live connection."""
    global _websocket_enabled

    from chat_service.features.realtime import stop_chat_coordinator
    from chat_service.infra.realtime import stop_connection_manager

    if not _websocket_enabled:
        return

    await stop_chat_coordinator()
    await stop_connection_manager()
    _websocket_enabled = False
    logger.info("Realtime chat stopped")


async def _shutdown_database() -> None:
    from chat_service.infra.database import close_database

    await close_database()
    logger.info("Database connection closed")


async def _shutdown_core() -> None:
    """Flush queued log records."""
    logger.info("Application shutdown complete")
    shutdown_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app

    await _startup_core()
    await _startup_database()
    await _startup_websocket()

    app_settings = get_app_settings()
    logger.info(
        "Application startup complete - listening on %s:%s",
        app_settings.host,
        app_settings.port,
        extra={"service": app_settings.service_name, "environment": app_settings.environment},
    )

    try:
        yield
    finally:
        logger.info("Application shutting down", extra={"service": app_settings.service_name})
        await _shutdown_websocket()
        await _shutdown_database()
        await _shutdown_core()
