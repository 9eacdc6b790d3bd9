"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chat_service.core.settings import get_app_settings, get_websocket_settings
from chat_service.features.chats.router import router as chats_router
from chat_service.features.health.router import router as health_router
from chat_service.features.users.router import router as users_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from chat_service.core.settings import AppSettings, WebSocketSettings

logger = logging.getLogger(__name__)


def setup_routers(
    app: FastAPI,
    app_settings: AppSettings | None = None,
    websocket_settings: WebSocketSettings | None = None,
) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional override for the API prefix.
        websocket_settings: Optional override for realtime/WebSocket behavior.
    """
    app_settings = app_settings or get_app_settings()
    websocket_settings = websocket_settings or get_websocket_settings()

    api_prefix = app_settings.api_prefix

    app.include_router(health_router, prefix=api_prefix, tags=["health"])
    app.include_router(users_router, prefix=api_prefix, tags=["users"])
    app.include_router(chats_router, prefix=api_prefix, tags=["chats"])

    if websocket_settings.enabled:
        from chat_service.features.realtime.router import build_realtime_router

        app.include_router(build_realtime_router(), prefix=api_prefix, tags=["realtime"])
        logger.info(
            "WebSocket realtime router included - endpoint at %s%s",
            api_prefix,
            websocket_settings.path,
        )

    logger.debug(
        "Router setup complete",
        extra={"api_prefix": api_prefix, "websocket_enabled": websocket_settings.enabled},
    )
