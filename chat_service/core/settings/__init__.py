"""Modular Pydantic Settings v2 configuration.

One settings model per domain, each with its own environment prefix:
- APP_  application / HTTP server
- DB_   database
- LOG_  logging
- WS_   realtime WebSocket endpoint

Import settings via cached loaders:
    from chat_service.core.settings import get_app_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables
    4. .env file
    5. secrets_dir
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_websocket_settings,
)
from .logs import LoggingSettings
from .websocket import WebSocketSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "WebSocketSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_websocket_settings",
]
