"""WebSocket configuration settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_websocket_yaml_source


class WebSocketSettings(BaseSettings):
    """WebSocket server and connection settings.

    Environment variables use WS_ prefix.
    Example: WS_SEND_TIMEOUT=2.5, WS_TYPING_TIMEOUT=10
    """

    # ──────────────────────────────────────────────────────────────
    # Endpoint
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(
        default=True,
        description="Enable the realtime WebSocket endpoint",
    )

    path: str = Field(
        default="/ws",
        pattern=r"^/.*$",
        description="WebSocket route path, mounted under the API prefix",
    )

    # ──────────────────────────────────────────────────────────────
    # Connection limits
    # ──────────────────────────────────────────────────────────────

    max_connections: int = Field(
        default=10000,
        ge=1,
        le=100000,
        description="Maximum concurrent WebSocket connections per process",
    )

    max_message_size: int = Field(
        default=65536,
        ge=1024,
        le=1048576,
        description="Maximum incoming frame size in bytes (default 64KB)",
    )

    # ──────────────────────────────────────────────────────────────
    # Delivery and liveness
    # ──────────────────────────────────────────────────────────────

    send_timeout: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Per-recipient send timeout; slower recipients are dropped",
    )

    heartbeat_interval: float = Field(
        default=30.0,
        ge=0,
        le=300,
        description="Interval between ping frames in seconds (0 to disable)",
    )

    connection_timeout: float = Field(
        default=0.0,
        ge=0,
        le=3600,
        description="Drop connections silent for this many seconds (0 to disable)",
    )

    typing_timeout: float = Field(
        default=0.0,
        ge=0,
        le=600,
        description=(
            "Clear typing state server-side after this many quiet seconds "
            "(0 leaves expiry to the client's stopTyping)"
        ),
    )

    send_initial_chats: bool = Field(
        default=True,
        description="Push the full message list as a 'chats' event on connect",
    )

    model_config = SettingsConfigDict(
        env_prefix="WS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_websocket_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
