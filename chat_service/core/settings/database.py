"""Database settings for the async SQLAlchemy engine.

The service only needs an async SQLAlchemy URL. SQLite through aiosqlite is
the default so a fresh checkout runs without external infrastructure; any
other async driver URL (e.g. postgresql+psycopg://...) works unchanged.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_db_yaml_source


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables use DB_ prefix.
    Example: DB_URL=sqlite+aiosqlite:///./chat.db, DB_ECHO=true
    """

    url: str = Field(
        default="sqlite+aiosqlite:///./chat.db",
        min_length=1,
        description="Async SQLAlchemy database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    create_tables: bool = Field(
        default=True,
        description="Create missing tables on startup (no migrations are shipped)",
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Enable connection health checks before use.",
    )

    @field_validator("url")
    @classmethod
    def require_async_driver(cls, v: str) -> str:
        """Reject sync driver URLs; the engine is always async."""
        scheme = v.split("://", 1)[0]
        if "+" not in scheme and not scheme.startswith("sqlite"):
            msg = f"Database URL must name an async driver (e.g. postgresql+psycopg), got {scheme!r}"
            raise ValueError(msg)
        if scheme == "sqlite":
            return "sqlite+aiosqlite://" + v.split("://", 1)[1]
        return v

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured backend is SQLite."""
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        """Whether the configured backend is an in-memory SQLite database."""
        return self.is_sqlite and (":memory:" in self.url or self.url.endswith("://"))

    model_config = SettingsConfigDict(
        env_prefix="DB_",
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
            create_db_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
