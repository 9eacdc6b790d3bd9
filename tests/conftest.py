"""Pytest configuration and shared fixtures.

Organization:
    - Environment: every test runs against in-memory SQLite with heartbeats off
    - Settings: caches cleared around each test
    - Database Fixtures: engine, session factory, session, SqlAlchemyChatStore
    - Realtime Fixtures: recording connection manager, coordinator
    - Application Fixtures: FastAPI app and HTTP client
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
import json
import os
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure or local config files
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WS_HEARTBEAT_INTERVAL", "0")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_CAPTURE_WARNINGS", "false")
os.environ.setdefault("APP_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("DB_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("LOGGING_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("WS_CONFIG_DIR", "/nonexistent")


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_settings():
    """Drop cached settings so monkeypatched env vars take effect."""
    from chat_service.core.settings import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with every table created.

    StaticPool keeps one connection so all sessions share the same data.
    """
    from chat_service.core.database import Base
    from chat_service.infra.database.session import _import_models

    _import_models()
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from chat_service.infra.database import create_session_factory

    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for repository and service tests; rolled back afterwards."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]):
    """SqlAlchemyChatStore over the in-memory database."""
    from chat_service.features.realtime.store import SqlAlchemyChatStore

    return SqlAlchemyChatStore(session_factory)


# ============================================================================
# Realtime Fixtures
# ============================================================================


class RecordingConnectionManager:
    """Stand-in for ConnectionManager that records what each connection received.

    Frames are JSON round-tripped so tests see exactly what goes on the wire.
    """

    def __init__(self) -> None:
        self.received: dict[str, list[dict[str, Any]]] = {}
        self.broadcasts: list[dict[str, Any]] = []

    def add(self, *connection_ids: str) -> None:
        for connection_id in connection_ids:
            self.received.setdefault(connection_id, [])

    def remove(self, connection_id: str) -> None:
        self.received.pop(connection_id, None)

    @property
    def connection_count(self) -> int:
        return len(self.received)

    def touch(self, connection_id: str) -> None:
        pass

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        if connection_id not in self.received:
            return False
        self.received[connection_id].append(json.loads(json.dumps(message, default=str)))
        return True

    async def broadcast(self, message: dict[str, Any], exclude: Iterable[str] | None = None) -> int:
        frame = json.loads(json.dumps(message, default=str))
        self.broadcasts.append(frame)
        skip = set(exclude or ())
        targets = [cid for cid in self.received if cid not in skip]
        for cid in targets:
            self.received[cid].append(frame)
        return len(targets)

    def events(self, connection_id: str) -> list[str]:
        """Event names received by a connection, acks shown as ``ack:<intent>``."""
        return [
            f"ack:{frame['intent']}" if frame["event"] == "ack" else frame["event"]
            for frame in self.received[connection_id]
        ]

    def frames(self, connection_id: str, event: str) -> list[dict[str, Any]]:
        return [frame for frame in self.received[connection_id] if frame["event"] == event]

    def last_ack(self, connection_id: str) -> dict[str, Any]:
        return self.frames(connection_id, "ack")[-1]

    def broadcast_events(self) -> list[str]:
        return [frame["event"] for frame in self.broadcasts]

    def clear(self) -> None:
        self.broadcasts.clear()
        for frames in self.received.values():
            frames.clear()


@pytest.fixture
def ws_settings():
    from chat_service.core.settings import WebSocketSettings

    return WebSocketSettings(heartbeat_interval=0, typing_timeout=0, send_initial_chats=True)


@pytest.fixture
def manager() -> RecordingConnectionManager:
    manager = RecordingConnectionManager()
    manager.add("conn-a", "conn-b", "conn-c")
    return manager


@pytest.fixture
def coordinator(store, manager, ws_settings):
    from chat_service.features.realtime.coordinator import ChatCoordinator
    from chat_service.features.realtime.sessions import SessionStore

    return ChatCoordinator(store, manager, SessionStore(), ws_settings)


@pytest.fixture
def send(coordinator):
    """Send one frame from a connection through the coordinator.

    Example:
        await send("conn-a", "createChat", {"text": "hi"}, ack=1)
    """

    async def _send(connection_id: str, event: str, data: Any = None, ack: Any = None) -> None:
        frame = {"event": event, "data": data}
        if ack is not None:
            frame["ack"] = ack
        await coordinator.handle_frame(connection_id, json.dumps(frame))

    return _send


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
async def app():
    """Fresh FastAPI app over a fresh in-memory database.

    ASGITransport does not run the lifespan, so tables are created here.
    """
    from chat_service.app.main import create_app
    from chat_service.infra.database import close_database, init_database

    await init_database(create_tables=True)
    try:
        yield create_app()
    finally:
        await close_database()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the app.

    Example:
        async def test_health_check(client):
            response = await client.get("/api/v1/health/")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
