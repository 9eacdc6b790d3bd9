"""WebSocket connection manager.

Owns the set of live WebSocket transports for this process and delivers
frames to them on a best-effort basis:
- Tracks active connections by a generated connection id
- Sends to one connection or broadcasts to all, concurrently
- Bounds every send with a timeout; a failing or slow recipient is dropped
- Optional heartbeat pings and idle-connection reaping

The manager knows nothing about users or chats; it moves JSON frames.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
import json
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from chat_service.core.settings import get_websocket_settings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi import WebSocket

    from chat_service.core.settings import WebSocketSettings

logger = logging.getLogger(__name__)

CLOSE_TIMEOUT = 1.0


@dataclass
class ConnectionInfo:
    """Metadata about a WebSocket connection."""

    connection_id: str
    websocket: WebSocket
    connected_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)


class ConnectionManager:
    """Manages the live WebSocket transports of this process.

    Example:
        manager = ConnectionManager()
        await manager.start()

        connection_id = await manager.connect(websocket)
        try:
            async for message in websocket.iter_text():
                ...
        finally:
            await manager.disconnect(connection_id)

        await manager.broadcast({"event": "newChat", "data": {...}})
    """

    def __init__(self, settings: WebSocketSettings | None = None) -> None:
        self._settings = settings or get_websocket_settings()

        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}
        self._running = False
        self._heartbeat_task: asyncio.Task | None = None

    @property
    def settings(self) -> WebSocketSettings:
        return self._settings

    async def start(self) -> None:
        """Start the manager and, when configured, the heartbeat task."""
        if self._running:
            return

        self._running = True
        if self._settings.heartbeat_interval > 0:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            logger.debug(
                "Heartbeat task started",
                extra={"interval": self._settings.heartbeat_interval},
            )
        logger.info("Connection manager started")

    async def stop(self) -> None:
        """Stop the manager and close all connections."""
        self._running = False

        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None

        closed = len(self._connections)
        for conn_info in list(self._connections.values()):
            await self._close_quietly(conn_info.websocket, code=1001, reason="Server shutdown")
        self._connections.clear()

        logger.info("Connection manager stopped", extra={"connections_closed": closed})

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a new WebSocket connection.

        Returns:
            Unique connection ID

        Raises:
            ConnectionRefusedError: If max connections reached
        """
        if len(self._connections) >= self._settings.max_connections:
            logger.warning(
                "Connection refused: max connections reached",
                extra={"max": self._settings.max_connections},
            )
            raise ConnectionRefusedError("Maximum connections reached")

        await websocket.accept()

        connection_id = uuid4().hex
        self._connections[connection_id] = ConnectionInfo(
            connection_id=connection_id,
            websocket=websocket,
        )

        logger.info(
            "WebSocket connected",
            extra={
                "connection_id": connection_id,
                "total_connections": len(self._connections),
            },
        )
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection and close its socket. Safe to call twice."""
        conn_info = self._connections.pop(connection_id, None)
        if conn_info is None:
            return

        await self._close_quietly(conn_info.websocket)

        logger.info(
            "WebSocket disconnected",
            extra={
                "connection_id": connection_id,
                "duration_seconds": round(time.time() - conn_info.connected_at, 3),
                "total_connections": len(self._connections),
            },
        )

    def touch(self, connection_id: str) -> None:
        """Record inbound activity on a connection."""
        conn_info = self._connections.get(connection_id)
        if conn_info is not None:
            conn_info.last_seen = time.time()

    async def send_to_connection(
        self,
        connection_id: str,
        message: dict[str, Any],
    ) -> bool:
        """Send a message to a specific connection.

        Returns:
            True if sent, False if the connection is unknown or was dropped
        """
        return await self._send_text(connection_id, json.dumps(message, default=str))

    async def broadcast(
        self,
        message: dict[str, Any],
        exclude: Iterable[str] | None = None,
    ) -> int:
        """Send a message to every live connection.

        Sends run concurrently; one slow or dead recipient never delays the
        others. Recipients that fail are dropped.

        Returns:
            Number of connections the message was delivered to
        """
        skip = set(exclude or ())
        targets = [cid for cid in self._connections if cid not in skip]
        if not targets:
            return 0

        payload = json.dumps(message, default=str)
        results = await asyncio.gather(*(self._send_text(cid, payload) for cid in targets))
        delivered = sum(1 for ok in results if ok)

        if delivered < len(targets):
            logger.info(
                "Broadcast partially delivered",
                extra={
                    "event": message.get("event"),
                    "delivered": delivered,
                    "targets": len(targets),
                },
            )
        return delivered

    def get_connection(self, connection_id: str) -> ConnectionInfo | None:
        """Get connection info by ID."""
        return self._connections.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def connection_ids(self) -> list[str]:
        return list(self._connections)

    @property
    def connection_count(self) -> int:
        """Total number of active connections."""
        return len(self._connections)

    # Private methods

    async def _send_text(self, connection_id: str, payload: str) -> bool:
        conn_info = self._connections.get(connection_id)
        if conn_info is None:
            return False

        try:
            await asyncio.wait_for(
                conn_info.websocket.send_text(payload),
                timeout=self._settings.send_timeout,
            )
            return True
        except TimeoutError:
            logger.warning(
                "Send timed out, dropping connection",
                extra={"connection_id": connection_id, "timeout": self._settings.send_timeout},
            )
        except Exception as e:
            logger.warning(
                "Failed to send message to connection",
                extra={"connection_id": connection_id, "error": str(e)},
            )
        await self.disconnect(connection_id)
        return False

    async def _close_quietly(self, websocket: WebSocket, code: int = 1000, reason: str | None = None) -> None:
        # The peer may already be gone; closing is best effort
        with contextlib.suppress(Exception):
            await asyncio.wait_for(websocket.close(code=code, reason=reason), timeout=CLOSE_TIMEOUT)

    async def _heartbeat_loop(self) -> None:
        """Send periodic pings and reap idle connections."""
        ping = json.dumps({"event": "ping", "data": None})
        try:
            while self._running:
                await asyncio.sleep(self._settings.heartbeat_interval)

                now = time.time()
                timeout = self._settings.connection_timeout
                for conn_id in list(self._connections):
                    conn_info = self._connections.get(conn_id)
                    if conn_info is None:
                        continue

                    if timeout > 0 and (now - conn_info.last_seen) > timeout:
                        logger.warning("Connection timed out", extra={"connection_id": conn_id})
                        await self.disconnect(conn_id)
                        continue

                    await self._send_text(conn_id, ping)
        except asyncio.CancelledError:
            pass


# Global manager instance
_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager instance.

    Raises:
        RuntimeError: If manager not initialized
    """
    if _manager is None:
        raise RuntimeError(
            "Connection manager not initialized. Call start_connection_manager() first."
        )
    return _manager


async def start_connection_manager(settings: WebSocketSettings | None = None) -> ConnectionManager:
    """Initialize and start the global connection manager."""
    global _manager

    _manager = ConnectionManager(settings)
    await _manager.start()
    return _manager


async def stop_connection_manager() -> None:
    """Stop and cleanup the global connection manager."""
    global _manager

    if _manager is not None:
        await _manager.stop()
        _manager = None
