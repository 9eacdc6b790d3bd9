"""WebSocket router for the realtime chat protocol.

Endpoints:
- WS  /ws        Chat connection endpoint
- GET /ws/stats  Connection, presence and typing counts

Frame format, both directions: ``{"event": str, "data": any, "ack": str | int | null}``.
"""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from chat_service.core.dependencies.realtime import (
    CoordinatorDep,
    get_ws_connection_manager,
    get_ws_coordinator,
)
from chat_service.core.settings import get_websocket_settings
from chat_service.features.realtime.schemas import ConnectionStats
from chat_service.infra.logging import clear_log_context, set_log_context

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Serve one chat connection until the client goes away.

    On connect the client receives a ``chats`` event with every message.
    Each inbound frame is handed to the coordinator, which answers with
    exactly one ``ack`` frame plus any broadcast events.
    """
    manager = get_ws_connection_manager()
    coordinator = get_ws_coordinator()
    if manager is None or coordinator is None:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="Server not ready")
        return

    try:
        connection_id = await manager.connect(websocket)
    except ConnectionRefusedError as e:
        logger.warning("WebSocket connection refused", extra={"reason": str(e)})
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason=str(e))
        return

    clear_log_context()
    set_log_context(connection_id=connection_id)
    max_size = manager.settings.max_message_size

    try:
        await coordinator.handle_connect(connection_id)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            raw: str | bytes = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            manager.touch(connection_id)
            size = len(raw.encode()) if isinstance(raw, str) else len(raw)
            if size > max_size:
                await coordinator.reject_oversized(connection_id, size, max_size)
                continue
            await coordinator.handle_frame(connection_id, raw)
    except WebSocketDisconnect as e:
        logger.debug("WebSocket client disconnected", extra={"code": e.code})
    except RuntimeError as e:
        # receive on a socket the manager already closed (dropped recipient)
        logger.debug("WebSocket receive after close", extra={"error": str(e)})
    finally:
        # Cleanup must finish even when the handler task is cancelled
        with anyio.CancelScope(shield=True):
            await coordinator.handle_disconnect(connection_id)
            await manager.disconnect(connection_id)
        clear_log_context()


@router.get(
    "/stats",
    response_model=ConnectionStats,
    summary="Get realtime statistics",
    description="Live connection, authenticated session, online user and typing counts.",
)
async def get_stats(coordinator: CoordinatorDep) -> ConnectionStats:
    return ConnectionStats(
        total_connections=coordinator.manager.connection_count,
        authenticated_connections=coordinator.sessions.session_count,
        online_users=len(coordinator.sessions.online_users()),
        typing_users=len(coordinator.sessions.typing_users()),
    )


def build_realtime_router() -> APIRouter:
    """Realtime router with the WebSocket route at WS_PATH."""
    ws_settings = get_websocket_settings()
    realtime = APIRouter()
    realtime.add_api_websocket_route(ws_settings.path, websocket_endpoint)
    realtime.include_router(router, prefix=ws_settings.path)
    return realtime
