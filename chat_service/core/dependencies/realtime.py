"""WebSocket/Realtime dependencies for FastAPI route handlers.

Usage:
    from chat_service.core.dependencies.realtime import CoordinatorDep

    @router.get("/ws/stats")
    async def stats(coordinator: CoordinatorDep):
        return {"online": len(coordinator.sessions.online_users())}
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status


def get_ws_connection_manager() -> ConnectionManager | None:
    """Return the global connection manager, or None before startup."""
    from chat_service.infra.realtime import get_connection_manager

    try:
        return get_connection_manager()
    except RuntimeError:
        return None


def get_ws_coordinator() -> ChatCoordinator | None:
    """Return the global chat coordinator, or None before startup."""
    from chat_service.features.realtime.coordinator import get_chat_coordinator

    try:
        return get_chat_coordinator()
    except RuntimeError:
        return None


async def require_coordinator(
    coordinator: Annotated[ChatCoordinator | None, Depends(get_ws_coordinator)],
) -> ChatCoordinator:
    """Raise HTTP 503 when the coordinator is not running."""
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime coordinator is not available",
        )
    return coordinator


# Imported after the functions above to avoid circular imports
from chat_service.features.realtime.coordinator import ChatCoordinator  # noqa: E402
from chat_service.infra.realtime import ConnectionManager  # noqa: E402

CoordinatorDep = Annotated[ChatCoordinator, Depends(require_coordinator)]
