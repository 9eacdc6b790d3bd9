"""Health check endpoints.

- GET /health/       Database and realtime checks
- GET /health/live   Liveness probe, always 200 while the process runs
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from chat_service.core.dependencies.realtime import get_ws_coordinator
from chat_service.core.settings import get_app_settings, get_websocket_settings
from chat_service.features.health.schemas import HealthResponse, LivenessResponse
from chat_service.infra.database import get_async_session

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


async def check_database() -> bool:
    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return False
    return True


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    responses={503: {"description": "Database unavailable"}},
)
async def health_check(response: Response) -> HealthResponse:
    """Report database reachability and whether the realtime coordinator runs.

    Database failure is unhealthy (503); a stopped coordinator while
    WebSockets are enabled is degraded.
    """
    app_settings = get_app_settings()
    checks = {"database": await check_database()}
    if get_websocket_settings().enabled:
        checks["realtime"] = get_ws_coordinator() is not None

    if not checks["database"]:
        health_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif not all(checks.values()):
        health_status = "degraded"
    else:
        health_status = "healthy"

    return HealthResponse(
        status=health_status,
        timestamp=datetime.now(UTC),
        service=app_settings.service_name,
        version=app_settings.version,
        checks=checks,
    )


@router.get("/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness_check() -> LivenessResponse:
    return LivenessResponse(timestamp=datetime.now(UTC))
