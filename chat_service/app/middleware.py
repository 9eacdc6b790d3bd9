"""Middleware configuration for FastAPI application."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING
import uuid

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from chat_service.core.settings import get_app_settings
from chat_service.infra.logging import remove_from_log_context, set_log_context

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each HTTP request with an id, echoed back and bound into log context."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_log_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            remove_from_log_context("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def configure_middleware(app: FastAPI) -> None:
    """Configure CORS and request ids.

    Args:
        app: FastAPI application instance.
    """
    app_settings = get_app_settings()

    cors_origins = app_settings.cors_origins or ["*"]
    logger.debug("Configuring CORS", extra={"origins": cors_origins})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )
    app.add_middleware(RequestIDMiddleware)
