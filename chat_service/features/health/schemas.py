"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class HealthResponse(BaseModel):
    """Overall service health with individual dependency checks.

    Example:
        ```json
        {
            "status": "healthy",
            "timestamp": "2025-01-01T00:00:00Z",
            "service": "chat-service",
            "version": "0.1.0",
            "checks": {"database": true, "realtime": true}
        }
        ```
    """

    status: HealthStatus = Field(description="Health status (healthy, degraded, unhealthy)")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")
    version: str = Field(min_length=1, max_length=50, description="Service version")
    checks: dict[str, bool] = Field(
        default_factory=dict, description="Individual dependency health checks"
    )

    model_config = ConfigDict(str_strip_whitespace=True)


class LivenessResponse(BaseModel):
    status: Literal["alive"] = "alive"
    timestamp: datetime
