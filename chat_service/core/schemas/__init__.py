"""Shared pydantic schemas."""

from __future__ import annotations

from chat_service.core.schemas.base import CamelModel
from chat_service.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
)

__all__ = [
    "CamelModel",
    "FieldError",
    "ProblemDetails",
    "ValidationProblemDetails",
]
