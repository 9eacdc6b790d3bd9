"""RFC 7807 Problem Details schema for error responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="URI reference identifying the problem type",
    )
    title: str = Field(
        min_length=1, max_length=200, description="Short, human-readable summary of the problem"
    )
    status: int = Field(ge=100, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Human-readable explanation specific to this occurrence",
    )
    instance: str | None = Field(
        default=None,
        max_length=500,
        description="URI reference identifying the specific occurrence",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "chat-not-found",
                "title": "Not Found",
                "status": 404,
                "detail": "Chat not found",
                "instance": "/api/v1/chats/0190c8f2-6e1a-7c3b-8d4e-5f6a7b8c9d0e",
            }
        },
        str_strip_whitespace=True,
    )


class FieldError(BaseModel):
    """One field-level validation failure."""

    field: str = Field(description="Dotted path of the offending field")
    message: str = Field(description="Validation error message")
    type: str = Field(description="Validation error type")


class ValidationProblemDetails(ProblemDetails):
    """Problem details carrying field-level validation errors."""

    errors: list[FieldError] = Field(default_factory=list)
