"""Pydantic schemas for rate limiting diagnostics and error responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """Current limiter configuration and tracked key count."""

    enabled: bool = Field(..., description="Whether rate limiting is active.")
    strategy: str | None = Field(
        default=None,
        description="Limiter algorithm: 'sliding-window' or 'token-bucket'.",
    )
    limit: int | None = Field(
        default=None, description="Maximum admitted requests per window and client."
    )
    window_seconds: float | None = Field(
        default=None, description="Window length in seconds."
    )
    tracked_keys: int = Field(
        0, description="Number of client keys currently held in memory."
    )


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code.")
    message: str = Field(..., description="Human-readable error message.")
    request_id: str | None = Field(default=None, description="Request correlation id.")


class ErrorResponse(BaseModel):
    """Envelope used by every error response."""

    error: ErrorBody
