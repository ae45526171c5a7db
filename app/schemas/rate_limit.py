"""Pydantic schemas for rate limit status responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """The rate limit decision applied to the current request."""

    enabled: bool = Field(
        ..., description="Whether rate limiting is enabled on this deployment."
    )
    backend: str = Field(
        ..., description="Window store in use: 'redis' (sliding) or 'memory' (fixed)."
    )
    policy: str = Field(
        ..., description="Policy applied: 'anonymous' or 'workspace'."
    )
    limit: int | None = Field(
        default=None, description="Requests allowed per window."
    )
    remaining: int | None = Field(
        default=None, description="Requests left in the current window."
    )
    reset: int | None = Field(
        default=None, description="UNIX epoch seconds when the window resets."
    )
