"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Rate limit denials carry the decision numbers; backend failures name the
    store that failed.
    """

    retry_after: float
    limit: int
    remaining: int
    reset: int
    backend: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class RateLimitBackendError(AppError):
    """Raised when the durable rate limit store fails a call."""


class RateLimitExceededError(AppError):
    """Raised when a caller has used up its window; rendered as HTTP 429."""
