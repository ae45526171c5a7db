"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Fail-safe: a failure inside the limiter never blocks a request.
- Safe defaults: enabled unless explicitly disabled via settings.

Rate limiting strategy:
- Anonymous traffic is keyed by client IP with a low ceiling.
- Routes carrying a ``workspace_id`` are keyed by IP plus workspace and get a
  higher ceiling.
- Named policies (AI endpoints) are namespaced by policy name so their
  counters never collide with the public API policy.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request, Response

from app.adapters.rate_limit.base import Decision
from app.core.config import settings
from app.core.errors import RateLimitExceededError
from app.services.rate_limiter import RateLimiter, hash_identifier

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named ceiling: ``limit`` requests per ``window_seconds``."""

    name: str
    limit: int
    window_seconds: int


# Ceilings for AI endpoints mounted by other services. Every policy runs on the
# configured store, so with Redis they get the sliding window too.
NAMED_POLICIES: dict[str, RateLimitPolicy] = {
    "ai-chat": RateLimitPolicy("ai-chat", limit=10, window_seconds=60),
    "ai-tool": RateLimitPolicy("ai-tool", limit=20, window_seconds=60),
    "general": RateLimitPolicy("general", limit=60, window_seconds=60),
    "avatar-upload": RateLimitPolicy("avatar-upload", limit=5, window_seconds=10),
    "ai-suggestions": RateLimitPolicy("ai-suggestions", limit=10, window_seconds=60),
}


def client_identifier(request: Request) -> str:
    """Pick the client IP from proxy headers.

    Order: first ``X-Forwarded-For`` entry, ``CF-Connecting-IP``,
    ``X-Real-IP``, then the literal ``"anonymous"``.
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return (
        request.headers.get("cf-connecting-ip")
        or request.headers.get("x-real-ip")
        or ANONYMOUS_IDENTIFIER
    )


def resolve_policy(request: Request) -> tuple[str, RateLimitPolicy]:
    """Build the limiter identifier and ceiling for the public API.

    Args:
        request: FastAPI request, after routing (path params resolved).

    Returns:
        Tuple of (identifier, policy).
    """

    ip = client_identifier(request)
    window = settings.app.rate_limit_window_seconds
    workspace_id = request.path_params.get("workspace_id")

    if workspace_id:
        return (
            f"{ip}:workspace:{workspace_id}",
            RateLimitPolicy("workspace", settings.app.rate_limit_workspace_requests, window),
        )

    return ip, RateLimitPolicy("anonymous", settings.app.rate_limit_anonymous_requests, window)


def rate_limit_headers(decision: Decision) -> dict[str, str]:
    """Standard rate limit response headers for a decision."""

    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at),
    }


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the limiter built for this application instance."""

    return request.app.state.rate_limiter


async def _apply(
    request: Request,
    response: Response,
    resolve: Callable[[Request], tuple[str, RateLimitPolicy]],
) -> Decision | None:
    try:
        identifier, policy = resolve(request)
        decision = await get_rate_limiter(request).check(
            identifier, policy.limit, policy.window_seconds
        )
    except Exception as exc:
        logger.error(
            "rate_limit.unexpected_error",
            extra={
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "request_path": request.url.path,
            },
        )
        return None

    request.state.rate_limit = decision
    log_fields = {
        "policy": policy.name,
        "key_hash": hash_identifier(identifier),
        "limit": decision.limit,
        "remaining": decision.remaining,
        "window_s": policy.window_seconds,
    }

    if decision.allowed:
        if settings.app.rate_limit_include_headers:
            response.headers.update(rate_limit_headers(decision))
        logger.info("rate_limit.allowed", extra=log_fields)
        return decision

    retry_after = decision.retry_after(time.time())
    logger.warning("rate_limit.exceeded", extra={**log_fields, "retry_after_s": retry_after})

    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message="Too many requests",
        details={
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset": decision.reset_at,
            "retry_after": retry_after,
        },
    )


async def enforce_rate_limit(request: Request, response: Response) -> Decision | None:
    """FastAPI dependency enforcing the public API rate limit.

    Consumes one request from the caller's budget, attaches
    ``X-RateLimit-*`` headers and stores the decision on
    ``request.state.rate_limit``.

    Raises:
        RateLimitExceededError: When the caller is over its limit (HTTP 429).
    """

    if not settings.app.rate_limit_enabled:
        return None
    return await _apply(request, response, resolve_policy)


def enforce_policy(name: str) -> Callable[[Request, Response], Awaitable[Decision | None]]:
    """Build a dependency enforcing one of ``NAMED_POLICIES``.

    Usage:
        @router.post("/chat", dependencies=[Depends(enforce_policy("ai-chat"))])

    Raises:
        ValueError: If ``name`` is not a known policy.
    """

    policy = NAMED_POLICIES.get(name)
    if policy is None:
        raise ValueError(f"Unknown rate limit policy: '{name}'")

    def resolve(request: Request) -> tuple[str, RateLimitPolicy]:
        workspace_id = request.path_params.get("workspace_id")
        if workspace_id:
            return f"{policy.name}:workspace:{workspace_id}", policy
        return f"{policy.name}:{client_identifier(request)}", policy

    async def dependency(request: Request, response: Response) -> Decision | None:
        if not settings.app.rate_limit_enabled:
            return None
        return await _apply(request, response, resolve)

    return dependency
