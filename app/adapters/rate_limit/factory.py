"""Factory functions for building the rate limiter and its stores."""

from __future__ import annotations

import logging
import time
from typing import Callable

from redis.asyncio import Redis

from app.adapters.rate_limit.in_memory import MemoryWindowStore
from app.adapters.rate_limit.redis_store import RedisWindowStore
from app.core.config import Settings
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def create_redis_client(
    url: str | None,
    token: str | None,
    *,
    socket_timeout_seconds: float = 2.0,
) -> Redis | None:
    """Construct the async Redis client used by the sliding window.

    Missing credentials or a construction failure disable the durable path
    for the caller's lifetime. Nothing is retried.

    Args:
        url: Redis connection URL.
        token: Auth token, passed as the connection password.
        socket_timeout_seconds: Connect/read timeout applied to every call.

    Returns:
        Redis client, or None when the durable backend is unavailable.
    """
    if not url or not token:
        logger.warning(
            "rate_limit.redis_disabled",
            extra={
                "reason": "missing_credentials",
                "url_present": bool(url),
                "token_present": bool(token),
            },
        )
        return None

    try:
        return Redis.from_url(
            url,
            password=token,
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=socket_timeout_seconds,
        )
    except (ValueError, TypeError) as exc:
        logger.error(
            "rate_limit.redis_disabled",
            extra={
                "reason": "client_init_failed",
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return None


def create_rate_limiter(
    cfg: Settings,
    *,
    clock: Callable[[], float] = time.time,
) -> RateLimiter:
    """Build the rate limiter for one application instance.

    Reads configuration from the provided Settings. The Redis client is
    created once here and held by the limiter.

    Returns:
        RateLimiter: Limiter backed by Redis when configured, memory otherwise.
    """
    fallback = MemoryWindowStore(
        sweep_probability=cfg.app.rate_limit_sweep_probability,
        clock=clock,
    )

    client = create_redis_client(
        cfg.redis.url,
        cfg.redis.token,
        socket_timeout_seconds=cfg.redis.socket_timeout_seconds,
    )
    durable = (
        RedisWindowStore(client, key_prefix=cfg.redis.key_prefix, clock=clock)
        if client is not None
        else None
    )

    return RateLimiter(durable=durable, fallback=fallback, clock=clock)
