"""Redis-backed sliding-window rate limit store.

Each identifier owns a sorted set at ``<prefix>:<identifier>`` whose members
are per-request tokens scored by arrival time in milliseconds. Every hit runs
prune, count, add and expire as a single MULTI/EXEC pipeline, so concurrent
requests for the same identifier never observe a partially updated set.
"""

from __future__ import annotations

import logging
import math
import secrets
import time
from typing import Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import Decision, WindowStore
from app.core.errors import RateLimitBackendError

logger = logging.getLogger(__name__)


class RedisWindowStore(WindowStore):
    """True sliding window over a Redis sorted set.

    Bounds each identifier to at most ``limit`` admitted requests in any
    trailing ``window_seconds`` interval.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._key_prefix = key_prefix
        self._clock = clock

    def key_for(self, identifier: str) -> str:
        return f"{self._key_prefix}:{identifier}"

    @staticmethod
    def _member(now_ms: int) -> str:
        # Suffix keeps same-millisecond requests from collapsing into one member.
        return f"{now_ms}-{secrets.token_hex(4)}"

    async def hit(self, identifier: str, limit: int, window_seconds: int) -> Decision:
        """Record a request and decide on it against prior occupancy.

        Admission uses the count observed before this request's member was
        added. ``reset_at`` is reported as now plus a full window rather than
        the expiry of the oldest member, which is slightly pessimistic.

        Raises:
            RateLimitBackendError: If Redis fails or returns an unexpected reply.
        """
        now_ms = int(self._clock() * 1000)
        window_ms = window_seconds * 1000
        window_start = now_ms - window_ms
        key = self.key_for(identifier)

        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, 0, window_start)
                pipe.zcard(key)
                pipe.zadd(key, {self._member(now_ms): now_ms})
                pipe.expire(key, window_seconds * 2)
                results = await pipe.execute()
        except RedisError as exc:
            raise RateLimitBackendError(
                code="rate_limit_backend_unavailable",
                message=f"Redis pipeline failed: {type(exc).__name__}",
                details={"backend": "redis"},
            ) from exc

        if not results or len(results) < 2 or not isinstance(results[1], int):
            raise RateLimitBackendError(
                code="rate_limit_backend_bad_reply",
                message="Redis pipeline returned an unexpected reply",
                details={"backend": "redis"},
            )

        count = results[1]
        logger.debug(
            "rate_limit.redis_window",
            extra={"observed_count": count, "limit": limit, "window_s": window_seconds},
        )

        return Decision(
            allowed=count < limit,
            limit=limit,
            remaining=max(0, limit - count - 1),
            reset_at=int(math.ceil((now_ms + window_ms) / 1000)),
        )

    async def close(self) -> None:
        await self._redis.aclose()
