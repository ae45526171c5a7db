"""Rate limit decision orchestration.

The limiter prefers the Redis sliding window and uses the in-memory fixed
window only when Redis was never configured. It never raises: any failure
while deciding is logged and converted to an "allow" decision, so the
protected API stays available when the limiter's own infrastructure is
degraded.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from typing import Callable

from app.adapters.rate_limit.base import Decision, WindowStore

logger = logging.getLogger(__name__)


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing client IPs."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class RateLimiter:
    """Decides, per identifier, whether a request is admitted.

    Runtime failures of the Redis store fail open directly; they do not
    fall back to the memory store.

    Attributes:
        backend: "redis" when a durable store is held, "memory" otherwise.
    """

    def __init__(
        self,
        *,
        durable: WindowStore | None,
        fallback: WindowStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._durable = durable
        self._fallback = fallback
        self._clock = clock

    @property
    def backend(self) -> str:
        return "redis" if self._durable is not None else "memory"

    def _fail_open(self, limit: int, window_seconds: int) -> Decision:
        now_ms = int(self._clock() * 1000)
        return Decision(
            allowed=True,
            limit=limit,
            remaining=limit,
            reset_at=int(math.ceil((now_ms + window_seconds * 1000) / 1000)),
        )

    async def check(self, identifier: str, limit: int, window_seconds: int) -> Decision:
        """Decide whether a new request for ``identifier`` is admitted.

        Args:
            identifier: Caller identity chosen by the HTTP layer.
            limit: Maximum requests per window (> 0).
            window_seconds: Window size in seconds (> 0).

        Returns:
            Decision for this request. Never raises.
        """
        store = self._durable if self._durable is not None else self._fallback

        try:
            return await store.hit(identifier, limit, window_seconds)
        except Exception as exc:
            logger.warning(
                "rate_limit.backend_error",
                extra={
                    "backend": self.backend,
                    "key_hash": hash_identifier(identifier),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "action": "fail_open",
                },
            )
            return self._fail_open(limit, window_seconds)

    async def close(self) -> None:
        """Release the Redis client, if one is held."""
        if self._durable is not None:
            await self._durable.close()
