"""Rate limiter interfaces.

The orchestrator depends on this abstraction (not the concrete stores) so the
Redis sliding window and the in-memory fixed window stay interchangeable.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Decision:
    """Result of a single rate limit check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Configured ceiling for the window.
        remaining: Requests still permitted in the current window (>= 0).
        reset_at: UNIX epoch seconds when the current window fully expires.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def retry_after(self, now: float) -> int:
        """Seconds until ``reset_at``, never negative."""
        return max(0, int(math.ceil(self.reset_at - now)))


class WindowStore(ABC):
    """Interface for rate limit window stores."""

    @abstractmethod
    async def hit(self, identifier: str, limit: int, window_seconds: int) -> Decision:
        """Record one request for ``identifier`` and decide on it.

        Args:
            identifier: Caller identity (IP, or IP plus workspace).
            limit: Maximum requests per window.
            window_seconds: Window size in seconds.

        Returns:
            Decision describing whether the request is admitted.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources. No-op for process-local stores."""
