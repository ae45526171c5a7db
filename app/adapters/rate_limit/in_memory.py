"""In-memory fixed-window rate limit store.

Used only when Redis is not configured.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Fixed (tumbling) window: up to ``2 * limit`` requests can land in a short
  span straddling a window boundary.
- Expired counters are swept on a random fraction of calls instead of by a
  background task.
"""

from __future__ import annotations

import math
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import Decision, WindowStore


@dataclass
class _Counter:
    count: int
    reset_at_ms: int


class MemoryWindowStore(WindowStore):
    """Process-local fixed-window counter per identifier.

    Important:
        State is neither persisted nor shared across instances. It resets on
        restart, which is accepted for the degraded-availability path.
    """

    def __init__(
        self,
        *,
        sweep_probability: float = 0.01,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            sweep_probability: Chance per call of sweeping expired counters.
            clock: Time source function returning UNIX time in seconds.
            rng: Source of uniform floats in [0, 1) used for sweep sampling.

        Raises:
            ValueError: If sweep_probability is outside [0, 1].
        """
        if not 0.0 <= sweep_probability <= 1.0:
            raise ValueError("sweep_probability must be between 0 and 1")

        self._sweep_probability = sweep_probability
        self._clock = clock
        self._rng = rng
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}

    def __len__(self) -> int:
        return len(self._counters)

    def _sweep_locked(self, now_ms: int) -> None:
        expired = [key for key, counter in self._counters.items() if counter.reset_at_ms < now_ms]
        for key in expired:
            del self._counters[key]

    async def hit(self, identifier: str, limit: int, window_seconds: int) -> Decision:
        """Count one request for ``identifier`` in its current fixed window.

        The first request of a window is always admitted. Later requests are
        admitted while the incremented count stays within ``limit``.
        """
        now_ms = int(self._clock() * 1000)

        with self._lock:
            if self._rng() < self._sweep_probability:
                self._sweep_locked(now_ms)

            counter = self._counters.get(identifier)
            if counter is None or now_ms >= counter.reset_at_ms:
                counter = _Counter(count=1, reset_at_ms=now_ms + window_seconds * 1000)
                self._counters[identifier] = counter
                return Decision(
                    allowed=True,
                    limit=limit,
                    remaining=max(0, limit - 1),
                    reset_at=int(math.ceil(counter.reset_at_ms / 1000)),
                )

            counter.count += 1
            return Decision(
                allowed=counter.count <= limit,
                limit=limit,
                remaining=max(0, limit - counter.count),
                reset_at=int(math.ceil(counter.reset_at_ms / 1000)),
            )
