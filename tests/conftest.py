"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before settings are imported and provides a
deterministic clock plus an in-process stand-in for the Redis pipeline
surface used by the sliding-window store.
"""

import os
from typing import Any

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_TOKEN", None)
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")


class FakeClock:
    """Deterministic clock returning UNIX seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakePipeline:
    """Buffers sorted-set commands and applies them on execute()."""

    def __init__(self, redis: "FakeSortedSetRedis", transaction: bool) -> None:
        self._redis = redis
        self.transaction = transaction
        self._ops: list[tuple[Any, ...]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self._ops.clear()

    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> "FakePipeline":
        self._ops.append(("zremrangebyscore", key, min_score, max_score))
        return self

    def zcard(self, key: str) -> "FakePipeline":
        self._ops.append(("zcard", key))
        return self

    def zadd(self, key: str, mapping: dict[str, float]) -> "FakePipeline":
        self._ops.append(("zadd", key, mapping))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self._ops.append(("expire", key, seconds))
        return self

    async def execute(self) -> list[Any]:
        self._redis.executed.append([op[0] for op in self._ops])
        if self._redis.fail_with is not None:
            raise self._redis.fail_with
        if self._redis.reply_override is not None:
            return self._redis.reply_override

        results: list[Any] = []
        for op in self._ops:
            name, key = op[0], op[1]
            zset = self._redis.zsets.setdefault(key, {})
            if name == "zremrangebyscore":
                doomed = [m for m, s in zset.items() if op[2] <= s <= op[3]]
                for member in doomed:
                    del zset[member]
                results.append(len(doomed))
            elif name == "zcard":
                results.append(len(zset))
            elif name == "zadd":
                added = sum(1 for m in op[2] if m not in zset)
                zset.update(op[2])
                results.append(added)
            elif name == "expire":
                self._redis.ttls[key] = op[2]
                results.append(True)
        return results


class FakeSortedSetRedis:
    """In-process sorted sets behind the ``pipeline()`` API of redis.asyncio."""

    def __init__(self) -> None:
        self.zsets: dict[str, dict[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.executed: list[list[str]] = []
        self.fail_with: Exception | None = None
        self.reply_override: list[Any] | None = None
        self.transactions: list[bool] = []
        self.closed = False

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        self.transactions.append(transaction)
        return FakePipeline(self, transaction)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeSortedSetRedis:
    return FakeSortedSetRedis()
