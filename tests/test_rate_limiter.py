"""Tests for the rate limit decision orchestrator."""

import logging
from unittest.mock import AsyncMock

import pytest

from app.adapters.rate_limit.base import WindowStore
from app.adapters.rate_limit.in_memory import MemoryWindowStore
from app.adapters.rate_limit.redis_store import RedisWindowStore
from app.core.errors import RateLimitBackendError
from app.services.rate_limiter import RateLimiter, hash_identifier


def _failing_store(exc: Exception) -> AsyncMock:
    store = AsyncMock(spec=WindowStore)
    store.hit.side_effect = exc
    return store


@pytest.fixture
def memory_store(clock) -> MemoryWindowStore:
    return MemoryWindowStore(sweep_probability=0.0, clock=clock)


class TestDurablePath:
    """Redis configured: sliding window decides."""

    @pytest.mark.asyncio
    async def test_eleventh_request_denied(self, fake_redis, clock, memory_store) -> None:
        limiter = RateLimiter(
            durable=RedisWindowStore(fake_redis, clock=clock),
            fallback=memory_store,
            clock=clock,
        )

        results = [await limiter.check("1.2.3.4", 10, 10) for _ in range(11)]

        assert [r.allowed for r in results] == [True] * 10 + [False]
        assert [r.remaining for r in results[:10]] == [9, 8, 7, 6, 5, 4, 3, 2, 1, 0]
        assert limiter.backend == "redis"
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_workspace_and_ip_ceilings_are_independent(self, fake_redis, clock, memory_store) -> None:
        limiter = RateLimiter(
            durable=RedisWindowStore(fake_redis, clock=clock),
            fallback=memory_store,
            clock=clock,
        )

        workspace = [await limiter.check("1.2.3.4:workspace:abc", 200, 10) for _ in range(200)]
        bare = [await limiter.check("1.2.3.4", 10, 10) for _ in range(11)]

        assert all(r.allowed for r in workspace)
        assert [r.allowed for r in bare] == [True] * 10 + [False]

    @pytest.mark.asyncio
    async def test_remaining_never_exceeds_limit_minus_one(self, fake_redis, clock, memory_store) -> None:
        limiter = RateLimiter(
            durable=RedisWindowStore(fake_redis, clock=clock),
            fallback=memory_store,
            clock=clock,
        )

        for _ in range(15):
            result = await limiter.check("k", 5, 10)
            assert 0 <= result.remaining <= 4
            clock.advance(0.5)


class TestFailOpen:
    """Redis configured but failing: every request is allowed."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [
            RateLimitBackendError(code="rate_limit_backend_unavailable", message="down"),
            RuntimeError("unexpected"),
        ],
    )
    async def test_always_allows(self, exc, clock) -> None:
        fallback = AsyncMock(spec=WindowStore)
        limiter = RateLimiter(durable=_failing_store(exc), fallback=fallback, clock=clock)

        results = [await limiter.check("1.2.3.4", 10, 10) for _ in range(11)]

        assert all(r.allowed for r in results)
        assert all(r.remaining == 10 for r in results)
        assert all(r.reset_at == 1010 for r in results)
        fallback.hit.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_via_redis_store(self, fake_redis, clock, memory_store) -> None:
        from redis.exceptions import TimeoutError as RedisTimeoutError

        fake_redis.fail_with = RedisTimeoutError("read timed out")
        limiter = RateLimiter(
            durable=RedisWindowStore(fake_redis, clock=clock),
            fallback=memory_store,
            clock=clock,
        )

        results = [await limiter.check("1.2.3.4", 10, 10) for _ in range(11)]

        assert all(r.allowed for r in results)
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_logs_hashed_identifier(self, clock, memory_store, caplog) -> None:
        limiter = RateLimiter(
            durable=_failing_store(RuntimeError("boom")),
            fallback=memory_store,
            clock=clock,
        )

        with caplog.at_level(logging.WARNING, logger="app.services.rate_limiter"):
            await limiter.check("1.2.3.4", 10, 10)

        records = [r for r in caplog.records if r.getMessage() == "rate_limit.backend_error"]
        assert len(records) == 1
        assert records[0].key_hash == hash_identifier("1.2.3.4")
        assert records[0].action == "fail_open"
        assert "1.2.3.4" not in str(records[0].__dict__.values())


class TestMemoryPath:
    """Redis never configured: fixed window decides."""

    @pytest.mark.asyncio
    async def test_fixed_window_scenario(self, clock, memory_store) -> None:
        limiter = RateLimiter(durable=None, fallback=memory_store, clock=clock)

        results = [await limiter.check("anon", 3, 5) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]
        assert limiter.backend == "memory"

    @pytest.mark.asyncio
    async def test_memory_failure_fails_open(self, clock) -> None:
        limiter = RateLimiter(
            durable=None,
            fallback=_failing_store(RuntimeError("boom")),
            clock=clock,
        )

        result = await limiter.check("anon", 3, 5)

        assert result.allowed is True
        assert result.remaining == 3


@pytest.mark.asyncio
async def test_close_releases_durable_store(clock, memory_store) -> None:
    durable = AsyncMock(spec=WindowStore)
    limiter = RateLimiter(durable=durable, fallback=memory_store, clock=clock)

    await limiter.close()

    durable.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_without_durable_store_is_noop(clock, memory_store) -> None:
    limiter = RateLimiter(durable=None, fallback=memory_store, clock=clock)

    await limiter.close()
