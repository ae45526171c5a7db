"""Rate limiting adapters.

This package holds the window stores behind the rate limiter: a Redis
sorted-set sliding window shared across processes, and a process-local fixed
window used when Redis is not configured.
"""

from app.adapters.rate_limit.base import Decision, WindowStore
from app.adapters.rate_limit.in_memory import MemoryWindowStore
from app.adapters.rate_limit.redis_store import RedisWindowStore

__all__ = [
    "Decision",
    "MemoryWindowStore",
    "RedisWindowStore",
    "WindowStore",
]
