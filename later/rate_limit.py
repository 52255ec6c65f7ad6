from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass

import redis

from later.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after: int


class InMemoryRateLimiter:
    def __init__(self) -> None:
        self._buckets: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str, limit: int, window_sec: int) -> RateLimitResult:
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets.setdefault(key, deque())
            while bucket and now - bucket[0] > window_sec:
                bucket.popleft()
            if len(bucket) >= limit:
                retry_after = max(1, int(window_sec - (now - bucket[0])))
                return RateLimitResult(False, retry_after)
            bucket.append(now)
        return RateLimitResult(True, 0)


class RedisRateLimiter:
    """Fixed window counter shared across workers."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimiter":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def allow(self, key: str, limit: int, window_sec: int) -> RateLimitResult:
        now = int(time.time())
        window = now // window_sec
        redis_key = f"later:rl:{key}:{window}"
        count = int(self._client.incr(redis_key))
        if count == 1:
            self._client.expire(redis_key, window_sec + 1)
        if count > limit:
            retry_after = max(1, window_sec - (now % window_sec))
            return RateLimitResult(False, retry_after)
        return RateLimitResult(True, 0)


def build_rate_limiter(settings: Settings) -> InMemoryRateLimiter | RedisRateLimiter:
    if settings.REDIS_URL:
        try:
            return RedisRateLimiter.from_url(settings.REDIS_URL)
        except (redis.RedisError, ValueError) as exc:
            logger.warning("Redis rate limiter unavailable (%s); using in-memory limiter", exc)
    return InMemoryRateLimiter()
