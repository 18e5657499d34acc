"""Per-origin rate limiting for public removal requests.

Counters use a fixed window: the first hit from an origin opens a window of
REMOVAL_RATE_LIMIT_WINDOW_SECONDS and every hit inside it increments the
same counter. An origin can land up to twice the cap across a window
boundary.
"""

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable

import redis.asyncio as redis

from optout.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "optout:removal_rl:"


def rate_limit_key(origin: str) -> str:
    """Counter key for a requester origin. Raw addresses are never stored in the key."""
    digest = hashlib.sha256((origin or "0.0.0.0").encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest}"


class RateLimitStore:
    """Keyed counter store with per-key expiry."""

    async def get(self, key: str) -> int:
        raise NotImplementedError

    async def incr(self, key: str, window_seconds: int) -> int:
        """Atomically increment `key`, opening a new window if none is active."""
        raise NotImplementedError


class RedisRateLimitStore(RateLimitStore):
    """Counters in Redis, shared by every worker process."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.redis_client: redis.Redis | None = None

    async def get_redis(self) -> redis.Redis:
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT_SECONDS,
            )
        return self.redis_client

    async def get(self, key: str) -> int:
        r = await self.get_redis()
        value = await r.get(key)
        return int(value) if value else 0

    async def incr(self, key: str, window_seconds: int) -> int:
        r = await self.get_redis()
        # SET NX opens the window only once; INCR in the same MULTI keeps it atomic
        async with r.pipeline(transaction=True) as pipe:
            _, count = await (
                pipe.set(key, 0, ex=window_seconds, nx=True).incr(key).execute()
            )
        return int(count)


class MemoryRateLimitStore(RateLimitStore):
    """Single-process counters, for local development and tests."""

    def __init__(self, timer: Callable[[], float] = time.monotonic):
        self._timer = timer
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> tuple[int, float] | None:
        entry = self._counters.get(key)
        if entry is None:
            return None
        if entry[1] <= self._timer():
            del self._counters[key]
            return None
        return entry

    async def get(self, key: str) -> int:
        async with self._lock:
            entry = self._live(key)
            return entry[0] if entry else 0

    async def incr(self, key: str, window_seconds: int) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                entry = (0, self._timer() + window_seconds)
            count = entry[0] + 1
            self._counters[key] = (count, entry[1])
            return count


_store: RateLimitStore | None = None


def get_rate_limit_store() -> RateLimitStore:
    """Process-wide counter store selected by RATE_LIMIT_BACKEND."""
    global _store
    if _store is None:
        backend = settings.RATE_LIMIT_BACKEND.lower()
        if backend == "memory":
            _store = MemoryRateLimitStore()
        elif backend == "redis":
            _store = RedisRateLimitStore()
        else:
            raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {settings.RATE_LIMIT_BACKEND}")
        logger.info(f"Rate limit store: {backend}")
    return _store


def set_rate_limit_store(store: RateLimitStore | None) -> None:
    """Replace the process-wide store (None resets to the configured backend)."""
    global _store
    _store = store


async def is_rate_limited(origin: str, store: RateLimitStore | None = None) -> bool:
    """True if `origin` has used up its submissions for the current window."""
    store = store or get_rate_limit_store()
    count = await store.get(rate_limit_key(origin))
    return count >= settings.REMOVAL_RATE_LIMIT_PER_HOUR


async def record_hit(origin: str, store: RateLimitStore | None = None) -> int:
    """Count one persisted submission against `origin`. Returns the new count."""
    store = store or get_rate_limit_store()
    return await store.incr(
        rate_limit_key(origin),
        settings.REMOVAL_RATE_LIMIT_WINDOW_SECONDS,
    )
