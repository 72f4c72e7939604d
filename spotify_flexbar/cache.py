"""In-memory TTL cache for fetched resources (album art)."""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from spotify_flexbar.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 32


class CacheEntry:
    """A cached value with expiration time (monotonic seconds)."""

    def __init__(self, value: Any, expires_at: float):
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float | None = None) -> bool:
        return (time.monotonic() if now is None else now) >= self.expires_at


class SimpleCache:
    """TTL cache bounded to ``max_entries``; least recently used entries go first.

    Lookups are synchronous. Only ``cached()`` awaits, and it holds a lock
    per key so two keys asking for the same album art share one download.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.max_entries = max_entries
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._key_locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def keys(self) -> list[str]:
        return list(self._cache.keys())

    def get(self, key: str) -> Any | None:
        """Get cached value if present and not expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[key]
            log_with_context(logger, "debug", "Cache expired", cache_key=key, event_type="cache_expired")
            return None

        self._cache.move_to_end(key)
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value, evicting the least recently used entries past the bound."""
        self._cache[key] = CacheEntry(value, time.monotonic() + ttl_seconds)
        self._cache.move_to_end(key)

        evicted = 0
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
            evicted += 1
        if evicted:
            log_with_context(logger, "debug", "Evicted cache entries", count=evicted, event_type="cache_evict")

    def clear(self, key: str | None = None) -> None:
        """Clear one entry, or the whole cache."""
        if key is None:
            self._cache.clear()
            self._key_locks.clear()
            log_with_context(logger, "info", "Cache cleared", event_type="cache_clear_all")
        else:
            self._cache.pop(key, None)

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        return lock

    def release_lock(self, key: str, lock: asyncio.Lock) -> None:
        """Forget the lock for ``key`` once nobody holds it. Waiters keep their own reference."""
        if self._key_locks.get(key) is lock and not lock.locked():
            del self._key_locks[key]


async def cached(
    cache: SimpleCache,
    key: str,
    ttl_seconds: float,
    fetch_func: Callable[[], Awaitable[T | None]],
) -> T | None:
    """Return the cached value for ``key`` or fetch and store it.

    None results are not cached, so a failed download is retried on the
    next call.
    """
    value = cache.get(key)
    if value is not None:
        return value

    lock = cache.lock_for(key)
    try:
        async with lock:
            value = cache.get(key)
            if value is not None:
                return value

            log_with_context(logger, "debug", "Cache miss, fetching", cache_key=key, event_type="cache_miss")
            value = await fetch_func()
            if value is not None:
                cache.set(key, value, ttl_seconds)
            return value
    finally:
        cache.release_lock(key, lock)
