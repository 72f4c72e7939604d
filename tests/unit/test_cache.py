"""Unit tests for the TTL cache."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from spotify_flexbar.cache import SimpleCache, cached


def test_set_and_get():
    cache = SimpleCache()
    cache.set("a", 1, ttl_seconds=60)

    assert cache.get("a") == 1
    assert cache.get("missing") is None


def test_expired_entries_are_dropped():
    cache = SimpleCache()
    with patch("spotify_flexbar.cache.time.monotonic", return_value=100.0):
        cache.set("a", 1, ttl_seconds=10)
    with patch("spotify_flexbar.cache.time.monotonic", return_value=111.0):
        assert cache.get("a") is None
    assert len(cache) == 0


def test_least_recently_used_is_evicted():
    cache = SimpleCache(max_entries=2)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    cache.get("a")
    cache.set("c", 3, 60)

    assert cache.keys() == ["a", "c"]


def test_clear():
    cache = SimpleCache()
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)

    cache.clear("a")
    assert cache.keys() == ["b"]

    cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_cached_fetches_once():
    cache = SimpleCache()
    fetch = AsyncMock(return_value="value")

    assert await cached(cache, "k", 60, fetch) == "value"
    assert await cached(cache, "k", 60, fetch) == "value"

    fetch.assert_awaited_once()


@pytest.mark.asyncio
async def test_cached_does_not_store_none():
    cache = SimpleCache()
    fetch = AsyncMock(side_effect=[None, "value"])

    assert await cached(cache, "k", 60, fetch) is None
    assert await cached(cache, "k", 60, fetch) == "value"
    assert fetch.await_count == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch():
    cache = SimpleCache()
    calls = []

    async def fetch():
        calls.append(1)
        await asyncio.sleep(0.01)
        return "value"

    results = await asyncio.gather(*(cached(cache, "k", 60, fetch) for _ in range(3)))

    assert results == ["value"] * 3
    assert calls == [1]


@pytest.mark.asyncio
async def test_cached_releases_per_key_locks():
    cache = SimpleCache()

    async def fetch():
        await asyncio.sleep(0.01)
        return "art"

    await asyncio.gather(*(cached(cache, "url-1", 60, fetch) for _ in range(3)))
    await cached(cache, "url-2", 60, AsyncMock(return_value=None))

    assert cache._key_locks == {}
