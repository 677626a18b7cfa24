import asyncio

import pytest

from arbscan.cache import MemoryCache, SqliteCache, create_cache
from arbscan.errors import ConfigurationError


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(params=["memory", "sqlite"])
def clock_and_cache(request, tmp_path):
    clock = FakeClock()
    if request.param == "memory":
        return clock, MemoryCache(clock=clock)
    return clock, SqliteCache(str(tmp_path / "cache" / "kv.sqlite3"), clock=clock)


class TestBackends:
    def test_put_and_get(self, clock_and_cache):
        _, cache = clock_and_cache
        assert cache.put("k", ["BTC/USDT", "ETH/USDT"], 60)
        assert cache.get("k") == ["BTC/USDT", "ETH/USDT"]
        assert cache.has("k")

    def test_missing_key_returns_default(self, clock_and_cache):
        _, cache = clock_and_cache
        assert cache.get("nope") is None
        assert cache.get("nope", "fallback") == "fallback"
        assert not cache.has("nope")

    def test_entry_expires_after_ttl(self, clock_and_cache):
        clock, cache = clock_and_cache
        cache.put("k", [1], 60)
        clock.now += 59
        assert cache.get("k") == [1]
        clock.now += 1
        assert cache.get("k") is None
        assert not cache.has("k")

    def test_no_ttl_keeps_forever(self, clock_and_cache):
        clock, cache = clock_and_cache
        cache.put("k", {"a": 1})
        clock.now += 10**9
        assert cache.get("k") == {"a": 1}

    def test_forget_is_idempotent(self, clock_and_cache):
        _, cache = clock_and_cache
        cache.put("k", 1, 60)
        assert cache.forget("k")
        assert cache.get("k") is None
        assert cache.forget("k")
        assert cache.forget("never-existed")


def test_sqlite_persists_between_instances(tmp_path):
    path = str(tmp_path / "kv.sqlite3")
    SqliteCache(path).put("common_pairs", ["BTC/USDT"], 3600)
    assert SqliteCache(path).get("common_pairs") == ["BTC/USDT"]


def test_create_cache(tmp_path):
    assert isinstance(create_cache("memory", ""), MemoryCache)
    assert isinstance(create_cache("SQLite", str(tmp_path / "x.sqlite3")), SqliteCache)
    with pytest.raises(ConfigurationError):
        create_cache("redis", "")


class TestRemember:
    @pytest.mark.asyncio
    async def test_computes_on_miss_only(self):
        cache = MemoryCache()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            return ["BTC/USDT"]

        assert await cache.remember("k", 60, compute) == ["BTC/USDT"]
        assert await cache.remember("k", 60, compute) == ["BTC/USDT"]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_recomputes_after_expiry(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        values = iter([["A"], ["B"]])

        async def compute():
            return next(values)

        assert await cache.remember("k", 10, compute) == ["A"]
        clock.now += 11
        assert await cache.remember("k", 10, compute) == ["B"]

    @pytest.mark.asyncio
    async def test_concurrent_misses_compute_once(self):
        cache = MemoryCache()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return ["BTC/USDT"]

        results = await asyncio.gather(*[cache.remember("k", 60, compute) for _ in range(5)])
        assert results == [["BTC/USDT"]] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        cache = MemoryCache()
        attempts = 0

        async def compute():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("all down")
            return ["ETH/USDT"]

        with pytest.raises(RuntimeError):
            await cache.remember("k", 60, compute)
        assert not cache.has("k")
        assert await cache.remember("k", 60, compute) == ["ETH/USDT"]
        assert attempts == 2
