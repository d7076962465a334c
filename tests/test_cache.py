"""Tests for the TTL cache."""

import pytest

from scanwell.sonar.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_set(self) -> None:
        cache: TTLCache[str] = TTLCache()

        cache.set("rule", "value")

        assert cache.get("rule") == "value"
        assert cache.get("other") is None
        assert (cache.hits, cache.misses) == (1, 1)

    def test_expiry(self) -> None:
        clock = FakeClock()
        cache: TTLCache[str] = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("rule", "value")

        clock.now += 9.9
        assert cache.get("rule") == "value"
        clock.now += 0.1
        assert cache.get("rule") is None
        assert len(cache) == 0

    def test_invalidate_and_clear(self) -> None:
        cache: TTLCache[int] = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_or_load(self) -> None:
        cache: TTLCache[str] = TTLCache()
        loads: list[str] = []

        async def load() -> str:
            loads.append("x")
            return "loaded"

        assert await cache.get_or_load("k", load) == "loaded"
        assert await cache.get_or_load("k", load) == "loaded"
        assert loads == ["x"]

    @pytest.mark.asyncio
    async def test_failed_load_is_not_cached(self) -> None:
        cache: TTLCache[str] = TTLCache()

        async def fail() -> str:
            raise RuntimeError("server down")

        with pytest.raises(RuntimeError):
            await cache.get_or_load("k", fail)

        assert len(cache) == 0
