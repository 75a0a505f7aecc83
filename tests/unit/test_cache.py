"""Unit tests for the time-boxed reference cache"""

import asyncio

import pytest

from ops_case_service.infrastructure.cache import TimeBoxedCache


class FakeTime:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingFetcher:
    def __init__(self, values=None):
        self.calls = 0
        self.values = values

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        if self.values is not None:
            return self.values[self.calls - 1]
        return [f"value-{self.calls}"]


@pytest.mark.unit
class TestTimeBoxedCache:

    @pytest.fixture
    def clock(self):
        return FakeTime()

    @pytest.fixture
    def cache(self, clock):
        return TimeBoxedCache(clock=clock)

    @pytest.mark.asyncio
    async def test_fresh_value_is_served_from_cache(self, cache, clock):
        fetcher = CountingFetcher()

        first = await cache.get_or_fetch("employees", 300, fetcher)
        clock.now += 299
        second = await cache.get_or_fetch("employees", 300, fetcher)

        assert first == second == ["value-1"]
        assert fetcher.calls == 1
        assert cache.get_stats() == {"hits": 1, "misses": 1, "size": 1}

    @pytest.mark.asyncio
    async def test_expired_value_is_refetched(self, cache, clock):
        fetcher = CountingFetcher()

        await cache.get_or_fetch("employees", 300, fetcher)
        clock.now += 300
        value = await cache.get_or_fetch("employees", 300, fetcher)

        assert value == ["value-2"]
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_fresh_value(self, cache):
        fetcher = CountingFetcher()

        await cache.get_or_fetch("partners", 600, fetcher)
        value = await cache.get_or_fetch("partners", 600, fetcher, force_refresh=True)

        assert value == ["value-2"]
        assert await cache.get_or_fetch("partners", 600, fetcher) == ["value-2"]

    @pytest.mark.asyncio
    async def test_keys_have_independent_ttls(self, cache, clock):
        types = CountingFetcher()
        partners = CountingFetcher()

        await cache.get_or_fetch("types", 120, types)
        await cache.get_or_fetch("partners", 600, partners)
        clock.now += 200

        await cache.get_or_fetch("types", 120, types)
        await cache.get_or_fetch("partners", 600, partners)

        assert types.calls == 2
        assert partners.calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self, cache):
        fetcher = CountingFetcher()

        await cache.get_or_fetch("a", 60, fetcher)
        cache.invalidate("a")
        await cache.get_or_fetch("a", 60, fetcher)
        cache.clear()
        await cache.get_or_fetch("a", 60, fetcher)

        assert fetcher.calls == 3
        cache.invalidate("missing")

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self, cache):
        async def broken():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("a", 60, broken)

        fetcher = CountingFetcher()
        assert await cache.get_or_fetch("a", 60, fetcher) == ["value-1"]

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, cache):
        fetcher = CountingFetcher()

        results = await asyncio.gather(
            cache.get_or_fetch("a", 60, fetcher),
            cache.get_or_fetch("a", 60, fetcher),
            cache.get_or_fetch("a", 60, fetcher),
        )

        assert results == [["value-1"]] * 3
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_empty_list_is_a_cached_value(self, cache):
        fetcher = CountingFetcher(values=[[], ["late"]])

        assert await cache.get_or_fetch("a", 60, fetcher) == []
        assert await cache.get_or_fetch("a", 60, fetcher) == []
        assert fetcher.calls == 1

    def test_peek_does_not_fetch(self, cache):
        assert cache.peek("nothing") is None
