"""Unit tests for the geolocation resolver."""

import asyncio

import pytest

from audit_trail.lib.geolocation import (
    BaseGeoProvider,
    GeoCache,
    GeoLocation,
    GeolocationResolver,
    GeoProviderError,
    build_resolver,
)
from audit_trail.core.config import Settings

BERLIN = GeoLocation(country="Germany", city="Berlin")


class StubProvider(BaseGeoProvider):
    """Provider returning canned results and counting calls."""

    def __init__(self, result: GeoLocation | Exception = BERLIN, delay: float = 0.0) -> None:
        self.result = result
        self.delay = delay
        self.calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return "stub"

    async def lookup(self, ip: str) -> GeoLocation:
        self.calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestGeolocationResolver:
    """Tests for GeolocationResolver.resolve."""

    async def test_resolves_and_caches(self) -> None:
        provider = StubProvider()
        cache = GeoCache()
        resolver = GeolocationResolver(provider, cache)

        first = await resolver.resolve("91.198.174.192")
        second = await resolver.resolve("91.198.174.192")

        assert first == second == BERLIN
        assert provider.calls == ["91.198.174.192"]
        assert cache.request_count == 1

    @pytest.mark.parametrize("ip", [None, "unknown", "127.0.0.1", "10.1.2.3", "garbage"])
    async def test_skipped_addresses(self, ip: str | None) -> None:
        provider = StubProvider()
        resolver = GeolocationResolver(provider, GeoCache())
        assert await resolver.resolve(ip) is None
        assert provider.calls == []

    async def test_provider_error_returns_none_and_leaves_state(self) -> None:
        cache = GeoCache()
        resolver = GeolocationResolver(StubProvider(GeoProviderError("stub", "down")), cache)
        assert await resolver.resolve("8.8.8.8") is None
        assert cache.request_count == 0
        assert len(cache) == 0

    async def test_unexpected_error_returns_none(self) -> None:
        cache = GeoCache()
        resolver = GeolocationResolver(StubProvider(RuntimeError("bug")), cache)
        assert await resolver.resolve("8.8.8.8") is None
        assert cache.request_count == 0

    async def test_timeout_returns_none_and_releases_quota(self) -> None:
        cache = GeoCache()
        resolver = GeolocationResolver(StubProvider(delay=1.0), cache, timeout=0.05)
        assert await resolver.resolve("8.8.8.8") is None
        assert cache.request_count == 0
        assert len(cache) == 0

    async def test_quota_exhausted_short_circuits_new_ips(self) -> None:
        provider = StubProvider()
        cache = GeoCache(daily_quota=1)
        resolver = GeolocationResolver(provider, cache)

        assert await resolver.resolve("8.8.8.8") == BERLIN
        assert await resolver.resolve("1.1.1.1") is None
        # Cached IPs still resolve once the quota is spent
        assert await resolver.resolve("8.8.8.8") == BERLIN
        assert provider.calls == ["8.8.8.8"]

    async def test_concurrent_misses_never_exceed_quota(self) -> None:
        provider = StubProvider(delay=0.01)
        cache = GeoCache(daily_quota=3)
        resolver = GeolocationResolver(provider, cache)

        ips = [f"8.8.4.{i}" for i in range(1, 11)]
        results = await asyncio.gather(*(resolver.resolve(ip) for ip in ips))

        assert sum(r is not None for r in results) == 3
        assert cache.request_count == 3


class TestBuildResolver:
    """Tests for build_resolver()."""

    def test_uses_settings(self) -> None:
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            geo_timeout=1.5,
            geo_daily_quota=10,
            geo_cache_ttl_seconds=60,
            _env_file=None,  # type: ignore[call-arg]
        )
        resolver = build_resolver(settings)
        assert resolver.timeout == 1.5
        assert resolver.cache.daily_quota == 10
        assert resolver.cache.ttl_seconds == 60

    def test_shares_given_cache(self, settings: Settings) -> None:
        cache = GeoCache()
        assert build_resolver(settings, cache).cache is cache
