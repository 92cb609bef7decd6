"""Geolocation library — best-effort IP enrichment with caching and quota.

Public API:
    - GeolocationResolver: Timeout-bounded, never-raising resolve(ip)
    - GeoCache: Injected TTL cache and daily lookup counter
    - GeoLocation: Result dataclass
    - BaseGeoProvider / GeoProviderError: Provider interface
    - IpApiProvider: ipapi.co provider
    - is_public_ip: Skip check for private/loopback/unknown addresses
    - build_resolver: Construct a resolver from settings
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from audit_trail.lib.geolocation.base import BaseGeoProvider, GeoLocation, GeoProviderError, is_public_ip
from audit_trail.lib.geolocation.cache import GeoCache, GeoCacheEntry
from audit_trail.lib.geolocation.ipapi import IpApiProvider
from audit_trail.lib.geolocation.resolver import GeolocationResolver

if TYPE_CHECKING:
    from audit_trail.core.config import Settings


def build_resolver(settings: Settings, cache: GeoCache | None = None) -> GeolocationResolver:
    """Build a resolver wired to the configured provider.

    Args:
        settings: Application settings.
        cache: Existing cache to share; a new one is created when omitted.

    Returns:
        A ready GeolocationResolver.
    """
    provider = IpApiProvider(timeout=settings.geo_timeout, base_url=settings.geo_provider_base_url)
    if cache is None:
        cache = GeoCache(ttl_seconds=settings.geo_cache_ttl_seconds, daily_quota=settings.geo_daily_quota)
    return GeolocationResolver(provider, cache, timeout=settings.geo_timeout)


__all__ = [
    "BaseGeoProvider",
    "GeoCache",
    "GeoCacheEntry",
    "GeoLocation",
    "GeoProviderError",
    "GeolocationResolver",
    "IpApiProvider",
    "build_resolver",
    "is_public_ip",
]
