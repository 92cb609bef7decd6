"""Best-effort IP geolocation with caching, quota metering and a hard timeout."""

import asyncio

from loguru import logger

from audit_trail.lib.geolocation.base import BaseGeoProvider, GeoLocation, GeoProviderError, is_public_ip
from audit_trail.lib.geolocation.cache import GeoCache

DEFAULT_TIMEOUT = 2.0


class GeolocationResolver:
    """Resolve IPs to locations without ever failing the caller.

    Private and loopback addresses are skipped, cached answers are reused
    until they expire, and once the daily quota is spent every uncached IP
    resolves to None until the window resets.

    Args:
        provider: Geolocation provider used on cache misses.
        cache: Shared cache and quota counter.
        timeout: Upper bound in seconds for one resolution.
    """

    def __init__(self, provider: BaseGeoProvider, cache: GeoCache, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.provider = provider
        self.cache = cache
        self.timeout = timeout

    async def resolve(self, ip: str | None) -> GeoLocation | None:
        """Resolve ``ip`` to a location.

        Args:
            ip: Client IP address as captured from the request.

        Returns:
            The location, or None when skipped, over quota, timed out or failed.
        """
        if ip is None or not is_public_ip(ip):
            return None

        try:
            async with asyncio.timeout(self.timeout):
                return await self._resolve(ip.strip())
        except TimeoutError:
            logger.debug(f"Geolocation lookup exceeded {self.timeout}s")
        except GeoProviderError as e:
            logger.debug(f"Geolocation lookup failed: {e}")
        except Exception:
            logger.exception("Unexpected geolocation failure")
        return None

    async def _resolve(self, ip: str) -> GeoLocation | None:
        self.cache.roll_window()

        cached = self.cache.get(ip)
        if cached is not None:
            return cached

        if not self.cache.try_reserve():
            return None

        succeeded = False
        try:
            location = await self.provider.lookup(ip)
            succeeded = True
        finally:
            # Also runs on cancellation by the timeout
            if not succeeded:
                self.cache.release()

        self.cache.put(ip, location)
        return location
