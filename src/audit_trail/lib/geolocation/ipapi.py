"""ipapi.co geolocation provider.

Uses the ipapi.co JSON API (https://ipapi.co/api/) for IP-to-location
resolution. The free tier allows roughly 1000 requests per day, which is why
lookups are cached and metered by ``GeoCache``.
"""

import httpx
from loguru import logger

from audit_trail.lib.geolocation.base import BaseGeoProvider, GeoLocation, GeoProviderError

IPAPI_BASE_URL = "https://ipapi.co"
DEFAULT_TIMEOUT = 2.0
DEFAULT_USER_AGENT = "audit-trail/1.0"


class IpApiProvider(BaseGeoProvider):
    """ipapi.co geolocation provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = IPAPI_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    @property
    def provider_name(self) -> str:
        return "ipapi"

    async def lookup(self, ip: str) -> GeoLocation:
        """Resolve an IP address using the ipapi.co API.

        Args:
            ip: Public IP address.

        Returns:
            The resolved GeoLocation.

        Raises:
            GeoProviderError: On transport, service or parse errors.
        """
        url = f"{self._base_url}/{ip}/json/"
        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, headers=headers)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.debug("ipapi lookup timed out")
            raise GeoProviderError("ipapi", "Geolocation request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"ipapi HTTP error {e.response.status_code}")
            raise GeoProviderError(
                "ipapi",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"ipapi transport error: {type(e).__name__}")
            raise GeoProviderError("ipapi", "Connection to geolocation provider failed") from e
        except GeoProviderError:
            raise
        except Exception as e:
            logger.exception("ipapi unexpected error")
            raise GeoProviderError("ipapi", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> GeoLocation:
        """Parse an ipapi.co response body into a GeoLocation.

        Args:
            data: Raw JSON object returned by ipapi.co.

        Returns:
            The parsed GeoLocation.

        Raises:
            GeoProviderError: If the body reports an error or is malformed.
        """
        if not isinstance(data, dict):
            raise GeoProviderError("ipapi", "Unexpected response shape")
        if data.get("error"):
            reason = data.get("reason") or "unknown reason"
            raise GeoProviderError("ipapi", f"Lookup rejected: {reason}")

        try:
            lat = float(data["latitude"]) if data.get("latitude") is not None else None
            lon = float(data["longitude"]) if data.get("longitude") is not None else None
            return GeoLocation(
                country=data.get("country_name") or None,
                city=data.get("city") or None,
                lat=lat,
                lon=lon,
            )
        except (TypeError, ValueError) as e:
            raise GeoProviderError("ipapi", f"Failed to parse response: {e}") from e
