"""Abstract IP geolocation provider interface and result types."""

import ipaddress
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GeoLocation:
    """Approximate location of an IP address."""

    country: str | None = None
    city: str | None = None
    lat: float | None = None
    lon: float | None = None

    def __post_init__(self) -> None:
        if self.lat is not None and not (-90 <= self.lat <= 90):
            msg = f"lat must be between -90 and 90, got {self.lat}"
            raise ValueError(msg)
        if self.lon is not None and not (-180 <= self.lon <= 180):
            msg = f"lon must be between -180 and 180, got {self.lon}"
            raise ValueError(msg)

    @property
    def label(self) -> str:
        """Human-readable ``"City, Country"`` label."""
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) if parts else "unknown"

    def to_dict(self) -> dict[str, str | float | None]:
        """Serialize to the JSON shape stored on audit records."""
        return {"country": self.country, "city": self.city, "lat": self.lat, "lon": self.lon}


class GeoProviderError(Exception):
    """Raised when a geolocation provider experiences a transport or service error.

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


def is_public_ip(ip: str | None) -> bool:
    """Return True if ``ip`` is a routable address worth geolocating.

    Loopback, private, link-local, reserved and unparseable values (including
    the literal ``"unknown"``) are not.
    """
    if not ip or ip == "unknown":
        return False
    try:
        addr = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return not (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_reserved
        or addr.is_multicast
        or addr.is_unspecified
    )


class BaseGeoProvider(ABC):
    """Abstract geolocation provider. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider."""

    @abstractmethod
    async def lookup(self, ip: str) -> GeoLocation:
        """Resolve a public IP address to a location.

        Args:
            ip: Public IPv4 or IPv6 address.

        Returns:
            The resolved GeoLocation.

        Raises:
            GeoProviderError: On transport, service or parse errors.
        """
