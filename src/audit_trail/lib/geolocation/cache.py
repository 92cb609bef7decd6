"""In-process TTL cache and daily quota for geolocation lookups.

One ``GeoCache`` is created at process start and handed to the resolver, so
tests can build their own with a fake clock.  Counter updates go through a
lock and the quota is reserved before a provider call, so concurrent misses
can never push the count past the quota.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from audit_trail.lib.geolocation.base import GeoLocation

DEFAULT_TTL_SECONDS = 86400
DEFAULT_DAILY_QUOTA = 900
QUOTA_WINDOW_SECONDS = 86400


@dataclass
class GeoCacheEntry:
    """A cached location and the time it was stored."""

    location: GeoLocation
    stored_at: float


class GeoCache:
    """TTL cache of IP locations plus a 24h lookup counter.

    Args:
        ttl_seconds: Age after which an entry is treated as absent.
        daily_quota: Provider lookups allowed per 24h window.
        clock: Returns the current time in seconds (``time.time`` by default).
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        daily_quota: int = DEFAULT_DAILY_QUOTA,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.daily_quota = daily_quota
        self._clock = clock
        self._entries: dict[str, GeoCacheEntry] = {}
        self._lock = threading.Lock()
        self._count = 0
        self._reset_at = clock() + QUOTA_WINDOW_SECONDS
        self._quota_warned = False

    @property
    def request_count(self) -> int:
        """Lookups counted against the current window."""
        return self._count

    @property
    def reset_at(self) -> float:
        """Time at which the current quota window ends."""
        return self._reset_at

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: GeoCacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self.ttl_seconds

    def get(self, ip: str) -> GeoLocation | None:
        """Return the cached location for ``ip``, or None on miss or expiry.

        Expired entries are removed on the way out.
        """
        entry = self._entries.get(ip)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            self._entries.pop(ip, None)
            return None
        return entry.location

    def put(self, ip: str, location: GeoLocation) -> None:
        """Store a location for ``ip`` stamped with the current time."""
        self._entries[ip] = GeoCacheEntry(location=location, stored_at=self._clock())

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [ip for ip, entry in self._entries.items() if self._expired(entry, now)]
        for ip in expired:
            self._entries.pop(ip, None)
        return len(expired)

    def roll_window(self) -> None:
        """Zero the counter once the 24h window has elapsed.

        Each rollover also sweeps expired entries, so IPs that are never
        looked up again do not stay in memory past their TTL.
        """
        with self._lock:
            now = self._clock()
            if now < self._reset_at:
                return
            self._count = 0
            self._quota_warned = False
            # Advance past ``now`` even if several windows went by idle
            while self._reset_at <= now:
                self._reset_at += QUOTA_WINDOW_SECONDS
        removed = self.sweep()
        if removed:
            logger.debug(f"Swept {removed} expired geolocation cache entries")

    def try_reserve(self) -> bool:
        """Reserve one lookup against the quota.

        Returns:
            False when the quota for the current window is exhausted.
        """
        with self._lock:
            if self._count >= self.daily_quota:
                if not self._quota_warned:
                    logger.warning(f"Geolocation daily quota of {self.daily_quota} lookups reached")
                    self._quota_warned = True
                return False
            self._count += 1
            return True

    def release(self) -> None:
        """Return a reservation taken for a lookup that did not succeed."""
        with self._lock:
            if self._count > 0:
                self._count -= 1
