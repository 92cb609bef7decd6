"""Configurable thresholds for every heuristic."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from audit_trail.lib.detector.findings import AlertSeverity

if TYPE_CHECKING:
    from audit_trail.core.config import Settings


@dataclass(frozen=True)
class CountThreshold:
    """Fire when ``count`` matching events occur within ``window_minutes``."""

    count: int
    window_minutes: int
    severity: AlertSeverity


@dataclass(frozen=True)
class LocationThreshold:
    """Baseline of the last ``last_n_logins`` successful logins within ``days``."""

    last_n_logins: int = 10
    days: int = 30
    severity: AlertSeverity = AlertSeverity.MEDIUM


@dataclass(frozen=True)
class HoursThreshold:
    """Off-hours band ``[start_hour, end_hour)`` evaluated in ``timezone``.

    A band whose end is lower than its start wraps past midnight, so
    ``start_hour=22, end_hour=5`` covers 22:00 through 04:59.
    """

    start_hour: int = 0
    end_hour: int = 5
    timezone: str = "America/Bogota"
    severity: AlertSeverity = AlertSeverity.LOW

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def contains(self, hour: int) -> bool:
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


@dataclass(frozen=True)
class DetectorThresholds:
    """Thresholds for all heuristics; defaults match the shipped settings."""

    login_failures: CountThreshold = field(
        default_factory=lambda: CountThreshold(count=5, window_minutes=15, severity=AlertSeverity.HIGH)
    )
    profile_changes: CountThreshold = field(
        default_factory=lambda: CountThreshold(count=3, window_minutes=60, severity=AlertSeverity.MEDIUM)
    )
    downloads: CountThreshold = field(
        default_factory=lambda: CountThreshold(count=10, window_minutes=10, severity=AlertSeverity.HIGH)
    )
    unusual_location: LocationThreshold = field(default_factory=LocationThreshold)
    unusual_hours: HoursThreshold = field(default_factory=HoursThreshold)
    max_log_ids: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> DetectorThresholds:
        """Build thresholds from application settings.

        Args:
            settings: Application settings.

        Returns:
            The configured DetectorThresholds.
        """
        return cls(
            login_failures=CountThreshold(
                count=settings.detector_login_failures_count,
                window_minutes=settings.detector_login_failures_window_minutes,
                severity=AlertSeverity(settings.detector_login_failures_severity),
            ),
            profile_changes=CountThreshold(
                count=settings.detector_profile_changes_count,
                window_minutes=settings.detector_profile_changes_window_minutes,
                severity=AlertSeverity(settings.detector_profile_changes_severity),
            ),
            downloads=CountThreshold(
                count=settings.detector_downloads_count,
                window_minutes=settings.detector_downloads_window_minutes,
                severity=AlertSeverity(settings.detector_downloads_severity),
            ),
            unusual_location=LocationThreshold(
                last_n_logins=settings.detector_location_last_n_logins,
                days=settings.detector_location_days,
                severity=AlertSeverity(settings.detector_location_severity),
            ),
            unusual_hours=HoursThreshold(
                start_hour=settings.detector_unusual_hours_start,
                end_hour=settings.detector_unusual_hours_end,
                timezone=settings.detector_timezone,
                severity=AlertSeverity(settings.detector_unusual_hours_severity),
            ),
            max_log_ids=settings.alert_max_log_ids,
        )
