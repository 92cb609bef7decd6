"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
Detector thresholds, windows and severities live here so each deployment can tune
alerting without code changes.
"""

import re
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SeverityName = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg://...)",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Geolocation
    geo_enabled: bool = Field(
        default=True,
        description="Enable IP geolocation enrichment of audit records",
    )
    geo_provider_base_url: str = Field(
        default="https://ipapi.co",
        description="Base URL of the ipapi.co-compatible geolocation service",
    )
    geo_timeout: float = Field(
        default=2.0,
        description="Hard timeout in seconds for a single geolocation lookup",
        gt=0,
    )
    geo_cache_ttl_seconds: int = Field(
        default=86400,
        description="Seconds a resolved IP location stays cached",
        gt=0,
    )
    geo_daily_quota: int = Field(
        default=900,
        description="Maximum successful provider lookups per 24h window",
        gt=0,
    )

    # Dispatcher
    dispatcher_max_concurrency: int = Field(
        default=5,
        description="Maximum number of alert-analysis tasks running at once",
        gt=0,
    )
    dispatcher_max_finished_jobs: int = Field(
        default=1000,
        description="Finished job statuses remembered for get_status (oldest forgotten first)",
        ge=0,
    )

    # Detector: brute-force logins
    detector_login_failures_count: int = Field(
        default=5,
        description="Failed logins for one email that trigger a brute-force alert",
        gt=0,
    )
    detector_login_failures_window_minutes: int = Field(
        default=15,
        description="Trailing window for counting failed logins",
        gt=0,
    )
    detector_login_failures_severity: SeverityName = "HIGH"

    # Detector: unusual location
    detector_location_last_n_logins: int = Field(
        default=10,
        description="Number of recent successful logins whose countries form the baseline",
        gt=0,
    )
    detector_location_days: int = Field(
        default=30,
        description="Trailing days of login history considered for the location baseline",
        gt=0,
    )
    detector_location_severity: SeverityName = "MEDIUM"

    # Detector: rapid profile/security changes
    detector_profile_changes_count: int = Field(
        default=3,
        description="Profile/security changes that trigger a rapid-changes alert",
        gt=0,
    )
    detector_profile_changes_window_minutes: int = Field(
        default=60,
        description="Trailing window for counting profile/security changes",
        gt=0,
    )
    detector_profile_changes_severity: SeverityName = "MEDIUM"

    # Detector: unusual hours
    detector_unusual_hours_start: int = Field(
        default=0,
        description="First hour (inclusive) of the off-hours band",
        ge=0,
        le=23,
    )
    detector_unusual_hours_end: int = Field(
        default=5,
        description="Hour (exclusive) at which the off-hours band ends; lower than the start wraps past midnight",
        ge=1,
        le=24,
    )
    detector_unusual_hours_severity: SeverityName = "LOW"
    detector_timezone: str = Field(
        default="America/Bogota",
        description="IANA timezone used to evaluate wall-clock login hours",
    )

    # Detector: bulk downloads
    detector_downloads_count: int = Field(
        default=10,
        description="Downloads/exports that trigger a bulk-download alert",
        gt=0,
    )
    detector_downloads_window_minutes: int = Field(
        default=10,
        description="Trailing window for counting downloads/exports",
        gt=0,
    )
    detector_downloads_severity: SeverityName = "HIGH"

    @field_validator("detector_timezone")
    @classmethod
    def validate_detector_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"Unknown timezone: {v!r}"
            raise ValueError(msg) from e
        return v

    @model_validator(mode="after")
    def validate_unusual_hours_band(self) -> "Settings":
        if self.detector_unusual_hours_start == self.detector_unusual_hours_end:
            msg = "detector_unusual_hours_start and detector_unusual_hours_end must differ"
            raise ValueError(msg)
        return self

    # Alerts
    alert_dedup_window_minutes: int = Field(
        default=60,
        description="Window in which same-type findings for one actor merge into one alert",
        gt=0,
    )
    alert_max_log_ids: int = Field(
        default=100,
        description="Maximum contributing log ids kept per alert (oldest dropped)",
        gt=0,
    )

    # Retention
    retention_default_days: int = Field(
        default=365,
        description="Retention in days for categories without a longer legal requirement",
        gt=0,
    )
    retention_extended_days: int = Field(
        default=1825,
        description="Retention in days for personal data, financial, administrative and security records",
        gt=0,
    )
    retention_batch_size: int = Field(
        default=1000,
        description="Rows deleted per batch during a retention purge",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # API
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )
    audit_skip_paths: str = Field(
        default="/health,/docs,/openapi.json",
        description="Comma-separated path prefixes the audit middleware ignores",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]

    @property
    def audit_skip_path_list(self) -> list[str]:
        """Parse audit skip paths string into a list."""
        if not self.audit_skip_paths.strip():
            return []
        return [p.strip() for p in self.audit_skip_paths.split(",") if p.strip()]

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
