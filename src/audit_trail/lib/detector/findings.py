"""Finding and alert enumerations shared by the detector and the aggregator."""

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class AlertType(StrEnum):
    """Heuristic that produced a finding."""

    BRUTE_FORCE_LOGIN = "BRUTE_FORCE_LOGIN"
    UNUSUAL_LOCATION = "UNUSUAL_LOCATION"
    RAPID_PROFILE_CHANGES = "RAPID_PROFILE_CHANGES"
    UNUSUAL_HOURS = "UNUSUAL_HOURS"
    BULK_DOWNLOAD = "BULK_DOWNLOAD"


class AlertSeverity(StrEnum):
    """Severity of a finding or alert, from least to most severe."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def requires_notification(self) -> bool:
        """Whether administrators are notified for alerts of this severity."""
        return self in (AlertSeverity.HIGH, AlertSeverity.CRITICAL)


class AlertStatus(StrEnum):
    """Review state of a security alert."""

    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    RESOLVED = "RESOLVED"


OPEN_ALERT_STATUSES: tuple[AlertStatus, ...] = (AlertStatus.PENDING, AlertStatus.IN_REVIEW)


@dataclass(frozen=True)
class Finding:
    """A candidate anomaly emitted by one heuristic, not yet an alert."""

    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    log_ids: tuple[uuid.UUID, ...]
    user_id: uuid.UUID | None = None
    user_email: str | None = None
    ip: str | None = None
    location: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
