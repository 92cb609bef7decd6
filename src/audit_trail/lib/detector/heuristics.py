"""Behavioral heuristics evaluated against every persisted audit record.

Each heuristic declares the actions that trigger it and issues its own bounded
history query.  Windows are anchored at the analyzed record's timestamp, so
the outcome does not depend on when (or in which order) analysis runs.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from audit_trail.lib.detector.findings import AlertType, Finding
from audit_trail.lib.detector.history import AuditHistory, AuditLogFilter, ensure_utc
from audit_trail.lib.detector.thresholds import CountThreshold, DetectorThresholds
from audit_trail.lib.enrichment.taxonomy import AuditAction
from audit_trail.models.audit_log import AuditLog

PROFILE_CHANGE_ACTIONS: tuple[AuditAction, ...] = (
    AuditAction.PROFILE_UPDATED,
    AuditAction.PASSWORD_CHANGED,
    AuditAction.EMAIL_CHANGED,
    AuditAction.PHONE_CHANGED,
)

DOWNLOAD_ACTIONS: tuple[AuditAction, ...] = (
    AuditAction.FILE_DOWNLOADED,
    AuditAction.DOCUMENT_DOWNLOADED,
    AuditAction.RECEIPT_DOWNLOADED,
)

# Exports count towards the bulk-download total but do not trigger the check
DOWNLOAD_COUNTED_ACTIONS: tuple[AuditAction, ...] = (*DOWNLOAD_ACTIONS, AuditAction.DATA_EXPORTED)


class Heuristic(ABC):
    """One independent anomaly rule."""

    alert_type: AlertType
    triggers: frozenset[AuditAction]

    def __init__(self, thresholds: DetectorThresholds) -> None:
        self.thresholds = thresholds

    def applies_to(self, entry: AuditLog) -> bool:
        """Whether this heuristic should inspect ``entry`` at all."""
        return any(entry.action == action for action in self.triggers)

    @abstractmethod
    async def evaluate(self, entry: AuditLog, history: AuditHistory) -> Finding | None:
        """Inspect ``entry`` and its history, returning a finding or None."""

    async def _contributing_ids(
        self, history: AuditHistory, flt: AuditLogFilter, entry: AuditLog
    ) -> tuple[uuid.UUID, ...]:
        logs = await history.find_recent_audit_logs(flt, limit=self.thresholds.max_log_ids)
        ids = [log.id for log in reversed(logs)]
        if entry.id not in ids:
            ids.append(entry.id)
        return tuple(ids[-self.thresholds.max_log_ids :])


def _window(anchor: datetime, minutes: int) -> tuple[datetime, datetime]:
    end = ensure_utc(anchor)
    return end - timedelta(minutes=minutes), end


class BruteForceLoginHeuristic(Heuristic):
    """Many failed logins for one email in a short window."""

    alert_type = AlertType.BRUTE_FORCE_LOGIN
    triggers = frozenset({AuditAction.LOGIN_FAILED})

    def applies_to(self, entry: AuditLog) -> bool:
        return super().applies_to(entry) and bool(entry.user_email)

    async def evaluate(self, entry: AuditLog, history: AuditHistory) -> Finding | None:
        threshold = self.thresholds.login_failures
        since, until = _window(entry.timestamp, threshold.window_minutes)
        flt = AuditLogFilter(
            actions=(AuditAction.LOGIN_FAILED,),
            user_email=entry.user_email,
            since=since,
            until=until,
        )
        attempts = await history.count_audit_logs(flt)
        if attempts < threshold.count:
            return None

        return Finding(
            alert_type=self.alert_type,
            severity=threshold.severity,
            title="Multiple failed login attempts",
            description=(
                f"{attempts} failed login attempts in {threshold.window_minutes} minutes for {entry.user_email}"
            ),
            log_ids=await self._contributing_ids(history, flt, entry),
            user_id=entry.user_id,
            user_email=entry.user_email,
            ip=entry.ip,
            metadata={"attempts": attempts},
        )


class UnusualLocationHeuristic(Heuristic):
    """Successful login from a country absent from the actor's recent logins."""

    alert_type = AlertType.UNUSUAL_LOCATION
    triggers = frozenset({AuditAction.LOGIN})

    def applies_to(self, entry: AuditLog) -> bool:
        return (
            super().applies_to(entry)
            and entry.success
            and entry.user_id is not None
            and bool((entry.ip_geo or {}).get("country"))
        )

    async def evaluate(self, entry: AuditLog, history: AuditHistory) -> Finding | None:
        threshold = self.thresholds.unusual_location
        until = ensure_utc(entry.timestamp)
        flt = AuditLogFilter(
            actions=(AuditAction.LOGIN,),
            user_id=entry.user_id,
            success=True,
            since=until - timedelta(days=threshold.days),
            until=until,
            has_geo=True,
            exclude_id=entry.id,
        )
        previous = await history.find_recent_audit_logs(flt, limit=threshold.last_n_logins)
        previous_countries = [log.ip_geo["country"] for log in previous if (log.ip_geo or {}).get("country")]

        # First recorded login: nothing to compare against
        if not previous_countries:
            return None

        geo = entry.ip_geo or {}
        country = geo["country"]
        if country in previous_countries:
            return None

        location = ", ".join(p for p in (geo.get("city"), country) if p)
        known = ", ".join(dict.fromkeys(previous_countries))
        return Finding(
            alert_type=self.alert_type,
            severity=threshold.severity,
            title="Login from unusual location",
            description=f"Login from {location}. Previous countries: {known}",
            log_ids=(entry.id,),
            user_id=entry.user_id,
            user_email=entry.user_email,
            ip=entry.ip,
            location=location,
            metadata={"previous_country": previous_countries[0], "new_country": country},
        )


class _CountHeuristic(Heuristic):
    """Count the actor's matching actions in a trailing window."""

    counted_actions: tuple[AuditAction, ...]
    title: str
    noun: str
    metadata_key: str

    @abstractmethod
    def threshold(self) -> CountThreshold:
        """Threshold configured for this heuristic."""

    def applies_to(self, entry: AuditLog) -> bool:
        return super().applies_to(entry) and entry.user_id is not None

    async def evaluate(self, entry: AuditLog, history: AuditHistory) -> Finding | None:
        threshold = self.threshold()
        since, until = _window(entry.timestamp, threshold.window_minutes)
        flt = AuditLogFilter(
            actions=self.counted_actions,
            user_id=entry.user_id,
            since=since,
            until=until,
        )
        total = await history.count_audit_logs(flt)
        if total < threshold.count:
            return None

        return Finding(
            alert_type=self.alert_type,
            severity=threshold.severity,
            title=self.title,
            description=f"{total} {self.noun} in {threshold.window_minutes} minutes",
            log_ids=await self._contributing_ids(history, flt, entry),
            user_id=entry.user_id,
            user_email=entry.user_email,
            ip=entry.ip,
            metadata={self.metadata_key: total},
        )


class RapidProfileChangesHeuristic(_CountHeuristic):
    """Several profile or credential changes in a short window."""

    alert_type = AlertType.RAPID_PROFILE_CHANGES
    triggers = frozenset(PROFILE_CHANGE_ACTIONS)
    counted_actions = PROFILE_CHANGE_ACTIONS
    title = "Multiple profile changes in a short time"
    noun = "profile/security changes"
    metadata_key = "changes"

    def threshold(self) -> CountThreshold:
        return self.thresholds.profile_changes


class BulkDownloadHeuristic(_CountHeuristic):
    """Many downloads or exports in a short window."""

    alert_type = AlertType.BULK_DOWNLOAD
    triggers = frozenset(DOWNLOAD_ACTIONS)
    counted_actions = DOWNLOAD_COUNTED_ACTIONS
    title = "Bulk file download"
    noun = "downloads"
    metadata_key = "downloads"

    def threshold(self) -> CountThreshold:
        return self.thresholds.downloads


class UnusualHoursHeuristic(Heuristic):
    """Successful login during the configured off-hours band.

    Fires on every such login with no history requirement.
    """

    alert_type = AlertType.UNUSUAL_HOURS
    triggers = frozenset({AuditAction.LOGIN})

    def applies_to(self, entry: AuditLog) -> bool:
        return super().applies_to(entry) and entry.success and entry.user_id is not None

    async def evaluate(self, entry: AuditLog, history: AuditHistory) -> Finding | None:
        threshold = self.thresholds.unusual_hours
        local = ensure_utc(entry.timestamp).astimezone(threshold.zone)
        if not threshold.contains(local.hour):
            return None

        return Finding(
            alert_type=self.alert_type,
            severity=threshold.severity,
            title="Login at unusual hours",
            description=f"Login at {local:%H:%M} {threshold.timezone} time",
            log_ids=(entry.id,),
            user_id=entry.user_id,
            user_email=entry.user_email,
            ip=entry.ip,
            metadata={"hour": local.hour, "timezone": threshold.timezone},
        )


DEFAULT_HEURISTICS: tuple[type[Heuristic], ...] = (
    BruteForceLoginHeuristic,
    UnusualLocationHeuristic,
    RapidProfileChangesHeuristic,
    UnusualHoursHeuristic,
    BulkDownloadHeuristic,
)
