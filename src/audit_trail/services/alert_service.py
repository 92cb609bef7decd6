"""Security alert aggregation and review queries.

Findings for the same alert type and actor that arrive within the dedup
window collapse into one open alert instead of producing alert spam.
"""

import asyncio
import uuid
import weakref
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_trail.core.background import BackgroundTaskRunner
from audit_trail.lib.detector.findings import OPEN_ALERT_STATUSES, Finding
from audit_trail.lib.detector.history import ensure_utc
from audit_trail.models.audit_log import AuditLog
from audit_trail.models.security_alert import SecurityAlert
from audit_trail.schemas.audit import AlertDetailResponse, AuditLogResponse, SecurityAlertResponse
from audit_trail.services.audit_store import AlertFilter, AuditStore
from audit_trail.services.notification_service import AdminNotifier

DEFAULT_DEDUP_WINDOW_MINUTES = 60
DEFAULT_MAX_LOG_IDS = 100


def _utcnow() -> datetime:
    return datetime.now(UTC)


def merge_log_ids(existing: Iterable[str], new: Iterable[object], max_length: int) -> list[str]:
    """Append ``new`` ids to ``existing`` without repeats, keeping the newest ``max_length``.

    Args:
        existing: Ids already attached to the alert, oldest first.
        new: Ids contributed by the latest finding.
        max_length: Upper bound on the merged list.

    Returns:
        The merged id list, oldest first.
    """
    merged = list(dict.fromkeys([*existing, *(str(i) for i in new)]))
    return merged[-max_length:]


class AlertAggregator:
    """Turns detector findings into deduplicated security alerts.

    Creation and merging for one (alert type, actor email) pair are serialized
    within the process. Another process can still race and create a second
    alert; the next finding merges into the oldest open one.

    Args:
        store: Alert persistence.
        notifier: Receives newly created HIGH/CRITICAL alerts.
        dispatcher: Runs notifications in the background.
        dedup_window_minutes: Age limit for an open alert to absorb findings.
        max_log_ids: Cap on contributing log ids per alert.
        clock: Current-time source.
    """

    def __init__(
        self,
        store: AuditStore,
        notifier: AdminNotifier,
        dispatcher: BackgroundTaskRunner,
        *,
        dedup_window_minutes: int = DEFAULT_DEDUP_WINDOW_MINUTES,
        max_log_ids: int = DEFAULT_MAX_LOG_IDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.dedup_window = timedelta(minutes=dedup_window_minutes)
        self.max_log_ids = max_log_ids
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[tuple[str, str | None], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, finding: Finding) -> asyncio.Lock:
        key = (str(finding.alert_type), finding.user_email)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def upsert_alert(self, finding: Finding) -> SecurityAlert:
        """Merge ``finding`` into an open alert or create a new one.

        Args:
            finding: Detector output.

        Returns:
            The updated or newly created alert.
        """
        lock = self._lock_for(finding)
        async with lock:
            now = ensure_utc(self._clock())
            existing = await self.store.find_open_alert(
                AlertFilter(
                    alert_type=finding.alert_type,
                    user_email=finding.user_email,
                    created_since=now - self.dedup_window,
                )
            )
            if existing is not None:
                return await self._merge(existing, finding, now)

            alert = await self.store.create_alert(
                {
                    "alert_type": str(finding.alert_type),
                    "severity": str(finding.severity),
                    "title": finding.title,
                    "description": finding.description,
                    "user_id": finding.user_id,
                    "user_email": finding.user_email,
                    "ip": finding.ip,
                    "location": finding.location,
                    "log_ids": merge_log_ids([], finding.log_ids, self.max_log_ids),
                    "alert_metadata": dict(finding.metadata),
                    "created_at": now,
                    "updated_at": now,
                }
            )

        logger.info(f"Created {alert.severity} {alert.alert_type} alert {alert.id} for {alert.user_email}")
        if finding.severity.requires_notification:
            self.dispatcher.submit_task(self._notify(alert), name=f"notify-alert-{alert.id}")
        return alert

    async def _merge(self, existing: SecurityAlert, finding: Finding, now: datetime) -> SecurityAlert:
        alert = await self.store.update_alert(
            existing.id,
            {
                "log_ids": merge_log_ids(existing.log_ids or [], finding.log_ids, self.max_log_ids),
                "description": f"{existing.description}\n\n[{now.isoformat()}] New event: {finding.description}",
                "alert_metadata": {**(existing.alert_metadata or {}), **finding.metadata},
                "updated_at": now,
            },
        )
        logger.debug(f"Merged {finding.alert_type} finding into alert {alert.id}")
        return alert

    async def _notify(self, alert: SecurityAlert) -> None:
        try:
            await self.notifier.notify_admins(alert)
        except Exception:
            logger.exception(f"Failed to notify administrators about alert {alert.id}")
        await self.store.mark_alert_notified(alert.id, self._clock())


async def list_open_alerts(
    session: AsyncSession,
    *,
    alert_type: str | None = None,
    severity: str | None = None,
    user_email: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[SecurityAlert], int]:
    """Query alerts awaiting review, newest first.

    Args:
        session: The database session.
        alert_type: Filter by alert type.
        severity: Filter by severity.
        user_email: Filter by actor email.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (alert records, total count).
    """
    conditions = [SecurityAlert.status.in_([str(s) for s in OPEN_ALERT_STATUSES])]
    if alert_type is not None:
        conditions.append(SecurityAlert.alert_type == alert_type)
    if severity is not None:
        conditions.append(SecurityAlert.severity == severity)
    if user_email is not None:
        conditions.append(SecurityAlert.user_email == user_email)

    total = (await session.execute(select(func.count(SecurityAlert.id)).where(*conditions))).scalar_one()

    offset = (page - 1) * page_size
    query = select(SecurityAlert).where(*conditions).order_by(SecurityAlert.created_at.desc())
    result = await session.execute(query.offset(offset).limit(page_size))
    return list(result.scalars().all()), total


def _parse_log_ids(raw_ids: Iterable[str]) -> list[uuid.UUID]:
    parsed = []
    for raw in raw_ids:
        try:
            parsed.append(uuid.UUID(raw))
        except ValueError:
            logger.warning(f"Ignoring malformed log id {raw!r} on alert")
    return parsed


async def get_alert_detail(session: AsyncSession, alert_id: uuid.UUID) -> AlertDetailResponse | None:
    """Load one alert (in any status) with its contributing audit logs.

    Args:
        session: The database session.
        alert_id: The alert ID.

    Returns:
        The alert and its logs, newest first, or None if no such alert exists.
        Ids of logs that no longer exist are reported in ``missing_log_ids``.
    """
    alert = await session.get(SecurityAlert, alert_id)
    if alert is None:
        return None

    log_ids = list(alert.log_ids or [])
    logs: list[AuditLog] = []
    parsed = _parse_log_ids(log_ids)
    if parsed:
        result = await session.execute(
            select(AuditLog).where(AuditLog.id.in_(parsed)).order_by(AuditLog.timestamp.desc())
        )
        logs = list(result.scalars().all())

    found = {str(log.id) for log in logs}
    return AlertDetailResponse(
        alert=SecurityAlertResponse.model_validate(alert),
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        missing_log_ids=[raw for raw in log_ids if raw not in found],
    )
