"""SQLAlchemy persistence for audit logs and security alerts.

Each method opens its own short-lived session from the injected factory, so
the store can be shared by the request path and by background analysis tasks.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit_trail.lib.detector.findings import OPEN_ALERT_STATUSES, AlertStatus, AlertType
from audit_trail.lib.detector.history import AuditLogFilter, ensure_utc
from audit_trail.models.audit_log import AuditLog
from audit_trail.models.security_alert import SecurityAlert


@dataclass(frozen=True)
class AlertFilter:
    """Lookup key for an open alert eligible for deduplication."""

    alert_type: AlertType
    user_email: str | None
    created_since: datetime
    statuses: tuple[AlertStatus, ...] = OPEN_ALERT_STATUSES


class AuditStore:
    """Append-only audit log storage plus the alert table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create_audit_log(self, values: dict[str, Any]) -> AuditLog:
        """Insert one audit record.

        Args:
            values: Column values for the new row.

        Returns:
            The persisted AuditLog.

        Raises:
            SQLAlchemyError: If the insert fails.
        """
        async with self.session_factory() as session:
            entry = AuditLog(**values)
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
            return entry

    async def count_audit_logs(self, flt: AuditLogFilter) -> int:
        query = _apply_filter(select(func.count(AuditLog.id)), flt)
        async with self.session_factory() as session:
            return (await session.execute(query)).scalar_one()

    async def find_recent_audit_logs(self, flt: AuditLogFilter, limit: int) -> list[AuditLog]:
        query = _apply_filter(select(AuditLog), flt).order_by(AuditLog.timestamp.desc()).limit(limit)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def find_open_alert(self, flt: AlertFilter) -> SecurityAlert | None:
        """Return the oldest open alert matching ``flt``, if any."""
        query = select(SecurityAlert).where(
            SecurityAlert.alert_type == flt.alert_type,
            SecurityAlert.status.in_([str(s) for s in flt.statuses]),
            SecurityAlert.created_at >= ensure_utc(flt.created_since),
        )
        if flt.user_email is None:
            query = query.where(SecurityAlert.user_email.is_(None))
        else:
            query = query.where(SecurityAlert.user_email == flt.user_email)
        query = query.order_by(SecurityAlert.created_at.asc()).limit(1)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def create_alert(self, values: dict[str, Any]) -> SecurityAlert:
        async with self.session_factory() as session:
            alert = SecurityAlert(**values)
            session.add(alert)
            await session.commit()
            await session.refresh(alert)
            return alert

    async def update_alert(self, alert_id: uuid.UUID, values: dict[str, Any]) -> SecurityAlert:
        """Apply ``values`` to an existing alert.

        Raises:
            LookupError: If the alert no longer exists.
        """
        async with self.session_factory() as session:
            alert = await session.get(SecurityAlert, alert_id)
            if alert is None:
                msg = f"Security alert {alert_id} not found"
                raise LookupError(msg)
            for key, value in values.items():
                setattr(alert, key, value)
            await session.commit()
            await session.refresh(alert)
            return alert

    async def mark_alert_notified(self, alert_id: uuid.UUID, notified_at: datetime) -> SecurityAlert:
        return await self.update_alert(alert_id, {"notified": True, "notified_at": ensure_utc(notified_at)})


def _apply_filter(query: Select[Any], flt: AuditLogFilter) -> Select[Any]:
    if flt.actions:
        query = query.where(AuditLog.action.in_([str(a) for a in flt.actions]))
    if flt.user_id is not None:
        query = query.where(AuditLog.user_id == flt.user_id)
    if flt.user_email is not None:
        query = query.where(AuditLog.user_email == flt.user_email)
    if flt.success is not None:
        query = query.where(AuditLog.success == flt.success)
    if flt.since is not None:
        query = query.where(AuditLog.timestamp >= ensure_utc(flt.since))
    if flt.until is not None:
        query = query.where(AuditLog.timestamp <= ensure_utc(flt.until))
    if flt.has_geo:
        query = query.where(AuditLog.ip_geo.is_not(None))
    if flt.exclude_id is not None:
        query = query.where(AuditLog.id != flt.exclude_id)
    return query
