"""Query interface the heuristics need from the audit store."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from audit_trail.lib.enrichment.taxonomy import AuditAction
from audit_trail.models.audit_log import AuditLog


@dataclass(frozen=True)
class AuditLogFilter:
    """Filter over audit records; unset fields do not constrain the query."""

    actions: tuple[AuditAction, ...] = ()
    user_id: uuid.UUID | None = None
    user_email: str | None = None
    success: bool | None = None
    since: datetime | None = None
    until: datetime | None = None
    has_geo: bool = False
    exclude_id: uuid.UUID | None = None


class AuditHistory(Protocol):
    """Read access to recorded audit history."""

    async def count_audit_logs(self, flt: AuditLogFilter) -> int:
        """Count records matching ``flt``."""
        ...

    async def find_recent_audit_logs(self, flt: AuditLogFilter, limit: int) -> list[AuditLog]:
        """Return up to ``limit`` records matching ``flt``, newest first."""
        ...


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
