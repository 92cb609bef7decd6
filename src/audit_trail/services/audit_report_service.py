"""Audit reporting service — aggregate activity stats and CSV export."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from audit_trail.lib.detector import ensure_utc
from audit_trail.lib.exporter import write_csv
from audit_trail.models.audit_log import AuditLog
from audit_trail.schemas.audit import ActorActivity, AuditStatsResponse, CountBucket, DailyActivity
from audit_trail.services.audit_service import audit_log_conditions

DEFAULT_STATS_DAYS = 30
DEFAULT_TOP_N = 10
MAX_EXPORT_ROWS = 10_000
SYSTEM_ACTOR = "system"


async def _count(session: AsyncSession, conditions: list[ColumnElement[bool]]) -> int:
    return (await session.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar_one()


async def _count_by(
    session: AsyncSession,
    column: InstrumentedAttribute[Any],
    conditions: list[ColumnElement[bool]],
    *,
    limit: int | None = None,
) -> list[CountBucket]:
    count = func.count(AuditLog.id)
    query = select(column, count).where(*conditions).group_by(column).order_by(count.desc(), column)
    if limit is not None:
        query = query.limit(limit)
    rows = (await session.execute(query)).all()
    return [CountBucket(key=None if key is None else str(key), count=n) for key, n in rows]


async def get_audit_stats(
    session: AsyncSession,
    *,
    now: datetime,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    top_n: int = DEFAULT_TOP_N,
) -> AuditStatsResponse:
    """Aggregate audit activity for an administrative dashboard.

    Args:
        session: The database session.
        now: Current time; the window defaults to the last 30 days before it.
        start_time: Start of the window (inclusive).
        end_time: End of the window (inclusive). Defaults to ``now``.
        top_n: Number of entries kept in the top actions, IPs and users.

    Returns:
        Totals, outcome split and per-column breakdowns for the window.
    """
    start = ensure_utc(start_time) if start_time else ensure_utc(now) - timedelta(days=DEFAULT_STATS_DAYS)
    end = ensure_utc(end_time) if end_time else ensure_utc(now)
    window = audit_log_conditions(start_time=start, end_time=end)

    total = await _count(session, window)
    failed = await _count(session, audit_log_conditions(start_time=start, end_time=end, success=False))

    day = func.date(AuditLog.timestamp)
    day_count = func.count(AuditLog.id)
    daily_rows = (
        await session.execute(select(day, day_count).where(*window).group_by(day).order_by(day.desc()))
    ).all()

    user_count = func.count(AuditLog.id)
    user_rows = (
        await session.execute(
            select(AuditLog.user_id, AuditLog.user_email, AuditLog.user_name, user_count)
            .where(*window, AuditLog.user_id.is_not(None))
            .group_by(AuditLog.user_id, AuditLog.user_email, AuditLog.user_name)
            .order_by(user_count.desc())
            .limit(top_n)
        )
    ).all()

    return AuditStatsResponse(
        start_time=start,
        end_time=end,
        total=total,
        failed=failed,
        success_rate=round((total - failed) / total * 100, 2) if total else 0.0,
        by_risk_level=await _count_by(session, AuditLog.risk_level, window),
        by_category=await _count_by(session, AuditLog.category, window),
        top_actions=await _count_by(session, AuditLog.action, window, limit=top_n),
        top_ips=await _count_by(session, AuditLog.ip, window, limit=top_n),
        top_users=[
            ActorActivity(user_id=user_id, user_email=email, user_name=name, count=n)
            for user_id, email, name, n in user_rows
        ],
        daily_activity=[DailyActivity(day=str(value), count=n) for value, n in daily_rows],
    )


def audit_log_row(log: AuditLog) -> dict[str, Any]:
    """Flatten an audit log into the export column layout."""
    geo = log.ip_geo or {}
    location = ", ".join(part for part in (geo.get("city"), geo.get("country")) if part)
    return {
        "id": str(log.id),
        "timestamp": ensure_utc(log.timestamp).isoformat(),
        "user_email": log.user_email or SYSTEM_ACTOR,
        "user_name": log.user_name or "",
        "action": log.action,
        "resource": log.resource or "",
        "category": log.category,
        "risk_level": log.risk_level,
        "success": "yes" if log.success else "no",
        "ip": log.ip,
        "location": location,
        "device": log.device or "",
        "browser": log.browser or "",
        "error_code": log.error_code or "",
        "error_message": log.error_message or "",
    }


async def export_audit_logs(
    session: AsyncSession,
    output_path: Path,
    *,
    limit: int = MAX_EXPORT_ROWS,
    **filters: Any,
) -> int:
    """Write filtered audit logs, newest first, to a CSV file.

    Args:
        session: The database session.
        output_path: Destination CSV file.
        limit: Maximum number of rows exported.
        **filters: Keyword filters accepted by ``audit_log_conditions``.

    Returns:
        Number of rows written.
    """
    query = (
        select(AuditLog)
        .where(*audit_log_conditions(**filters))
        .order_by(AuditLog.timestamp.desc())
        .limit(limit)
    )
    logs = (await session.execute(query)).scalars().all()
    count = write_csv(output_path, (audit_log_row(log) for log in logs))
    logger.info(f"Exported {count} audit logs to {output_path}")
    return count
