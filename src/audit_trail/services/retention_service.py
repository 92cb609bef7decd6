"""Audit log retention.

Each category keeps its records for a fixed number of days.  Categories that
carry legal or investigative weight (personal data, financial documents,
administration, security) use the extended period.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_trail.core.config import Settings
from audit_trail.lib.detector.history import ensure_utc
from audit_trail.lib.enrichment.taxonomy import AuditCategory
from audit_trail.models.audit_log import AuditLog

EXTENDED_RETENTION_CATEGORIES: frozenset[AuditCategory] = frozenset(
    {
        AuditCategory.PERSONAL_DATA,
        AuditCategory.FINANCIAL_DOCUMENTS,
        AuditCategory.ADMINISTRATION,
        AuditCategory.SECURITY,
    }
)


@dataclass
class RetentionStats:
    """Row counts for one category under its retention policy."""

    category: AuditCategory
    retention_days: int
    total: int
    expired: int


def retention_policies(settings: Settings) -> dict[AuditCategory, int]:
    """Map every category to its retention period in days."""
    return {
        category: (
            settings.retention_extended_days
            if category in EXTENDED_RETENTION_CATEGORIES
            else settings.retention_default_days
        )
        for category in AuditCategory
    }


async def purge_expired_logs(
    session: AsyncSession,
    *,
    now: datetime,
    settings: Settings,
    dry_run: bool = False,
) -> dict[AuditCategory, int]:
    """Delete audit logs older than their category's retention period.

    Rows are removed in batches of ``settings.retention_batch_size`` and each
    batch is committed on its own.

    Args:
        session: The database session.
        now: Reference time for computing cutoffs.
        settings: Application settings with retention periods.
        dry_run: Count expired rows without deleting them.

    Returns:
        Number of rows deleted (or that would be deleted) per category.
    """
    deleted: dict[AuditCategory, int] = {}
    for category, days in retention_policies(settings).items():
        cutoff = ensure_utc(now) - timedelta(days=days)
        expired = (AuditLog.category == str(category), AuditLog.timestamp < cutoff)

        if dry_run:
            count = (await session.execute(select(func.count(AuditLog.id)).where(*expired))).scalar_one()
            deleted[category] = count
            continue

        total = 0
        while True:
            batch = (
                (await session.execute(select(AuditLog.id).where(*expired).limit(settings.retention_batch_size)))
                .scalars()
                .all()
            )
            if not batch:
                break
            await session.execute(delete(AuditLog).where(AuditLog.id.in_(batch)))
            await session.commit()
            total += len(batch)
            if len(batch) < settings.retention_batch_size:
                break

        if total:
            logger.info(f"Purged {total} {category} audit logs older than {days} days")
        deleted[category] = total

    logger.info(f"Retention purge complete: {sum(deleted.values())} audit logs {'expired' if dry_run else 'deleted'}")
    return deleted


async def retention_stats(session: AsyncSession, *, now: datetime, settings: Settings) -> list[RetentionStats]:
    """Report total and expired row counts per category."""
    stats = []
    for category, days in retention_policies(settings).items():
        cutoff = ensure_utc(now) - timedelta(days=days)
        total = (
            await session.execute(select(func.count(AuditLog.id)).where(AuditLog.category == str(category)))
        ).scalar_one()
        expired = (
            await session.execute(
                select(func.count(AuditLog.id)).where(AuditLog.category == str(category), AuditLog.timestamp < cutoff)
            )
        ).scalar_one()
        stats.append(RetentionStats(category=category, retention_days=days, total=total, expired=expired))
    return stats
