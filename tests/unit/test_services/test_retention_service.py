"""Tests for audit log retention."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_trail.core.config import Settings
from audit_trail.lib.enrichment import AuditCategory
from audit_trail.models.audit_log import AuditLog
from audit_trail.services.retention_service import (
    EXTENDED_RETENTION_CATEGORIES,
    purge_expired_logs,
    retention_policies,
    retention_stats,
)

NOW = datetime(2026, 3, 2, 17, 0, tzinfo=UTC)


async def _add_logs(session: AsyncSession, category: AuditCategory, age_days: int, count: int = 1) -> None:
    for _ in range(count):
        session.add(
            AuditLog(
                id=uuid.uuid4(),
                timestamp=NOW - timedelta(days=age_days),
                action="GENERIC_EVENT",
                category=str(category),
                risk_level="LOW",
                success=True,
                ip="unknown",
                user_agent="unknown",
            )
        )
    await session.commit()


async def _count(session: AsyncSession, category: AuditCategory) -> int:
    query = select(func.count(AuditLog.id)).where(AuditLog.category == str(category))
    return (await session.execute(query)).scalar_one()


class TestRetentionPolicies:
    """Tests for retention_policies."""

    def test_every_category_has_a_policy(self, settings: Settings) -> None:
        policies = retention_policies(settings)
        assert set(policies) == set(AuditCategory)

    def test_extended_categories(self, settings: Settings) -> None:
        policies = retention_policies(settings)
        for category in EXTENDED_RETENTION_CATEGORIES:
            assert policies[category] == 1825
        assert policies[AuditCategory.AUTHENTICATION] == 365
        assert policies[AuditCategory.GENERAL] == 365


class TestPurgeExpiredLogs:
    """Tests for purge_expired_logs."""

    async def test_deletes_only_expired_rows(self, async_session: AsyncSession, settings: Settings) -> None:
        await _add_logs(async_session, AuditCategory.AUTHENTICATION, age_days=400, count=2)
        await _add_logs(async_session, AuditCategory.AUTHENTICATION, age_days=10)
        # Past the default period but inside the extended one
        await _add_logs(async_session, AuditCategory.SECURITY, age_days=400)
        await _add_logs(async_session, AuditCategory.SECURITY, age_days=2000)

        deleted = await purge_expired_logs(async_session, now=NOW, settings=settings)

        assert deleted[AuditCategory.AUTHENTICATION] == 2
        assert deleted[AuditCategory.SECURITY] == 1
        assert await _count(async_session, AuditCategory.AUTHENTICATION) == 1
        assert await _count(async_session, AuditCategory.SECURITY) == 1

    async def test_dry_run_keeps_rows(self, async_session: AsyncSession, settings: Settings) -> None:
        await _add_logs(async_session, AuditCategory.FILES, age_days=500, count=3)

        counted = await purge_expired_logs(async_session, now=NOW, settings=settings, dry_run=True)

        assert counted[AuditCategory.FILES] == 3
        assert await _count(async_session, AuditCategory.FILES) == 3

    @pytest.mark.parametrize("batch_size", [1, 2, 5])
    async def test_batches_cover_all_rows(self, async_session: AsyncSession, batch_size: int) -> None:
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            retention_batch_size=batch_size,
            _env_file=None,  # type: ignore[call-arg]
        )
        await _add_logs(async_session, AuditCategory.GENERAL, age_days=366, count=4)

        deleted = await purge_expired_logs(async_session, now=NOW, settings=settings)

        assert deleted[AuditCategory.GENERAL] == 4
        assert await _count(async_session, AuditCategory.GENERAL) == 0


class TestRetentionStats:
    """Tests for retention_stats."""

    async def test_reports_totals_and_expired(self, async_session: AsyncSession, settings: Settings) -> None:
        await _add_logs(async_session, AuditCategory.AUTHENTICATION, age_days=400)
        await _add_logs(async_session, AuditCategory.AUTHENTICATION, age_days=1, count=2)

        stats = {s.category: s for s in await retention_stats(async_session, now=NOW, settings=settings)}

        auth = stats[AuditCategory.AUTHENTICATION]
        assert auth.retention_days == 365
        assert auth.total == 3
        assert auth.expired == 1
        assert stats[AuditCategory.SYSTEM].total == 0
