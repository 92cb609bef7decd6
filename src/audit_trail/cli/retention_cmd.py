"""Audit log retention CLI commands."""

import asyncio
from datetime import UTC, datetime

import typer

retention_app = typer.Typer()


@retention_app.command("purge")
def purge(
    dry_run: bool = typer.Option(False, "--dry-run", help="Report expired logs without deleting them"),
) -> None:
    """Delete audit logs older than their category's retention period."""
    asyncio.run(_purge(dry_run=dry_run))


async def _purge(*, dry_run: bool) -> None:
    """Async implementation of the retention purge."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.services.retention_service import purge_expired_logs

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        counts = await purge_expired_logs(session, now=datetime.now(UTC), settings=settings, dry_run=dry_run)
    verb = "would delete" if dry_run else "deleted"
    for category, count in counts.items():
        if count:
            typer.echo(f"{category}: {verb} {count}")
    typer.echo(f"Total: {verb} {sum(counts.values())} audit logs")


@retention_app.command("stats")
def stats() -> None:
    """Show per-category retention periods and expired log counts."""
    asyncio.run(_stats())


async def _stats() -> None:
    """Async implementation of retention statistics."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.services.retention_service import retention_stats

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        rows = await retention_stats(session, now=datetime.now(UTC), settings=settings)
    typer.echo(f"{'Category':<22} {'Days':>6} {'Total':>10} {'Expired':>10}")
    for row in rows:
        typer.echo(f"{row.category:<22} {row.retention_days:>6} {row.total:>10} {row.expired:>10}")
