"""Audit log query CLI commands."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import typer

logs_app = typer.Typer()


@logs_app.command("list")
def list_logs(
    email: str | None = typer.Option(None, "--email", help="Filter by actor email"),
    action: str | None = typer.Option(None, "--action", help="Filter by action"),
    category: str | None = typer.Option(None, "--category", help="Filter by category"),
    since: datetime | None = typer.Option(None, "--since", help="Only records at or after this time (UTC)"),
    failed: bool = typer.Option(False, "--failed", help="Only unsuccessful events"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    page_size: int = typer.Option(20, "--page-size", min=1, max=100, help="Records per page"),
) -> None:
    """List audit log records, newest first."""
    asyncio.run(_list_logs(email, action, category, since, page, page_size, failed=failed))


async def _list_logs(
    email: str | None,
    action: str | None,
    category: str | None,
    since: datetime | None,
    page: int,
    page_size: int,
    *,
    failed: bool = False,
) -> None:
    """Async implementation of audit log listing."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.schemas.audit import AuditLogResponse
    from audit_trail.services.audit_service import query_audit_logs

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        logs, total = await query_audit_logs(
            session,
            user_email=email,
            action=action.upper() if action else None,
            category=category.upper() if category else None,
            success=False if failed else None,
            start_time=since,
            page=page,
            page_size=page_size,
        )

    for log in logs:
        row = AuditLogResponse.model_validate(log)
        status = "ok" if row.success else "FAILED"
        location = (row.ip_geo or {}).get("country") or "-"
        typer.echo(
            f"{row.timestamp:%Y-%m-%d %H:%M:%S} {row.action:<30} {status:<6} "
            f"{row.user_email or '-':<30} {row.ip:<15} {location}"
        )
    typer.echo(f"{total} matching audit logs")


@logs_app.command("stats")
def logs_stats(
    since: datetime | None = typer.Option(None, "--since", help="Window start (UTC); defaults to 30 days ago"),
    until: datetime | None = typer.Option(None, "--until", help="Window end (UTC); defaults to now"),
    top: int = typer.Option(10, "--top", min=1, max=100, help="Entries shown in top-N breakdowns"),
    as_json: bool = typer.Option(False, "--json", help="Emit the stats as one JSON document"),
) -> None:
    """Summarize audit activity by outcome, risk level, category, action, IP and user."""
    asyncio.run(_logs_stats(since, until, top, as_json=as_json))


async def _logs_stats(
    since: datetime | None,
    until: datetime | None,
    top: int,
    *,
    as_json: bool = False,
) -> None:
    """Async implementation of audit log stats."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.services.audit_report_service import get_audit_stats

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        stats = await get_audit_stats(
            session,
            now=datetime.now(UTC),
            start_time=since,
            end_time=until,
            top_n=top,
        )

    if as_json:
        typer.echo(stats.model_dump_json())
        return

    typer.echo(f"Audit activity {stats.start_time:%Y-%m-%d %H:%M} to {stats.end_time:%Y-%m-%d %H:%M} UTC")
    typer.echo(f"  Total: {stats.total}  Failed: {stats.failed}  Success rate: {stats.success_rate:.2f}%")
    sections = [
        ("By risk level", stats.by_risk_level),
        ("By category", stats.by_category),
        ("Top actions", stats.top_actions),
        ("Top IPs", stats.top_ips),
    ]
    for heading, buckets in sections:
        typer.echo(f"{heading}:")
        for bucket in buckets:
            typer.echo(f"  {bucket.key or '-':<30} {bucket.count:>8}")
    typer.echo("Top users:")
    for actor in stats.top_users:
        typer.echo(f"  {actor.user_email or str(actor.user_id):<30} {actor.count:>8}")
    typer.echo("Daily activity:")
    for day in stats.daily_activity:
        typer.echo(f"  {day.day:<30} {day.count:>8}")


@logs_app.command("export")
def export_logs(
    output: Path = typer.Option(..., "--output", "-o", help="Destination CSV file"),
    email: str | None = typer.Option(None, "--email", help="Filter by actor email"),
    action: str | None = typer.Option(None, "--action", help="Filter by action"),
    category: str | None = typer.Option(None, "--category", help="Filter by category"),
    risk: str | None = typer.Option(None, "--risk", help="Filter by risk level"),
    since: datetime | None = typer.Option(None, "--since", help="Only records at or after this time (UTC)"),
    until: datetime | None = typer.Option(None, "--until", help="Only records at or before this time (UTC)"),
    failed: bool = typer.Option(False, "--failed", help="Only unsuccessful events"),
    limit: int = typer.Option(10_000, "--limit", min=1, help="Maximum rows exported"),
) -> None:
    """Export filtered audit logs, newest first, to CSV."""
    asyncio.run(
        _export_logs(
            output,
            limit,
            user_email=email,
            action=action.upper() if action else None,
            category=category.upper() if category else None,
            risk_level=risk.upper() if risk else None,
            success=False if failed else None,
            start_time=since,
            end_time=until,
        )
    )


async def _export_logs(output: Path, limit: int, **filters: object) -> None:
    """Async implementation of audit log export."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.services.audit_report_service import export_audit_logs

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        count = await export_audit_logs(session, output, limit=limit, **filters)

    typer.echo(f"Exported {count} audit logs to {output}")
