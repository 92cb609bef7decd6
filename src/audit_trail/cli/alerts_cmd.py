"""Security alert review CLI commands."""

import asyncio
import uuid

import typer

alerts_app = typer.Typer()


@alerts_app.command("list")
def list_alerts(
    alert_type: str | None = typer.Option(None, "--type", help="Filter by alert type"),
    severity: str | None = typer.Option(None, "--severity", help="Filter by severity"),
    email: str | None = typer.Option(None, "--email", help="Filter by actor email"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    page_size: int = typer.Option(20, "--page-size", min=1, max=100, help="Alerts per page"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON lines instead of a table"),
) -> None:
    """List open (pending or in-review) security alerts, newest first."""
    asyncio.run(_list_alerts(alert_type, severity, email, page, page_size, as_json=as_json))


async def _list_alerts(
    alert_type: str | None,
    severity: str | None,
    email: str | None,
    page: int,
    page_size: int,
    *,
    as_json: bool = False,
) -> None:
    """Async implementation of alert listing."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.schemas.audit import SecurityAlertResponse
    from audit_trail.services.alert_service import list_open_alerts

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        alerts, total = await list_open_alerts(
            session,
            alert_type=alert_type.upper() if alert_type else None,
            severity=severity.upper() if severity else None,
            user_email=email,
            page=page,
            page_size=page_size,
        )

    for alert in alerts:
        row = SecurityAlertResponse.model_validate(alert)
        if as_json:
            typer.echo(row.model_dump_json())
        else:
            typer.echo(
                f"{row.created_at:%Y-%m-%d %H:%M} {row.severity:<8} {row.alert_type:<22} "
                f"{row.user_email or '-':<30} {len(row.log_ids):>3} logs  {row.title}"
            )
    if not as_json:
        typer.echo(f"{total} open alerts")


@alerts_app.command("show")
def show_alert(
    alert_id: uuid.UUID = typer.Argument(..., help="Alert ID"),
    as_json: bool = typer.Option(False, "--json", help="Emit the alert and its logs as one JSON document"),
) -> None:
    """Show one alert, in any status, with the audit logs that produced it."""
    asyncio.run(_show_alert(alert_id, as_json=as_json))


async def _show_alert(alert_id: uuid.UUID, *, as_json: bool = False) -> None:
    """Async implementation of alert detail."""
    from audit_trail.core.config import get_settings
    from audit_trail.core.database import standalone_session
    from audit_trail.services.alert_service import get_alert_detail

    settings = get_settings()
    async with standalone_session(settings.database_url, schema=settings.database_schema) as session:
        detail = await get_alert_detail(session, alert_id)

    if detail is None:
        typer.echo(f"Error: Alert {alert_id} not found", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(detail.model_dump_json())
        return

    alert = detail.alert
    typer.echo(f"{alert.alert_type} [{alert.severity}] {alert.status}")
    typer.echo(f"  {alert.title}")
    typer.echo(f"  User:     {alert.user_email or '-'}")
    typer.echo(f"  IP:       {alert.ip or '-'}  {alert.location or ''}".rstrip())
    typer.echo(f"  Created:  {alert.created_at:%Y-%m-%d %H:%M:%S}  Updated: {alert.updated_at:%Y-%m-%d %H:%M:%S}")
    typer.echo(f"  Notified: {'yes' if alert.notified else 'no'}")
    typer.echo("")
    typer.echo(alert.description)
    typer.echo("")
    typer.echo(f"Contributing logs ({len(detail.logs)}):")
    for log in detail.logs:
        status = "ok" if log.success else "FAILED"
        typer.echo(f"  {log.timestamp:%Y-%m-%d %H:%M:%S} {log.action:<30} {status:<6} {log.ip:<15} {log.risk_level}")
    if detail.missing_log_ids:
        typer.echo(f"{len(detail.missing_log_ids)} contributing logs no longer exist")
