"""Typer CLI root application with serve command."""

import typer

from audit_trail.core.config import get_settings
from audit_trail.core.logging import setup_logging

app = typer.Typer(name="audit-trail", help="Audit trail and security alerting CLI")


@app.callback()
def _main_callback(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this command"),
) -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "audit_trail.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from audit_trail.cli.alerts_cmd import alerts_app
    from audit_trail.cli.db_cmd import db_app
    from audit_trail.cli.logs_cmd import logs_app
    from audit_trail.cli.retention_cmd import retention_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(alerts_app, name="alerts", help="Security alert review commands")
    app.add_typer(logs_app, name="logs", help="Audit log query commands")
    app.add_typer(retention_app, name="retention", help="Audit log retention commands")


_register_subcommands()
