"""Tests for the alerts, logs and retention CLI commands."""

import asyncio
import csv
import json
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from typer.testing import CliRunner

from audit_trail.cli.app import app
from audit_trail.models.audit_log import AuditLog
from audit_trail.models.base import Base
from audit_trail.models.security_alert import SecurityAlert

runner = CliRunner()

BRUTE_FORCE_ALERT_ID = uuid.uuid4()
FAILED_LOGIN_ID = uuid.uuid4()


def _log(
    action: str,
    category: str,
    age: timedelta,
    *,
    success: bool = True,
    email: str | None = None,
    log_id: uuid.UUID | None = None,
) -> AuditLog:
    return AuditLog(
        id=log_id or uuid.uuid4(),
        timestamp=datetime.now(UTC) - age,
        action=action,
        category=category,
        risk_level="LOW",
        success=success,
        user_email=email,
        ip="8.8.8.8",
        user_agent="unknown",
    )


def _alert(
    alert_type: str,
    severity: str,
    status: str = "PENDING",
    *,
    alert_id: uuid.UUID | None = None,
    log_ids: list[str] | None = None,
) -> SecurityAlert:
    now = datetime.now(UTC)
    return SecurityAlert(
        id=alert_id or uuid.uuid4(),
        alert_type=alert_type,
        severity=severity,
        title=f"{alert_type} detected",
        description="test alert",
        user_email="user@example.com",
        log_ids=log_ids if log_ids is not None else [str(uuid.uuid4())],
        alert_metadata={},
        status=status,
        created_at=now,
        updated_at=now,
    )


async def _seed(url: str) -> None:
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_sessionmaker(engine)() as session:
        session.add_all(
            [
                _log("LOGIN", "AUTHENTICATION", timedelta(minutes=5), email="user@example.com"),
                _log(
                    "LOGIN_FAILED",
                    "AUTHENTICATION",
                    timedelta(minutes=3),
                    success=False,
                    email="user@example.com",
                    log_id=FAILED_LOGIN_ID,
                ),
                _log("FILE_UPLOADED", "FILES", timedelta(days=400)),
                _log("ROLE_ASSIGNED", "ADMINISTRATION", timedelta(days=400)),
                _alert(
                    "BRUTE_FORCE_LOGIN",
                    "HIGH",
                    alert_id=BRUTE_FORCE_ALERT_ID,
                    log_ids=[str(FAILED_LOGIN_ID), str(uuid.uuid4())],
                ),
                _alert("UNUSUAL_HOURS", "LOW"),
                _alert("BULK_DOWNLOAD", "HIGH", status="RESOLVED"),
            ]
        )
        await session.commit()
    await engine.dispose()


@pytest.fixture
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    asyncio.run(_seed(url))
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("GEO_ENABLED", "false")
    return url


class TestAlertsCommands:
    """Tests for the alerts command group."""

    def test_list_open_alerts(self, database: str) -> None:
        result = runner.invoke(app, ["alerts", "list"])
        assert result.exit_code == 0, result.output
        assert "BRUTE_FORCE_LOGIN" in result.output
        assert "UNUSUAL_HOURS" in result.output
        assert "BULK_DOWNLOAD" not in result.output
        assert "2 open alerts" in result.output

    def test_list_filtered_json(self, database: str) -> None:
        result = runner.invoke(app, ["alerts", "list", "--severity", "high", "--json"])
        assert result.exit_code == 0, result.output
        rows = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        assert len(rows) == 1
        assert rows[0]["alert_type"] == "BRUTE_FORCE_LOGIN"
        assert rows[0]["status"] == "PENDING"

    def test_log_level_override(self, database: str) -> None:
        result = runner.invoke(app, ["--log-level", "debug", "alerts", "list", "--type", "unusual_hours"])
        assert result.exit_code == 0, result.output
        assert "1 open alerts" in result.output

    def test_show_alert_with_logs(self, database: str) -> None:
        result = runner.invoke(app, ["alerts", "show", str(BRUTE_FORCE_ALERT_ID)])
        assert result.exit_code == 0, result.output
        assert "BRUTE_FORCE_LOGIN [HIGH] PENDING" in result.output
        assert "Contributing logs (1):" in result.output
        assert "LOGIN_FAILED" in result.output
        assert "1 contributing logs no longer exist" in result.output

    def test_show_alert_json(self, database: str) -> None:
        result = runner.invoke(app, ["alerts", "show", str(BRUTE_FORCE_ALERT_ID), "--json"])
        assert result.exit_code == 0, result.output
        line = next(line for line in result.output.splitlines() if line.startswith("{"))
        detail = json.loads(line)
        assert detail["alert"]["id"] == str(BRUTE_FORCE_ALERT_ID)
        assert [log["id"] for log in detail["logs"]] == [str(FAILED_LOGIN_ID)]
        assert len(detail["missing_log_ids"]) == 1

    def test_show_unknown_alert(self, database: str) -> None:
        result = runner.invoke(app, ["alerts", "show", str(uuid.uuid4())])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestLogsCommands:
    """Tests for the logs command group."""

    def test_list_failed_for_email(self, database: str) -> None:
        result = runner.invoke(app, ["logs", "list", "--email", "user@example.com", "--failed"])
        assert result.exit_code == 0, result.output
        assert "LOGIN_FAILED" in result.output
        assert "1 matching audit logs" in result.output

    def test_list_by_category(self, database: str) -> None:
        result = runner.invoke(app, ["logs", "list", "--category", "files"])
        assert result.exit_code == 0, result.output
        assert "FILE_UPLOADED" in result.output
        assert "1 matching audit logs" in result.output

    def test_stats_json(self, database: str) -> None:
        result = runner.invoke(app, ["logs", "stats", "--json"])
        assert result.exit_code == 0, result.output
        line = next(line for line in result.output.splitlines() if line.startswith("{"))
        stats = json.loads(line)
        assert stats["total"] == 2
        assert stats["failed"] == 1
        assert stats["success_rate"] == 50.0
        assert {b["key"] for b in stats["top_actions"]} == {"LOGIN", "LOGIN_FAILED"}

    def test_stats_table(self, database: str) -> None:
        result = runner.invoke(app, ["logs", "stats", "--since", "2000-01-01"])
        assert result.exit_code == 0, result.output
        assert "Total: 4  Failed: 1" in result.output
        assert "By category:" in result.output
        assert "ADMINISTRATION" in result.output

    def test_export_csv(self, database: str, tmp_path: Path) -> None:
        output = tmp_path / "export.csv"
        result = runner.invoke(app, ["logs", "export", "--output", str(output), "--category", "authentication"])
        assert result.exit_code == 0, result.output
        assert "Exported 2 audit logs" in result.output
        with output.open(newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["action"] for r in rows] == ["LOGIN_FAILED", "LOGIN"]
        assert rows[0]["success"] == "no"


class TestRetentionCommands:
    """Tests for the retention command group."""

    def test_stats(self, database: str) -> None:
        result = runner.invoke(app, ["retention", "stats"])
        assert result.exit_code == 0, result.output
        assert "AUTHENTICATION" in result.output
        assert "1825" in result.output

    def test_purge_dry_run_then_purge(self, database: str) -> None:
        result = runner.invoke(app, ["retention", "purge", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "FILES: would delete 1" in result.output
        assert "ADMINISTRATION" not in result.output

        result = runner.invoke(app, ["retention", "purge"])
        assert result.exit_code == 0, result.output
        assert "Total: deleted 1 audit logs" in result.output

        result = runner.invoke(app, ["logs", "list", "--category", "files"])
        assert "0 matching audit logs" in result.output


class TestDbCommands:
    """Tests for the db command group."""

    def test_upgrade_defaults_to_head(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        with patch("alembic.command.upgrade") as mock_upgrade:
            result = runner.invoke(app, ["db", "upgrade"])
        assert result.exit_code == 0, result.output
        config, revision = mock_upgrade.call_args.args
        assert revision == "head"
        assert config.config_file_name == "alembic.ini"

    def test_downgrade_one_step(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        with patch("alembic.command.downgrade") as mock_downgrade:
            result = runner.invoke(app, ["db", "downgrade"])
        assert result.exit_code == 0, result.output
        assert mock_downgrade.call_args.args[1] == "-1"
