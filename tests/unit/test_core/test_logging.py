"""Unit tests for logging configuration."""

import json
from pathlib import Path

from loguru import logger

from audit_trail.core.logging import ALERT_LOG_FILE, APP_LOG_FILE, setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_log_dir_writes_text_and_alert_files(self, tmp_path: Path) -> None:
        """Plain records go to the text log; bound alert records also reach the JSON-lines file."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        try:
            logger.info("plain record")
            logger.bind(json_output=True, alert_type="BULK_DOWNLOAD").warning("alert record")
            logger.complete()

            text_log = (log_dir / APP_LOG_FILE).read_text()
            assert "plain record" in text_log
            assert "alert record" in text_log

            lines = (log_dir / ALERT_LOG_FILE).read_text().splitlines()
            assert len(lines) == 1
            record = json.loads(lines[0])["record"]
            assert record["message"] == "alert record"
            assert record["extra"]["alert_type"] == "BULK_DOWNLOAD"
        finally:
            setup_logging("INFO")
