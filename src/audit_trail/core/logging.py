"""Loguru logging configuration.

Plain text goes to stderr.  Records bound with ``json_output=True`` (security
alert notifications) are also emitted as serialized JSON so a log shipper
can route them.  With a ``log_dir``, both streams are written to files as well.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"

APP_LOG_FILE = "audit-trail.log"
ALERT_LOG_FILE = "security-alerts.jsonl"


def _is_structured(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks, replacing any configured earlier.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, the text log is
            rotated every 24 hours and kept 7 days; structured alert records
            go to their own JSON-lines file, kept 90 days.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=False)
    logger.add(sys.stderr, level=level, serialize=True, filter=_is_structured)

    if not log_dir:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(log_path / APP_LOG_FILE, level=level, format=_LOG_FORMAT, rotation="24h", retention="7 days")
    logger.add(
        log_path / ALERT_LOG_FILE,
        level=level,
        serialize=True,
        filter=_is_structured,
        rotation="24h",
        retention="90 days",
    )
