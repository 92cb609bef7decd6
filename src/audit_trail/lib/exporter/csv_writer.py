"""CSV export writer for audit log rows."""

import csv
from collections.abc import Iterable
from pathlib import Path
from typing import Any

# Characters that trigger formula execution in spreadsheet applications
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

AUDIT_LOG_COLUMNS = [
    "id",
    "timestamp",
    "user_email",
    "user_name",
    "action",
    "resource",
    "category",
    "risk_level",
    "success",
    "ip",
    "location",
    "device",
    "browser",
    "error_code",
    "error_message",
]


def _sanitize_cell(value: object) -> object:
    """Prefix formula-triggering strings with a single quote."""
    if isinstance(value, str) and value and value[0] in _FORMULA_PREFIXES:
        return f"'{value}"
    return value


def write_csv(
    output_path: Path,
    records: Iterable[dict[str, Any]],
    *,
    columns: list[str] | None = None,
) -> int:
    """Write audit log rows to a CSV file.

    Args:
        output_path: Path to write the CSV file.
        records: Iterable of flattened row dicts.
        columns: Column names to include. Defaults to AUDIT_LOG_COLUMNS.

    Returns:
        Number of rows written.
    """
    cols = columns or AUDIT_LOG_COLUMNS
    count = 0

    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()

        for record in records:
            writer.writerow({k: _sanitize_cell(v) for k, v in record.items()})
            count += 1

    return count
