"""Unit tests for the audit log CSV writer."""

import csv
from pathlib import Path

from audit_trail.lib.exporter import AUDIT_LOG_COLUMNS, write_csv


def _read(path: Path) -> list[dict[str, str]]:
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestWriteCsv:
    """Tests for write_csv."""

    def test_writes_header_and_rows(self, tmp_path: Path) -> None:
        output = tmp_path / "logs.csv"
        count = write_csv(
            output,
            [
                {"id": "1", "action": "LOGIN", "success": "yes", "ignored": "x"},
                {"id": "2", "action": "LOGOUT", "success": "no"},
            ],
        )
        assert count == 2
        rows = _read(output)
        assert list(rows[0].keys()) == AUDIT_LOG_COLUMNS
        assert [r["action"] for r in rows] == ["LOGIN", "LOGOUT"]
        assert rows[1]["user_email"] == ""

    def test_formula_cells_are_neutralized(self, tmp_path: Path) -> None:
        output = tmp_path / "logs.csv"
        write_csv(output, [{"user_email": "=HYPERLINK(\"http://x\")", "error_message": "-1", "ip": "8.8.8.8"}])
        row = _read(output)[0]
        assert row["user_email"].startswith("'=")
        assert row["error_message"] == "'-1"
        assert row["ip"] == "8.8.8.8"

    def test_custom_columns(self, tmp_path: Path) -> None:
        output = tmp_path / "logs.csv"
        write_csv(output, [{"id": "1", "action": "LOGIN"}], columns=["action"])
        assert output.read_text(encoding="utf-8").splitlines() == ["action", "LOGIN"]

    def test_empty_records_write_header_only(self, tmp_path: Path) -> None:
        output = tmp_path / "logs.csv"
        assert write_csv(output, []) == 0
        assert len(output.read_text(encoding="utf-8").splitlines()) == 1
