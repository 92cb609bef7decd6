"""Exporter library — writes flattened audit log rows to files.

Public API:
    - write_csv: Write rows to a CSV file with formula-safe cells
    - AUDIT_LOG_COLUMNS: Default column order for audit log exports
"""

from audit_trail.lib.exporter.csv_writer import AUDIT_LOG_COLUMNS, write_csv

__all__ = [
    "AUDIT_LOG_COLUMNS",
    "write_csv",
]
