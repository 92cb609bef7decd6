"""Detector library — behavioral heuristics over the audit trail.

Public API:
    - AnomalyDetector: Runs applicable heuristics, isolating failures
    - Heuristic and the five built-in heuristics
    - Finding / AlertType / AlertSeverity / AlertStatus: Finding types
    - DetectorThresholds and its parts: Configurable thresholds
    - AuditHistory / AuditLogFilter: Query interface required from the store
"""

from audit_trail.lib.detector.analyzer import AnomalyDetector
from audit_trail.lib.detector.findings import (
    OPEN_ALERT_STATUSES,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Finding,
)
from audit_trail.lib.detector.heuristics import (
    DEFAULT_HEURISTICS,
    DOWNLOAD_ACTIONS,
    PROFILE_CHANGE_ACTIONS,
    BruteForceLoginHeuristic,
    BulkDownloadHeuristic,
    Heuristic,
    RapidProfileChangesHeuristic,
    UnusualHoursHeuristic,
    UnusualLocationHeuristic,
)
from audit_trail.lib.detector.history import AuditHistory, AuditLogFilter, ensure_utc
from audit_trail.lib.detector.thresholds import (
    CountThreshold,
    DetectorThresholds,
    HoursThreshold,
    LocationThreshold,
)

__all__ = [
    "DEFAULT_HEURISTICS",
    "DOWNLOAD_ACTIONS",
    "OPEN_ALERT_STATUSES",
    "PROFILE_CHANGE_ACTIONS",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "AnomalyDetector",
    "AuditHistory",
    "AuditLogFilter",
    "BruteForceLoginHeuristic",
    "BulkDownloadHeuristic",
    "CountThreshold",
    "DetectorThresholds",
    "Finding",
    "Heuristic",
    "HoursThreshold",
    "LocationThreshold",
    "RapidProfileChangesHeuristic",
    "UnusualHoursHeuristic",
    "UnusualLocationHeuristic",
    "ensure_utc",
]
