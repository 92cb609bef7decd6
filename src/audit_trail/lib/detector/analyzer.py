"""Run every applicable heuristic against one audit record."""

from loguru import logger

from audit_trail.lib.detector.findings import Finding
from audit_trail.lib.detector.heuristics import DEFAULT_HEURISTICS, Heuristic
from audit_trail.lib.detector.history import AuditHistory
from audit_trail.lib.detector.thresholds import DetectorThresholds
from audit_trail.models.audit_log import AuditLog


class AnomalyDetector:
    """Evaluates audit records against a set of independent heuristics.

    A heuristic that raises is logged and skipped; the others still run.

    Args:
        history: Read access to recorded audit history.
        thresholds: Thresholds shared by the default heuristics.
        heuristics: Explicit heuristic instances, overriding the defaults.
    """

    def __init__(
        self,
        history: AuditHistory,
        thresholds: DetectorThresholds | None = None,
        heuristics: list[Heuristic] | None = None,
    ) -> None:
        self.history = history
        self.thresholds = thresholds or DetectorThresholds()
        if heuristics is None:
            heuristics = [cls(self.thresholds) for cls in DEFAULT_HEURISTICS]
        self.heuristics = heuristics

    async def analyze(self, entry: AuditLog) -> list[Finding]:
        """Return the findings ``entry`` produces.

        Args:
            entry: A persisted audit record.

        Returns:
            Findings in heuristic order; empty when nothing looks anomalous.
        """
        findings: list[Finding] = []
        for heuristic in self.heuristics:
            if not heuristic.applies_to(entry):
                continue
            try:
                finding = await heuristic.evaluate(entry, self.history)
            except Exception:
                logger.exception(f"Heuristic {heuristic.alert_type} failed for audit log {entry.id}")
                continue
            if finding is not None:
                logger.info(f"Heuristic {finding.alert_type} fired for audit log {entry.id}")
                findings.append(finding)
        return findings
