"""Audit pipeline service.

Records sanitized, enriched audit events and hands each persisted record to
the anomaly detector in the background.  Recording is best-effort: nothing in
this module raises into the business operation that produced the event.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic_core import to_jsonable_python
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit_trail.core.background import BackgroundTaskRunner
from audit_trail.core.config import Settings
from audit_trail.lib.detector import AnomalyDetector, DetectorThresholds, ensure_utc
from audit_trail.lib.enrichment import UNKNOWN, assess_risk, categorize, parse_user_agent
from audit_trail.lib.geolocation import GeoCache, GeolocationResolver, build_resolver
from audit_trail.lib.sanitizer import DEFAULT_MAX_DEPTH, sanitize
from audit_trail.models.audit_log import AuditLog
from audit_trail.schemas.audit import AuditEventParams
from audit_trail.services.alert_service import AlertAggregator
from audit_trail.services.audit_store import AuditStore
from audit_trail.services.identity_service import IdentityService
from audit_trail.services.notification_service import LogNotifier


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _json_safe(payload: Any, max_depth: int) -> Any:
    """Sanitize ``payload`` and coerce leftover scalars (UUIDs, datetimes, ...) to JSON."""
    sanitized = sanitize(payload, max_depth=max_depth)
    if sanitized is None:
        return None
    return to_jsonable_python(sanitized, fallback=str)


class AuditPipeline:
    """Entry point for recording audit events.

    Args:
        store: Audit log and alert persistence.
        identity: Actor lookups for the email/name snapshot.
        detector: Heuristics evaluated for every persisted record.
        aggregator: Turns findings into deduplicated alerts.
        dispatcher: Bounded runner for background analysis.
        resolver: IP geolocation; None disables enrichment.
        clock: Current-time source for record timestamps.
        max_depth: Depth cap applied when sanitizing payloads.
    """

    def __init__(
        self,
        *,
        store: AuditStore,
        identity: IdentityService,
        detector: AnomalyDetector,
        aggregator: AlertAggregator,
        dispatcher: BackgroundTaskRunner,
        resolver: GeolocationResolver | None = None,
        clock: Callable[[], datetime] = _utcnow,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.store = store
        self.identity = identity
        self.detector = detector
        self.aggregator = aggregator
        self.dispatcher = dispatcher
        self.resolver = resolver
        self._clock = clock
        self.max_depth = max_depth

    async def record_audit_event(self, params: AuditEventParams) -> AuditLog | None:
        """Persist one audit event and schedule its anomaly analysis.

        Never raises.

        Args:
            params: The event to record.

        Returns:
            The persisted AuditLog, or None if recording failed.
        """
        try:
            values = await self._build_values(params)
            entry = await self.store.create_audit_log(values)
        except Exception:
            logger.exception(f"Failed to record audit event {params.action}")
            return None

        try:
            self.dispatcher.submit_task(self._analyze(entry), name=f"analyze-audit-log-{entry.id}")
        except Exception:
            logger.exception(f"Failed to schedule analysis for audit log {entry.id}")
        return entry

    async def _build_values(self, params: AuditEventParams) -> dict[str, Any]:
        user_email = params.user_email
        user_name = None
        if params.user_id is not None:
            actor = await self.identity.find_actor(params.user_id)
            if actor is not None:
                user_email = actor.email
                user_name = actor.display_name

        device = parse_user_agent(params.user_agent) if params.user_agent else None

        ip_geo = None
        if self.resolver is not None:
            location = await self.resolver.resolve(params.ip)
            if location is not None:
                ip_geo = location.to_dict()

        return {
            "id": uuid.uuid4(),
            "timestamp": ensure_utc(self._clock()),
            "user_id": params.user_id,
            "user_email": user_email,
            "user_name": user_name,
            "action": str(params.action),
            "resource": params.resource,
            "category": str(params.category or categorize(params.action)),
            "risk_level": str(params.risk_level or assess_risk(params.action, params.success)),
            "success": params.success,
            "error_code": params.error_code,
            "error_message": params.error_message,
            "details": _json_safe(params.details, self.max_depth),
            "details_before": _json_safe(params.details_before, self.max_depth),
            "details_after": _json_safe(params.details_after, self.max_depth),
            "ip": params.ip or UNKNOWN,
            "ip_geo": ip_geo,
            "user_agent": params.user_agent or UNKNOWN,
            "device": device.device if device else None,
            "browser": device.browser if device else None,
            "os": device.os if device else None,
            "http_method": params.http_method,
            "path": params.path,
            "duration_ms": params.duration_ms,
            "session_id": params.session_id,
            "request_id": params.request_id,
            "tags": list(params.tags) if params.tags else None,
        }

    async def _analyze(self, entry: AuditLog) -> None:
        findings = await self.detector.analyze(entry)
        for finding in findings:
            try:
                await self.aggregator.upsert_alert(finding)
            except Exception:
                logger.exception(f"Failed to upsert {finding.alert_type} alert for audit log {entry.id}")


def audit_log_conditions(
    *,
    user_id: uuid.UUID | None = None,
    user_email: str | None = None,
    action: str | None = None,
    category: str | None = None,
    risk_level: str | None = None,
    success: bool | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
) -> list[ColumnElement[bool]]:
    """Build WHERE conditions for the optional audit log filters.

    Args:
        user_id: Filter by user ID.
        user_email: Filter by actor email.
        action: Filter by action.
        category: Filter by category.
        risk_level: Filter by risk level.
        success: Filter by outcome.
        start_time: Filter records at or after this timestamp.
        end_time: Filter records at or before this timestamp.

    Returns:
        Conditions to pass to ``Select.where``; empty when no filter is set.
    """
    conditions: list[ColumnElement[bool]] = []
    if user_id is not None:
        conditions.append(AuditLog.user_id == user_id)
    if user_email is not None:
        conditions.append(AuditLog.user_email == user_email)
    if action is not None:
        conditions.append(AuditLog.action == action)
    if category is not None:
        conditions.append(AuditLog.category == category)
    if risk_level is not None:
        conditions.append(AuditLog.risk_level == risk_level)
    if success is not None:
        conditions.append(AuditLog.success == success)
    if start_time is not None:
        conditions.append(AuditLog.timestamp >= ensure_utc(start_time))
    if end_time is not None:
        conditions.append(AuditLog.timestamp <= ensure_utc(end_time))
    return conditions


async def query_audit_logs(
    session: AsyncSession,
    *,
    page: int = 1,
    page_size: int = 20,
    **filters: Any,
) -> tuple[list[AuditLog], int]:
    """Query audit logs with optional filters, newest first.

    Args:
        session: The database session.
        page: Page number (1-based).
        page_size: Items per page.
        **filters: Keyword filters accepted by ``audit_log_conditions``.

    Returns:
        Tuple of (audit log records, total count).
    """
    conditions = audit_log_conditions(**filters)
    total = (await session.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar_one()

    offset = (page - 1) * page_size
    query = select(AuditLog).where(*conditions).order_by(AuditLog.timestamp.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    logs = list(result.scalars().all())

    return logs, total


def build_pipeline(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: BackgroundTaskRunner,
    *,
    geo_cache: GeoCache | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> AuditPipeline:
    """Wire a pipeline from settings.

    Args:
        settings: Application settings.
        session_factory: Session factory shared by the store and identity lookups.
        dispatcher: Runner for analysis and notification tasks.
        geo_cache: Process-wide geolocation cache; created when omitted.
        clock: Current-time source.

    Returns:
        A ready AuditPipeline.
    """
    store = AuditStore(session_factory)
    identity = IdentityService(session_factory)
    aggregator = AlertAggregator(
        store,
        LogNotifier(identity),
        dispatcher,
        dedup_window_minutes=settings.alert_dedup_window_minutes,
        max_log_ids=settings.alert_max_log_ids,
        clock=clock,
    )
    return AuditPipeline(
        store=store,
        identity=identity,
        detector=AnomalyDetector(store, DetectorThresholds.from_settings(settings)),
        aggregator=aggregator,
        dispatcher=dispatcher,
        resolver=build_resolver(settings, geo_cache) if settings.geo_enabled else None,
        clock=clock,
    )
