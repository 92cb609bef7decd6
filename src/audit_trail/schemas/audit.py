"""Audit event and alert Pydantic v2 schemas.

Defines the immutable input accepted by the audit pipeline and the read
models used when listing audit logs and alerts.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from audit_trail.lib.enrichment.taxonomy import AuditAction, AuditCategory, RiskLevel


class AuditEventParams(BaseModel):
    """One observable application event to be recorded.

    ``details`` payloads are accepted as-is (including cyclic structures) and
    sanitized by the pipeline before anything is persisted.
    """

    model_config = ConfigDict(frozen=True)

    action: AuditAction
    user_id: UUID | None = None
    user_email: str | None = Field(
        default=None,
        description="Attempted email when the actor is not a known user (e.g. a failed login)",
    )
    resource: str | None = None
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None
    details: Any = None
    details_before: Any = None
    details_after: Any = None
    ip: str | None = None
    user_agent: str | None = None
    http_method: str | None = None
    path: str | None = None
    duration_ms: int | None = Field(default=None, ge=0)
    session_id: str | None = None
    request_id: str | None = None
    category: AuditCategory | None = Field(default=None, description="Overrides the derived category")
    risk_level: RiskLevel | None = Field(default=None, description="Overrides the derived risk level")
    tags: list[str] | None = None


class AuditLogResponse(BaseModel):
    """Audit log summary as shown to administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    timestamp: datetime
    user_id: UUID | None = None
    user_email: str | None = None
    action: str
    resource: str | None = None
    category: str
    risk_level: str
    success: bool
    ip: str
    ip_geo: dict | None = None
    device: str | None = None
    browser: str | None = None
    os: str | None = None


class SecurityAlertResponse(BaseModel):
    """Security alert as shown to administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    alert_type: str
    severity: str
    title: str
    description: str
    user_email: str | None = None
    ip: str | None = None
    location: str | None = None
    log_ids: list[str] = Field(default_factory=list)
    status: str
    notified: bool
    created_at: datetime
    updated_at: datetime


class AlertDetailResponse(BaseModel):
    """A security alert together with the audit logs that produced it."""

    alert: SecurityAlertResponse
    logs: list[AuditLogResponse] = Field(default_factory=list)
    missing_log_ids: list[str] = Field(
        default_factory=list,
        description="Contributing log ids no longer present (e.g. purged by retention)",
    )


class CountBucket(BaseModel):
    """Number of audit logs sharing one value of a grouped column."""

    key: str | None
    count: int


class DailyActivity(BaseModel):
    """Number of audit logs recorded on one UTC day."""

    day: str
    count: int


class ActorActivity(BaseModel):
    """Number of audit logs attributed to one known actor."""

    user_id: UUID
    user_email: str | None = None
    user_name: str | None = None
    count: int


class AuditStatsResponse(BaseModel):
    """Aggregate audit activity over a time window."""

    start_time: datetime
    end_time: datetime
    total: int
    failed: int
    success_rate: float = Field(description="Percentage of successful events, 0 when there are none")
    by_risk_level: list[CountBucket] = Field(default_factory=list)
    by_category: list[CountBucket] = Field(default_factory=list)
    top_actions: list[CountBucket] = Field(default_factory=list)
    top_ips: list[CountBucket] = Field(default_factory=list)
    top_users: list[ActorActivity] = Field(default_factory=list)
    daily_activity: list[DailyActivity] = Field(default_factory=list)
