"""AuditLog model — the append-only, sanitized audit ledger."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.models.base import Base, JSONType, UUIDMixin


class AuditLog(Base, UUIDMixin):
    """Immutable record of one observable application event. Write-only (no updates)."""

    __tablename__ = "audit_logs"

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Actor snapshot taken at write time
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    user_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Sanitized payload copies
    details: Mapped[dict | list | None] = mapped_column(JSONType, nullable=True)
    details_before: Mapped[dict | list | None] = mapped_column(JSONType, nullable=True)
    details_after: Mapped[dict | list | None] = mapped_column(JSONType, nullable=True)

    # Request context
    ip: Mapped[str] = mapped_column(String(45), nullable=False, default="unknown")
    ip_geo: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    device: Mapped[str | None] = mapped_column(String(20), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(50), nullable=True)
    os: Mapped[str | None] = mapped_column(String(50), nullable=True)
    http_method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    tags: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_email_action_ts", "user_email", "action", "timestamp"),
        Index("ix_audit_logs_user_action_ts", "user_id", "action", "timestamp"),
    )


@event.listens_for(AuditLog, "before_update")
def _reject_audit_log_update(mapper: object, connection: object, target: AuditLog) -> None:
    msg = f"Audit log {target.id} is immutable and cannot be updated"
    raise ValueError(msg)
