"""Typed shortcuts for recording domain events through the audit pipeline.

Each helper fixes the action, category/risk override and tags for one kind of
business event so call sites only pass what varies.
"""

import uuid
from typing import Any, Literal

from audit_trail.lib.enrichment.taxonomy import AuditAction, AuditCategory, RiskLevel
from audit_trail.models.audit_log import AuditLog
from audit_trail.schemas.audit import AuditEventParams
from audit_trail.services.audit_service import AuditPipeline

FileAction = Literal[AuditAction.FILE_UPLOADED, AuditAction.FILE_DOWNLOADED, AuditAction.FILE_DELETED]
AdminAction = Literal[AuditAction.USER_BLOCKED, AuditAction.USER_UNBLOCKED, AuditAction.ROLE_ASSIGNED]


async def audit_document_emitted(
    pipeline: AuditPipeline,
    user_id: uuid.UUID,
    document_id: str,
    details: dict[str, Any],
    ip: str | None = None,
) -> AuditLog | None:
    """Record emission of a financial document (invoice number, total, ...)."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=AuditAction.DOCUMENT_EMITTED,
            user_id=user_id,
            resource=f"document:{document_id}",
            details=details,
            ip=ip,
            category=AuditCategory.FINANCIAL_DOCUMENTS,
            risk_level=RiskLevel.MEDIUM,
        )
    )


async def audit_document_voided(
    pipeline: AuditPipeline,
    user_id: uuid.UUID,
    document_id: str,
    reason: str,
    ip: str | None = None,
) -> AuditLog | None:
    """Record voiding of a financial document."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=AuditAction.DOCUMENT_VOIDED,
            user_id=user_id,
            resource=f"document:{document_id}",
            details={"reason": reason},
            ip=ip,
            category=AuditCategory.FINANCIAL_DOCUMENTS,
            risk_level=RiskLevel.HIGH,
        )
    )


async def audit_data_export(
    pipeline: AuditPipeline,
    user_id: uuid.UUID,
    export_format: str,
    record_count: int | None = None,
    ip: str | None = None,
) -> AuditLog | None:
    """Record a personal data export requested by the data subject."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=AuditAction.DATA_EXPORTED,
            user_id=user_id,
            details={"format": export_format, "record_count": record_count},
            ip=ip,
            category=AuditCategory.PERSONAL_DATA,
            risk_level=RiskLevel.MEDIUM,
            tags=["data-subject-rights"],
        )
    )


async def audit_file_operation(
    pipeline: AuditPipeline,
    user_id: uuid.UUID,
    action: FileAction,
    file_name: str,
    size_bytes: int | None = None,
    ip: str | None = None,
) -> AuditLog | None:
    """Record an upload, download or deletion of a stored file."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=action,
            user_id=user_id,
            resource=f"file:{file_name}",
            details={"file_name": file_name, "size_bytes": size_bytes},
            ip=ip,
            category=AuditCategory.FILES,
            risk_level=RiskLevel.MEDIUM if action == AuditAction.FILE_DELETED else RiskLevel.LOW,
        )
    )


async def audit_admin_action(
    pipeline: AuditPipeline,
    admin_id: uuid.UUID,
    action: AdminAction,
    target_user_id: uuid.UUID,
    details: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditLog | None:
    """Record an administrator acting on another user's account."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=action,
            user_id=admin_id,
            resource=f"user:{target_user_id}",
            details=details,
            ip=ip,
            category=AuditCategory.ADMINISTRATION,
            risk_level=RiskLevel.HIGH,
            tags=["admin-action"],
        )
    )


async def audit_access_denied(
    pipeline: AuditPipeline,
    user_id: uuid.UUID | None,
    resource: str,
    reason: str,
    ip: str | None = None,
    user_agent: str | None = None,
) -> AuditLog | None:
    """Record a request refused by access control."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=AuditAction.ACCESS_DENIED,
            user_id=user_id,
            resource=resource,
            success=False,
            details={"reason": reason},
            ip=ip,
            user_agent=user_agent,
            category=AuditCategory.SECURITY,
            risk_level=RiskLevel.MEDIUM,
        )
    )


async def audit_system_error(
    pipeline: AuditPipeline,
    error: BaseException | str,
    context: dict[str, Any] | None = None,
) -> AuditLog | None:
    """Record an unexpected system error with optional context."""
    return await pipeline.record_audit_event(
        AuditEventParams(
            action=AuditAction.SYSTEM_ERROR,
            success=False,
            error_message=str(error),
            details={"error_type": type(error).__name__ if isinstance(error, BaseException) else None, "context": context},
            category=AuditCategory.SYSTEM,
            risk_level=RiskLevel.MEDIUM,
        )
    )
