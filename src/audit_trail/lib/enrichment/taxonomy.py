"""Audit action taxonomy with static category and risk tables.

Every ``AuditAction`` must have an entry in ``ACTION_CATEGORIES``;
``validate_taxonomy()`` runs at import time so a new action added without a
mapping fails on startup rather than silently landing in GENERAL.
"""

from enum import StrEnum


class AuditAction(StrEnum):
    """Observable application events that are recorded in the audit trail."""

    # Authentication
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    REGISTERED = "REGISTERED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_COMPLETED = "PASSWORD_RESET_COMPLETED"
    TWO_FACTOR_ENABLED = "TWO_FACTOR_ENABLED"
    TWO_FACTOR_DISABLED = "TWO_FACTOR_DISABLED"
    SESSION_REVOKED = "SESSION_REVOKED"

    # Authorization
    UNAUTHORIZED_ACCESS_ATTEMPT = "UNAUTHORIZED_ACCESS_ATTEMPT"
    ACCESS_DENIED = "ACCESS_DENIED"

    # Social security contributions
    CONTRIBUTION_SETTLED = "CONTRIBUTION_SETTLED"
    CONTRIBUTION_PAID = "CONTRIBUTION_PAID"
    RECEIPT_DOWNLOADED = "RECEIPT_DOWNLOADED"
    CONTRIBUTION_SETTINGS_UPDATED = "CONTRIBUTION_SETTINGS_UPDATED"

    # Invoicing
    DOCUMENT_CREATED = "DOCUMENT_CREATED"
    DOCUMENT_EMITTED = "DOCUMENT_EMITTED"
    DOCUMENT_VOIDED = "DOCUMENT_VOIDED"
    DOCUMENT_DOWNLOADED = "DOCUMENT_DOWNLOADED"
    DOCUMENT_EMAILED = "DOCUMENT_EMAILED"
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"
    CLIENT_DELETED = "CLIENT_DELETED"

    # Assistant
    AI_QUERY = "AI_QUERY"
    CONVERSATION_CREATED = "CONVERSATION_CREATED"
    CONVERSATION_DELETED = "CONVERSATION_DELETED"

    # Personal data
    DATA_EXPORTED = "DATA_EXPORTED"
    DELETION_REQUESTED = "DELETION_REQUESTED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    CONSENT_GRANTED = "CONSENT_GRANTED"
    CONSENT_REVOKED = "CONSENT_REVOKED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    EMAIL_CHANGED = "EMAIL_CHANGED"
    PHONE_CHANGED = "PHONE_CHANGED"
    ID_DOCUMENT_CHANGED = "ID_DOCUMENT_CHANGED"

    # Files
    FILE_UPLOADED = "FILE_UPLOADED"
    FILE_DOWNLOADED = "FILE_DOWNLOADED"
    FILE_DELETED = "FILE_DELETED"

    # Administration
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    ROLE_ASSIGNED = "ROLE_ASSIGNED"
    SYSTEM_SETTINGS_CHANGED = "SYSTEM_SETTINGS_CHANGED"
    LOG_REVIEWED = "LOG_REVIEWED"
    ALERT_HANDLED = "ALERT_HANDLED"

    # Security
    SUSPICIOUS_ACTIVITY_DETECTED = "SUSPICIOUS_ACTIVITY_DETECTED"
    IP_BLOCKED = "IP_BLOCKED"

    # System
    SYSTEM_ERROR = "SYSTEM_ERROR"
    BACKUP_COMPLETED = "BACKUP_COMPLETED"
    MIGRATION_EXECUTED = "MIGRATION_EXECUTED"

    GENERIC_EVENT = "GENERIC_EVENT"


class AuditCategory(StrEnum):
    """Functional area an audit record belongs to."""

    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    FINANCIAL_DOCUMENTS = "FINANCIAL_DOCUMENTS"
    PERSONAL_DATA = "PERSONAL_DATA"
    FILES = "FILES"
    ADMINISTRATION = "ADMINISTRATION"
    SECURITY = "SECURITY"
    SYSTEM = "SYSTEM"
    GENERAL = "GENERAL"


class RiskLevel(StrEnum):
    """Risk level of an audit record, from least to most severe."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TaxonomyError(Exception):
    """Raised when the action tables do not cover every AuditAction."""


_A = AuditAction
_C = AuditCategory

ACTION_CATEGORIES: dict[AuditAction, AuditCategory] = {
    _A.LOGIN: _C.AUTHENTICATION,
    _A.LOGOUT: _C.AUTHENTICATION,
    _A.LOGIN_FAILED: _C.AUTHENTICATION,
    _A.REGISTERED: _C.AUTHENTICATION,
    _A.PASSWORD_CHANGED: _C.AUTHENTICATION,
    _A.PASSWORD_RESET_REQUESTED: _C.AUTHENTICATION,
    _A.PASSWORD_RESET_COMPLETED: _C.AUTHENTICATION,
    _A.TWO_FACTOR_ENABLED: _C.AUTHENTICATION,
    _A.TWO_FACTOR_DISABLED: _C.AUTHENTICATION,
    _A.SESSION_REVOKED: _C.AUTHENTICATION,
    _A.UNAUTHORIZED_ACCESS_ATTEMPT: _C.AUTHORIZATION,
    _A.ACCESS_DENIED: _C.AUTHORIZATION,
    _A.CONTRIBUTION_SETTLED: _C.FINANCIAL_DOCUMENTS,
    _A.CONTRIBUTION_PAID: _C.FINANCIAL_DOCUMENTS,
    _A.RECEIPT_DOWNLOADED: _C.FINANCIAL_DOCUMENTS,
    _A.CONTRIBUTION_SETTINGS_UPDATED: _C.FINANCIAL_DOCUMENTS,
    _A.DOCUMENT_CREATED: _C.FINANCIAL_DOCUMENTS,
    _A.DOCUMENT_EMITTED: _C.FINANCIAL_DOCUMENTS,
    _A.DOCUMENT_VOIDED: _C.FINANCIAL_DOCUMENTS,
    _A.DOCUMENT_DOWNLOADED: _C.FINANCIAL_DOCUMENTS,
    _A.DOCUMENT_EMAILED: _C.FINANCIAL_DOCUMENTS,
    _A.CLIENT_CREATED: _C.FINANCIAL_DOCUMENTS,
    _A.CLIENT_UPDATED: _C.FINANCIAL_DOCUMENTS,
    _A.CLIENT_DELETED: _C.FINANCIAL_DOCUMENTS,
    _A.AI_QUERY: _C.GENERAL,
    _A.CONVERSATION_CREATED: _C.GENERAL,
    _A.CONVERSATION_DELETED: _C.GENERAL,
    _A.DATA_EXPORTED: _C.PERSONAL_DATA,
    _A.DELETION_REQUESTED: _C.PERSONAL_DATA,
    _A.ACCOUNT_DELETED: _C.PERSONAL_DATA,
    _A.CONSENT_GRANTED: _C.PERSONAL_DATA,
    _A.CONSENT_REVOKED: _C.PERSONAL_DATA,
    _A.PROFILE_UPDATED: _C.PERSONAL_DATA,
    _A.EMAIL_CHANGED: _C.PERSONAL_DATA,
    _A.PHONE_CHANGED: _C.PERSONAL_DATA,
    _A.ID_DOCUMENT_CHANGED: _C.PERSONAL_DATA,
    _A.FILE_UPLOADED: _C.FILES,
    _A.FILE_DOWNLOADED: _C.FILES,
    _A.FILE_DELETED: _C.FILES,
    _A.USER_BLOCKED: _C.ADMINISTRATION,
    _A.USER_UNBLOCKED: _C.ADMINISTRATION,
    _A.ROLE_ASSIGNED: _C.ADMINISTRATION,
    _A.SYSTEM_SETTINGS_CHANGED: _C.ADMINISTRATION,
    _A.LOG_REVIEWED: _C.ADMINISTRATION,
    _A.ALERT_HANDLED: _C.ADMINISTRATION,
    _A.SUSPICIOUS_ACTIVITY_DETECTED: _C.SECURITY,
    _A.IP_BLOCKED: _C.SECURITY,
    _A.SYSTEM_ERROR: _C.SYSTEM,
    _A.BACKUP_COMPLETED: _C.SYSTEM,
    _A.MIGRATION_EXECUTED: _C.SYSTEM,
    _A.GENERIC_EVENT: _C.GENERAL,
}

CRITICAL_ACTIONS: frozenset[AuditAction] = frozenset(
    {
        _A.ACCOUNT_DELETED,
        _A.SUSPICIOUS_ACTIVITY_DETECTED,
        _A.IP_BLOCKED,
    }
)

HIGH_RISK_ACTIONS: frozenset[AuditAction] = frozenset(
    {
        _A.PASSWORD_CHANGED,
        _A.EMAIL_CHANGED,
        _A.DATA_EXPORTED,
        _A.DELETION_REQUESTED,
        _A.USER_BLOCKED,
        _A.ROLE_ASSIGNED,
        _A.UNAUTHORIZED_ACCESS_ATTEMPT,
        _A.SYSTEM_SETTINGS_CHANGED,
    }
)

MEDIUM_RISK_ACTIONS: frozenset[AuditAction] = frozenset(
    {
        _A.LOGIN_FAILED,
        _A.SESSION_REVOKED,
        _A.ID_DOCUMENT_CHANGED,
        _A.DOCUMENT_VOIDED,
        _A.CLIENT_DELETED,
        _A.ACCESS_DENIED,
        _A.TWO_FACTOR_DISABLED,
    }
)


def validate_taxonomy() -> None:
    """Check that every action has a category and sits in at most one risk set.

    Raises:
        TaxonomyError: If the tables are incomplete or inconsistent.
    """
    missing = [action.value for action in AuditAction if action not in ACTION_CATEGORIES]
    if missing:
        msg = f"Actions without a category mapping: {', '.join(missing)}"
        raise TaxonomyError(msg)

    overlap = (
        (CRITICAL_ACTIONS & HIGH_RISK_ACTIONS)
        | (CRITICAL_ACTIONS & MEDIUM_RISK_ACTIONS)
        | (HIGH_RISK_ACTIONS & MEDIUM_RISK_ACTIONS)
    )
    if overlap:
        msg = f"Actions listed in more than one risk set: {', '.join(sorted(a.value for a in overlap))}"
        raise TaxonomyError(msg)


def categorize(action: AuditAction) -> AuditCategory:
    """Return the category an action belongs to."""
    return ACTION_CATEGORIES[action]


def assess_risk(action: AuditAction, success: bool | None = True) -> RiskLevel:
    """Derive the risk level of an action.

    Failed operations that are otherwise low risk are escalated to MEDIUM.

    Args:
        action: The audited action.
        success: Whether the operation succeeded.

    Returns:
        The derived risk level.
    """
    if action in CRITICAL_ACTIONS:
        return RiskLevel.CRITICAL
    if action in HIGH_RISK_ACTIONS:
        return RiskLevel.HIGH
    if action in MEDIUM_RISK_ACTIONS:
        return RiskLevel.MEDIUM
    if success is False:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


validate_taxonomy()
