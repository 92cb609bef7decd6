"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from audit_trail.models.audit_log import AuditLog
from audit_trail.models.security_alert import SecurityAlert
from audit_trail.models.user import User

__all__ = [
    "AuditLog",
    "SecurityAlert",
    "User",
]
