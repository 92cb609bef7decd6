"""Administrator notification for high-severity security alerts."""

from typing import Protocol

from loguru import logger

from audit_trail.models.security_alert import SecurityAlert
from audit_trail.services.identity_service import IdentityService


class AdminNotifier(Protocol):
    """Delivers a newly created alert to administrators."""

    async def notify_admins(self, alert: SecurityAlert) -> None:
        """Notify administrators about ``alert``.

        Args:
            alert: The alert that was just created.
        """
        ...


class LogNotifier:
    """Emits alerts as structured log records for the log shipper to route.

    The record is bound with ``json_output=True`` so it also reaches the
    JSON sink configured by ``setup_logging``.
    """

    def __init__(self, identity: IdentityService) -> None:
        self.identity = identity

    async def notify_admins(self, alert: SecurityAlert) -> None:
        admins = await self.identity.list_admins()
        logger.bind(
            json_output=True,
            alert_id=str(alert.id),
            alert_type=alert.alert_type,
            severity=alert.severity,
            user_email=alert.user_email,
            recipients=[a.email for a in admins],
        ).warning(
            f"[{alert.severity}] {alert.title} for {alert.user_email or 'system'}: "
            f"{alert.description} ({len(admins)} administrators notified)"
        )
