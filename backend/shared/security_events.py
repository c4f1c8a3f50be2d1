"""
Security event logging.

Security-relevant outcomes (failed logins, hijack suspicions, privilege
escalation attempts, role changes) are written as structured records on the
``mindquest.security`` logger so they can be routed to alerting separately
from application logs. HIGH and CRITICAL events log at ERROR level.
"""

import logging
from enum import Enum
from typing import Any

from .models import format_timestamp, utcnow

security_logger = logging.getLogger("mindquest.security")


class SecurityEventType(str, Enum):
    FAILED_LOGIN = "failed_login"
    SUCCESSFUL_LOGIN = "successful_login"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    SESSION_HIJACKING_ATTEMPT = "session_hijacking_attempt"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    PRIVILEGE_ESCALATION_ATTEMPT = "privilege_escalation_attempt"
    ROLE_CHANGE = "role_change"
    ADMIN_ACTION = "admin_action"
    TOKEN_THEFT = "token_theft"
    MEMBERSHIP_ANOMALY = "membership_anomaly"
    ACCOUNT_DISABLED = "account_disabled"


class SecurityEventSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def log_security_event(
    event_type: SecurityEventType,
    severity: SecurityEventSeverity,
    **details: Any,
) -> dict[str, Any]:
    """
    Record a security event.

    Args:
        event_type: What happened
        severity: How urgent it is
        **details: Context such as user_id, actor_id, target_id, ip

    Returns:
        The event as logged
    """
    event = {
        "type": event_type.value,
        "severity": severity.value,
        "timestamp": format_timestamp(utcnow()),
        "user_id": details.get("user_id", "anonymous"),
        "ip": details.get("ip") or "unknown",
        "details": details,
    }

    if severity in (SecurityEventSeverity.HIGH, SecurityEventSeverity.CRITICAL):
        security_logger.error(
            "SECURITY ALERT: %s", event_type.value, extra={"security_event": event}
        )
    elif severity == SecurityEventSeverity.MEDIUM:
        security_logger.warning(
            "Security event: %s", event_type.value, extra={"security_event": event}
        )
    else:
        security_logger.info(
            "Security info: %s", event_type.value, extra={"security_event": event}
        )

    return event
