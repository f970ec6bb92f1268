"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization. Event types are stored as
plain strings: the enum lists the tags the application emits, but the
column accepts any value.
"""

from __future__ import annotations

from enum import Enum


class SecurityEventType(str, Enum):
    """Security-relevant actions recorded in the event store."""

    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    LOGOUT = "logout"
    PASSWORD_CHANGE = "password_change"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_UNLOCKED = "account_unlocked"
    PERMISSION_DENIED = "permission_denied"
    DATA_ACCESS = "data_access"
    DATA_MODIFICATION = "data_modification"
    DATA_DELETION = "data_deletion"
    BULK_OPERATION = "bulk_operation"
    EXPORT_DATA = "export_data"
    ADMIN_ESCALATION = "admin_escalation"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    SECURITY_BREACH_ATTEMPT = "security_breach_attempt"
    COMPLIANCE_VIOLATION = "compliance_violation"
    AUDIT_LOG_ACCESS = "audit_log_access"
    SYSTEM_CONFIGURATION_CHANGE = "system_configuration_change"


class Severity(str, Enum):
    """Operator-facing severity of a security event."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActorKind(str, Enum):
    """Who performed a logged action."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    SYSTEM = "system"


class AdminRole(str, Enum):
    """Administrative roles checked by the role gate."""

    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AdminStatus(str, Enum):
    """Administrator account lifecycle states."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
