"""Security layer — role gate, event logging, abuse detection, bulk limits, retention."""

from adminguard.security.abuse import AbuseDetector, detect_abuse
from adminguard.security.bulk_limiter import BulkOperationLimiter, limit_bulk_operations
from adminguard.security.dispatch import EventDispatcher
from adminguard.security.event_logger import SecurityEventMiddleware, SecurityLogger
from adminguard.security.roles import RoleGate, require_admin, require_superadmin
from adminguard.security.store import SecurityEventStore

__all__ = [
    "AbuseDetector",
    "BulkOperationLimiter",
    "EventDispatcher",
    "RoleGate",
    "SecurityEventMiddleware",
    "SecurityEventStore",
    "SecurityLogger",
    "detect_abuse",
    "limit_bulk_operations",
    "require_admin",
    "require_superadmin",
]
