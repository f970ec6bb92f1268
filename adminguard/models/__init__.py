"""SQLAlchemy ORM models for adminguard.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from adminguard.models.admin import AdminPrincipal
from adminguard.models.base import Base
from adminguard.models.enums import (
    ActorKind,
    AdminRole,
    AdminStatus,
    SecurityEventType,
    Severity,
)
from adminguard.models.security_event import SecurityEvent

__all__ = [
    # Base
    "Base",
    # Models
    "AdminPrincipal",
    "SecurityEvent",
    # Enums
    "ActorKind",
    "AdminRole",
    "AdminStatus",
    "SecurityEventType",
    "Severity",
]
