"""SecurityEvent model — append-only record of security-relevant actions.

Rows are written once by the event dispatcher and the abuse detector.
The only supported mutation is bulk deletion by the retention purge.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from adminguard.models.base import Base, IdMixin, JSONPayload
from adminguard.models.enums import Severity


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SecurityEvent(IdMixin, Base):
    """Immutable security event."""

    __tablename__ = "security_events"
    __table_args__ = (
        Index("ix_security_events_type_ts", "event_type", "timestamp"),
        Index("ix_security_events_ip_ts", "ip_address", "timestamp"),
        Index("ix_security_events_actor_ts", "actor_id", "timestamp"),
    )

    # Classification
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=Severity.MEDIUM.value)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )

    # Caller network identity (best effort)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(1000))

    # Who acted — at most one identity per event
    actor_id: Mapped[str | None] = mapped_column(String(100))
    actor_kind: Mapped[str | None] = mapped_column(String(20), comment="user, admin, superadmin, system")

    # What happened
    resource: Mapped[str | None] = mapped_column(String(500))
    action: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(String(2000))
    event_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONPayload)

    # Request / response
    request_data: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload)
    response_status: Mapped[int | None] = mapped_column(Integer)
    processing_time_ms: Mapped[int | None] = mapped_column(Integer)

    # Risk assessment computed at write
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_factors: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONPayload)

    @property
    def is_high_risk(self) -> bool:
        return self.severity in (Severity.HIGH.value, Severity.CRITICAL.value) or self.risk_score > 70

    def __repr__(self) -> str:
        return f"<SecurityEvent type={self.event_type} ip={self.ip_address} status={self.response_status}>"
