"""Security event schemas — the record handed to the store and the API views of it.

A SecurityEventRecord is built by the event logger or the abuse detector,
frozen, and persisted by the event store. The store adds the write-time
timestamp and the risk assessment.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from adminguard.models.enums import Severity


class SecurityEventRecord(BaseModel):
    """One security event, ready to persist. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    severity: Severity = Severity.MEDIUM

    # Caller network identity (best effort)
    ip_address: str | None = None
    user_agent: str | None = Field(default=None, max_length=1000)

    # At most one identity per event
    actor_id: str | None = None
    actor_kind: str | None = None

    resource: str | None = Field(default=None, max_length=500)
    action: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    metadata: dict[str, Any] | None = None

    request_data: dict[str, Any] | None = None
    response_status: int | None = Field(default=None, ge=100, le=599)
    processing_time_ms: int | None = None


class EventFilter(BaseModel):
    """Equality filter for sliding-window count queries."""

    model_config = ConfigDict(frozen=True)

    ip_address: str | None = None
    event_type: str | None = None
    actor_id: str | None = None


class SecurityEventOut(BaseModel):
    """Operator view of a stored event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_type: str
    severity: str
    timestamp: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    actor_id: str | None = None
    actor_kind: str | None = None
    resource: str | None = None
    action: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="event_metadata")
    request_data: dict[str, Any] | None = None
    response_status: int | None = None
    processing_time_ms: int | None = None
    risk_score: int = 0
    risk_factors: list[dict[str, Any]] | None = None


class SecurityEventPage(BaseModel):
    """Paginated slice of the event store."""

    items: list[SecurityEventOut]
    total: int
    page: int
    limit: int
    pages: int


class SecurityMetrics(BaseModel):
    """Aggregate counts over a trailing window of days."""

    timeframe_days: int
    total_events: int = 0
    high_risk_events: int = 0
    login_failures: int = 0
    data_accesses: int = 0
    breach_attempts: int = 0
    avg_risk_score: float = 0.0


class PurgeRequest(BaseModel):
    """Retention purge — ``older_than`` days, or everything when omitted."""

    older_than: int | None = Field(default=None, ge=0, alias="olderThan")

    model_config = ConfigDict(populate_by_name=True)


class PurgeResult(BaseModel):
    deleted_count: int
