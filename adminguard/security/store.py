"""Security event store — append-only persistence with count and purge queries.

Each operation opens its own session from the factory, so writes made on
the dispatcher's background task never share a transaction with the
request that triggered them.

Usage:
    store = SecurityEventStore(session_factory)

    await store.insert(SecurityEventRecord(event_type="login_success", ip_address=ip))
    recent = await store.count_where(EventFilter(ip_address=ip), since=one_minute_ago)
    deleted = await store.delete_where(older_than_days=30)
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, timedelta

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adminguard.models.enums import SecurityEventType, Severity
from adminguard.models.security_event import SecurityEvent
from adminguard.schemas.events import (
    EventFilter,
    SecurityEventOut,
    SecurityEventPage,
    SecurityEventRecord,
    SecurityMetrics,
)
from adminguard.security.risk import HIGH_RISK_THRESHOLD, assess_risk

logger = logging.getLogger(__name__)


class SecurityEventStore:
    """SQLAlchemy-backed event store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, record: SecurityEventRecord) -> SecurityEvent:
        """Persist one event, stamping the write time and risk assessment."""
        now = datetime.now(UTC)
        risk = assess_risk(record.event_type, record.actor_kind, record.ip_address, at=now)

        event = SecurityEvent(
            event_type=record.event_type,
            severity=record.severity.value,
            timestamp=now,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            actor_id=record.actor_id,
            actor_kind=record.actor_kind,
            resource=record.resource,
            action=record.action,
            description=record.description,
            event_metadata=record.metadata,
            request_data=record.request_data,
            response_status=record.response_status,
            processing_time_ms=record.processing_time_ms,
            risk_score=risk.score,
            risk_factors=risk.factors,
        )
        async with self._session_factory() as db:
            db.add(event)
            await db.commit()

        if event.is_high_risk:
            logger.warning(
                "High risk security event: %s (risk=%d ip=%s actor=%s)",
                event.event_type,
                event.risk_score,
                event.ip_address,
                event.actor_id,
            )
        return event

    async def count_where(self, event_filter: EventFilter, since: datetime) -> int:
        """Count events matching the filter with timestamp >= since."""
        query = select(func.count(SecurityEvent.id)).where(SecurityEvent.timestamp >= since)
        if event_filter.ip_address is not None:
            query = query.where(SecurityEvent.ip_address == event_filter.ip_address)
        if event_filter.event_type is not None:
            query = query.where(SecurityEvent.event_type == event_filter.event_type)
        if event_filter.actor_id is not None:
            query = query.where(SecurityEvent.actor_id == event_filter.actor_id)

        async with self._session_factory() as db:
            result = await db.execute(query)
            return result.scalar() or 0

    async def delete_where(self, older_than_days: int | None = None) -> int:
        """Retention purge.

        ``None`` deletes every event. ``N`` deletes events stamped at or
        before now minus N days, so ``0`` also clears the store.
        """
        query = delete(SecurityEvent)
        cutoff: datetime | None = None
        if older_than_days is not None:
            cutoff = datetime.now(UTC) - timedelta(days=older_than_days)
            query = query.where(SecurityEvent.timestamp <= cutoff)

        async with self._session_factory() as db:
            result = await db.execute(query)
            await db.commit()
        count = result.rowcount or 0  # type: ignore[attr-defined]

        logger.info(
            "Purged %d security events (cutoff=%s)",
            count,
            cutoff.isoformat() if cutoff else "all",
        )
        return count

    async def paginate(
        self,
        page: int = 1,
        limit: int = 20,
        event_type: str | None = None,
        actor_kind: str | None = None,
        severity: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> SecurityEventPage:
        """Newest-first page of events.

        Equality filters on type, actor kind and severity; ``start_date`` and
        ``end_date`` bound the timestamp inclusively.
        """
        conditions = []
        if event_type:
            conditions.append(SecurityEvent.event_type == event_type)
        if actor_kind:
            conditions.append(SecurityEvent.actor_kind == actor_kind)
        if severity:
            conditions.append(SecurityEvent.severity == severity)
        if start_date is not None:
            conditions.append(SecurityEvent.timestamp >= start_date)
        if end_date is not None:
            conditions.append(SecurityEvent.timestamp <= end_date)

        query = select(SecurityEvent).where(*conditions)
        count_query = select(func.count(SecurityEvent.id)).where(*conditions)

        offset = (page - 1) * limit
        async with self._session_factory() as db:
            total = (await db.execute(count_query)).scalar() or 0
            result = await db.execute(
                query.order_by(SecurityEvent.timestamp.desc()).offset(offset).limit(limit)
            )
            events = list(result.scalars().all())

        return SecurityEventPage(
            items=[SecurityEventOut.model_validate(e) for e in events],
            total=total,
            page=page,
            limit=limit,
            pages=max(1, math.ceil(total / limit)),
        )

    async def metrics(self, timeframe_days: int = 30) -> SecurityMetrics:
        """Aggregate counters over the trailing ``timeframe_days``."""
        since = datetime.now(UTC) - timedelta(days=timeframe_days)

        def _count_type(event_type: SecurityEventType):  # noqa: ANN202
            return func.sum(case((SecurityEvent.event_type == event_type.value, 1), else_=0))

        high_risk = (
            SecurityEvent.severity.in_([Severity.HIGH.value, Severity.CRITICAL.value])
            | (SecurityEvent.risk_score > HIGH_RISK_THRESHOLD)
        )
        query = select(
            func.count(SecurityEvent.id),
            func.sum(case((high_risk, 1), else_=0)),
            _count_type(SecurityEventType.LOGIN_FAILURE),
            _count_type(SecurityEventType.DATA_ACCESS),
            _count_type(SecurityEventType.SECURITY_BREACH_ATTEMPT),
            func.avg(SecurityEvent.risk_score),
        ).where(SecurityEvent.timestamp >= since)

        async with self._session_factory() as db:
            row = (await db.execute(query)).one()

        total, high, failures, accesses, breaches, avg_risk = row
        return SecurityMetrics(
            timeframe_days=timeframe_days,
            total_events=total or 0,
            high_risk_events=high or 0,
            login_failures=failures or 0,
            data_accesses=accesses or 0,
            breach_attempts=breaches or 0,
            avg_risk_score=round(float(avg_risk or 0), 2),
        )
