"""Abuse detection from the security event store.

Thresholds are counts over sliding windows, queried from the same store
the event loggers write to. There is no separate counter, so two
concurrent requests can both pass a check at the edge of a window.

Usage:
    detector = AbuseDetector(store, max_requests_per_minute=100)

    @router.post("/auth/login", dependencies=[Depends(detect_abuse)])
    async def login(...): ...
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Union

from fastapi import Request

from adminguard.config import AbuseSettings
from adminguard.errors import LockedOut, RateLimited
from adminguard.models.enums import SecurityEventType, Severity
from adminguard.schemas.events import EventFilter, SecurityEventRecord
from adminguard.security.store import SecurityEventStore

logger = logging.getLogger(__name__)

UserAgentPattern = Union[str, re.Pattern[str]]

REQUEST_WINDOW = timedelta(minutes=1)
FAILED_LOGIN_WINDOW = timedelta(hours=1)


class AbuseDetector:
    """Blocks request floods and brute-force logins; flags suspicious user agents."""

    def __init__(
        self,
        store: SecurityEventStore,
        *,
        max_requests_per_minute: int = 100,
        max_failed_logins_per_hour: int = 10,
        suspicious_patterns: Iterable[UserAgentPattern] = (),
    ) -> None:
        self._store = store
        self.max_requests_per_minute = max_requests_per_minute
        self.max_failed_logins_per_hour = max_failed_logins_per_hour
        self.suspicious_patterns: list[UserAgentPattern] = list(suspicious_patterns)

    @classmethod
    def from_settings(cls, store: SecurityEventStore, abuse: AbuseSettings) -> AbuseDetector:
        patterns: list[UserAgentPattern] = list(abuse.suspicious_user_agents)
        patterns.extend(re.compile(expr) for expr in abuse.suspicious_user_agent_regexes)
        return cls(
            store,
            max_requests_per_minute=abuse.max_requests_per_minute,
            max_failed_logins_per_hour=abuse.max_failed_logins_per_hour,
            suspicious_patterns=patterns,
        )

    async def inspect(self, request: Request) -> None:
        """Raise RateLimited / LockedOut to block, return to let the request through.

        Store errors are logged and the request proceeds.
        """
        client_ip = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")
        resource = request.url.path

        try:
            if client_ip is not None:
                await self._check_request_rate(client_ip, user_agent, resource)
                if "login" in resource:
                    await self._check_failed_logins(client_ip, user_agent, resource)

            if self.is_suspicious_user_agent(user_agent):
                await self._store.insert(SecurityEventRecord(
                    event_type=SecurityEventType.SUSPICIOUS_ACTIVITY.value,
                    ip_address=client_ip,
                    user_agent=_clip_agent(user_agent),
                    resource=resource,
                    action="suspicious_user_agent",
                    description="Suspicious user agent detected",
                    metadata={"suspiciousUserAgent": _clip_agent(user_agent)},
                ))
        except (RateLimited, LockedOut):
            raise
        except Exception:
            logger.exception("Error in suspicious activity detection (ip=%s)", client_ip)

    def is_suspicious_user_agent(self, user_agent: str | None) -> bool:
        """Case-insensitive substring or regex match against the configured patterns."""
        for pattern in self.suspicious_patterns:
            if isinstance(pattern, str):
                if user_agent and pattern.lower() in user_agent.lower():
                    return True
            elif pattern.search(user_agent or ""):
                return True
        return False

    async def _check_request_rate(self, client_ip: str, user_agent: str | None, resource: str) -> None:
        since = datetime.now(UTC) - REQUEST_WINDOW
        recent = await self._store.count_where(EventFilter(ip_address=client_ip), since)
        if recent <= self.max_requests_per_minute:
            return

        await self._store.insert(SecurityEventRecord(
            event_type=SecurityEventType.SUSPICIOUS_ACTIVITY.value,
            severity=Severity.HIGH,
            ip_address=client_ip,
            user_agent=_clip_agent(user_agent),
            resource=resource,
            action="rate_limit_exceeded",
            description=f"Excessive requests from IP: {recent} requests in 1 minute",
            metadata={"requestCount": recent, "timeWindow": "1_minute"},
        ))
        logger.warning("Rate limit exceeded for %s (%d events in 1 minute)", client_ip, recent)
        raise RateLimited()

    async def _check_failed_logins(self, client_ip: str, user_agent: str | None, resource: str) -> None:
        since = datetime.now(UTC) - FAILED_LOGIN_WINDOW
        failures = await self._store.count_where(
            EventFilter(ip_address=client_ip, event_type=SecurityEventType.LOGIN_FAILURE.value),
            since,
        )
        if failures <= self.max_failed_logins_per_hour:
            return

        await self._store.insert(SecurityEventRecord(
            event_type=SecurityEventType.SECURITY_BREACH_ATTEMPT.value,
            severity=Severity.CRITICAL,
            ip_address=client_ip,
            user_agent=_clip_agent(user_agent),
            resource=resource,
            action="brute_force_attempt",
            description=f"Excessive failed login attempts: {failures} in 1 hour",
            metadata={"failedLoginCount": failures, "timeWindow": "1_hour"},
        ))
        logger.warning("Brute force lockout for %s (%d failed logins in 1 hour)", client_ip, failures)
        raise LockedOut()


def _clip_agent(user_agent: str | None) -> str | None:
    return user_agent[:1000] if user_agent else user_agent


async def detect_abuse(request: Request) -> None:
    """FastAPI dependency — run the application's AbuseDetector."""
    detector: AbuseDetector = request.app.state.abuse_detector
    await detector.inspect(request)
