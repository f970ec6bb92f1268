"""Heuristic risk scoring for security events.

Scores are computed once, when an event is written, from the event type,
the actor kind, the caller IP, and the hour of day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from adminguard.models.enums import ActorKind, SecurityEventType

# Base score per event type; anything unlisted scores DEFAULT_RISK.
RISK_BY_EVENT_TYPE: dict[str, int] = {
    SecurityEventType.LOGIN_FAILURE.value: 10,
    SecurityEventType.PERMISSION_DENIED.value: 20,
    SecurityEventType.SUSPICIOUS_ACTIVITY.value: 60,
    SecurityEventType.SECURITY_BREACH_ATTEMPT.value: 90,
    SecurityEventType.DATA_DELETION.value: 40,
    SecurityEventType.BULK_OPERATION.value: 30,
    SecurityEventType.EXPORT_DATA.value: 35,
}
DEFAULT_RISK = 5

HIGH_RISK_THRESHOLD = 70

_PRIVILEGED_KINDS = {ActorKind.ADMIN.value, ActorKind.SUPERADMIN.value}
_INTERNAL_PREFIX = "10."


@dataclass
class RiskAssessment:
    score: int
    factors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_high_risk(self) -> bool:
        return self.score > HIGH_RISK_THRESHOLD


def assess_risk(
    event_type: str,
    actor_kind: str | None,
    ip_address: str | None,
    at: datetime | None = None,
) -> RiskAssessment:
    """Score an event between 0 and 100 and list the factors that raised it."""
    at = at or datetime.now(UTC)
    score = RISK_BY_EVENT_TYPE.get(event_type, DEFAULT_RISK)
    factors: list[dict[str, Any]] = []

    if actor_kind in _PRIVILEGED_KINDS:
        score += 10
        factors.append({
            "factor": "privileged_user",
            "score": 10,
            "description": "Event involves privileged user account",
        })

    # Missing IPs count as external.
    if ip_address and ip_address.startswith(_INTERNAL_PREFIX):
        score -= 5
    else:
        score += 5
        factors.append({
            "factor": "external_ip",
            "score": 5,
            "description": "Event from external IP address",
        })

    if at.hour < 6 or at.hour > 22:
        score += 15
        factors.append({
            "factor": "off_hours",
            "score": 15,
            "description": "Event outside business hours",
        })

    return RiskAssessment(score=max(0, min(score, 100)), factors=factors)
