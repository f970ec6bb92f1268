"""Pre-configured security loggers for common admin operations.

Each is a SecurityLogger bound to fixed parameters; attach with
``dependencies=[Depends(data_access_logger)]`` or call ``attach(request)``
from inside a handler.
"""

from __future__ import annotations

from typing import Any

from adminguard.models.enums import SecurityEventType
from adminguard.security.event_logger import LogContext, SecurityLogger


def _entity_resource(ctx: LogContext) -> str:
    """``user_<id>`` / ``resource_<id>`` from path params, else the request URL."""
    params = ctx.path_params
    for key in ("user_id", "userId", "admin_id", "adminId"):
        if params.get(key):
            return f"user_{params[key]}"
    if params.get("id"):
        return f"resource_{params['id']}"
    return ctx.request.url


def _method_action(ctx: LogContext) -> str:
    return f"{ctx.request.method.lower()}_data"


def _url(ctx: LogContext) -> str:
    return ctx.request.url


def _login_email(ctx: LogContext) -> str:
    return str(ctx.body.get("email", ""))


login_logger = SecurityLogger(
    SecurityEventType.LOGIN_SUCCESS.value,
    resource=lambda ctx: f"user_{_login_email(ctx)}",
    action="login",
    description=lambda ctx: f"User login: {_login_email(ctx)}",
)

login_failure_logger = SecurityLogger(
    SecurityEventType.LOGIN_FAILURE.value,
    resource=lambda ctx: f"user_{_login_email(ctx)}",
    action="login_attempt",
    description=lambda ctx: f"Failed login attempt: {_login_email(ctx)}",
    log_all_responses=True,
)

data_access_logger = SecurityLogger(
    SecurityEventType.DATA_ACCESS.value,
    resource=_entity_resource,
    action=_method_action,
)

data_modification_logger = SecurityLogger(
    SecurityEventType.DATA_MODIFICATION.value,
    resource=_entity_resource,
    action=_method_action,
    log_body=False,
)


def _export_resource(ctx: LogContext) -> str:
    for key in ("user_id", "userId"):
        if ctx.path_params.get(key):
            return f"user_data_{ctx.path_params[key]}"
    return "system_data"


def _export_metadata(ctx: LogContext) -> dict[str, Any]:
    return {
        "format": ctx.query.get("format") or "json",
        "exportType": "user_data" if "user" in ctx.request.url else "system_data",
    }


data_export_logger = SecurityLogger(
    SecurityEventType.EXPORT_DATA.value,
    resource=_export_resource,
    action="export",
    description="Data export requested by admin",
    metadata=_export_metadata,
)


def _bulk_item_count(ctx: LogContext) -> dict[str, Any]:
    body = ctx.body
    for key in ("ids", "userIds"):
        if isinstance(body.get(key), list):
            return {"itemCount": len(body[key])}
    return {"itemCount": "unknown"}


bulk_operation_logger = SecurityLogger(
    SecurityEventType.BULK_OPERATION.value,
    resource=_url,
    action=lambda ctx: f"bulk_{ctx.request.method.lower()}",
    description="Bulk operation performed",
    metadata=_bulk_item_count,
)

admin_escalation_logger = SecurityLogger(
    SecurityEventType.ADMIN_ESCALATION.value,
    resource=_url,
    action="escalate",
    description="Admin escalation performed",
)

permission_denied_logger = SecurityLogger(
    SecurityEventType.PERMISSION_DENIED.value,
    resource=_url,
    action="access_denied",
    description="Access denied to protected resource",
    log_all_responses=True,
)

suspicious_activity_logger = SecurityLogger(
    SecurityEventType.SUSPICIOUS_ACTIVITY.value,
    resource=_url,
    action="suspicious_request",
    description="Suspicious activity detected",
    log_all_responses=True,
)

configuration_change_logger = SecurityLogger(
    SecurityEventType.SYSTEM_CONFIGURATION_CHANGE.value,
    resource=_url,
    action="configure",
    description="System configuration changed",
    log_body=False,
)


def gdpr_compliance_logger(data_type: str = "personal_data") -> SecurityLogger:
    """Data access logger tagged with the GDPR legal basis from ``X-Legal-Basis``."""

    def resource(ctx: LogContext) -> str:
        for key in ("user_id", "userId"):
            if ctx.path_params.get(key):
                return f"user_{ctx.path_params[key]}"
        return f"{data_type}_access"

    return SecurityLogger(
        SecurityEventType.DATA_ACCESS.value,
        resource=resource,
        action="gdpr_data_access",
        description=f"GDPR data access: {data_type}",
        metadata=lambda ctx: {
            "dataType": data_type,
            "gdprCompliance": True,
            "legalBasis": ctx.headers.get("x-legal-basis") or "legitimate_interest",
        },
    )


def audit_trail(audit_type: str = "general") -> SecurityLogger:
    """Audit-log access logger carrying a fixed retention requirement."""
    return SecurityLogger(
        SecurityEventType.AUDIT_LOG_ACCESS.value,
        resource=_url,
        action="audit_access",
        description=f"Audit trail: {audit_type}",
        metadata={
            "auditType": audit_type,
            "complianceRequired": True,
            "retentionPeriod": "7_years",
        },
    )
