"""Operator API — admin sign-in, account management and the security event console.

Every route below the login requires a bearer token resolving to an active
admin. The role gate runs first, then the abuse detector; security loggers
are attached as dependencies and write after the response is produced.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from adminguard.admin.auth import create_access_token, verify_password
from adminguard.admin.queries import get_admin, get_admin_by_email, list_admins, set_admin_status
from adminguard.db.engine import get_session
from adminguard.errors import Forbidden, Unauthenticated
from adminguard.models.admin import AdminPrincipal
from adminguard.models.enums import AdminRole, AdminStatus, Severity
from adminguard.schemas.admin import (
    AdminOut,
    AdminPage,
    AdminUpdate,
    BulkStatusRequest,
    BulkStatusResult,
    LoginRequest,
    TokenResponse,
)
from adminguard.schemas.events import PurgeRequest, PurgeResult, SecurityEventPage, SecurityMetrics
from adminguard.security.abuse import detect_abuse
from adminguard.security.bulk_limiter import limit_bulk_operations
from adminguard.security.loggers import (
    admin_escalation_logger,
    audit_trail,
    bulk_operation_logger,
    configuration_change_logger,
    data_access_logger,
    data_modification_logger,
    login_failure_logger,
    login_logger,
)
from adminguard.security.roles import require_admin, require_superadmin
from adminguard.security.store import SecurityEventStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Gate first, then the detector.
ADMIN_ONLY = [Depends(require_admin), Depends(detect_abuse)]
SUPERADMIN_ONLY = [Depends(require_superadmin), Depends(detect_abuse)]

security_events_trail = audit_trail("security_events")


def get_event_store(request: Request) -> SecurityEventStore:
    return request.app.state.event_store


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalise a query datetime to UTC; values without an offset are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ── Authentication ───────────────────────────────────────────────────


@router.post(
    "/auth/login",
    response_model=TokenResponse,
    dependencies=[Depends(detect_abuse), Depends(login_logger)],
)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange admin credentials for a bearer token."""
    admin = await get_admin_by_email(db, body.email)

    if admin is None or not verify_password(body.password, admin.password_hash):
        await login_failure_logger.attach(request)
        logger.info("Failed admin login for %s", body.email)
        raise Unauthenticated("Invalid credentials")

    if not admin.is_active:
        await login_failure_logger.attach(request)
        raise Forbidden("Admin account is not active")

    admin.last_login_at = datetime.now(UTC)
    request.state.admin = admin

    token = create_access_token(admin.id, admin.role, request.app.state.settings.auth)
    logger.info("Admin %s signed in", admin.id)
    return TokenResponse(access_token=token, admin=AdminOut.model_validate(admin))


@router.get(
    "/auth/profile",
    response_model=AdminOut,
    dependencies=[*ADMIN_ONLY, Depends(data_access_logger)],
)
async def profile(admin: AdminPrincipal = Depends(require_admin)) -> AdminOut:
    return AdminOut.model_validate(admin)


# ── Admin accounts ───────────────────────────────────────────────────


@router.get(
    "/admins",
    response_model=AdminPage,
    dependencies=[*SUPERADMIN_ONLY, Depends(data_access_logger)],
)
async def admins_list(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: AdminRole | None = None,
    admin_status: AdminStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_session),
) -> AdminPage:
    admins, total = await list_admins(
        db,
        page=page,
        limit=limit,
        role=role.value if role else None,
        status=admin_status.value if admin_status else None,
    )
    return AdminPage(
        items=[AdminOut.model_validate(a) for a in admins],
        total=total,
        page=page,
        limit=limit,
    )


@router.put(
    "/admins/{admin_id}",
    response_model=AdminOut,
    dependencies=[*SUPERADMIN_ONLY, Depends(data_modification_logger)],
)
async def admin_update(
    request: Request,
    admin_id: uuid.UUID,
    body: AdminUpdate,
    requester: AdminPrincipal = Depends(require_superadmin),
    db: AsyncSession = Depends(get_session),
) -> AdminOut:
    """Change an admin's role or status. Promotion to superadmin is logged as escalation."""
    if body.role is None and body.status is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role or status is required")

    target = await get_admin(db, admin_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")

    if target.id == requester.id:
        if body.role is not None and body.role.value != target.role:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change your own role")
        if body.status is not None and body.status.value != target.status:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change your own status")

    if body.role is not None:
        if body.role == AdminRole.SUPERADMIN and target.role != AdminRole.SUPERADMIN.value:
            await admin_escalation_logger.attach(request)
        target.role = body.role.value
    if body.status is not None:
        target.status = body.status.value

    await db.flush()
    logger.info("Admin %s updated by %s (role=%s status=%s)", target.id, requester.id, target.role, target.status)
    return AdminOut.model_validate(target)


@router.post(
    "/admins/bulk/status",
    response_model=BulkStatusResult,
    dependencies=[
        *SUPERADMIN_ONLY,
        Depends(limit_bulk_operations),
        Depends(bulk_operation_logger),
    ],
)
async def admins_bulk_status(
    body: BulkStatusRequest,
    requester: AdminPrincipal = Depends(require_superadmin),
    db: AsyncSession = Depends(get_session),
) -> BulkStatusResult:
    if requester.id in body.ids and body.status != AdminStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change your own status")

    updated = await set_admin_status(db, body.ids, body.status.value)
    return BulkStatusResult(updated=updated)


# ── Security events ──────────────────────────────────────────────────


@router.get(
    "/security/events",
    response_model=SecurityEventPage,
    dependencies=[*ADMIN_ONLY, Depends(security_events_trail)],
)
async def security_events(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    event_type: str | None = Query(None, alias="eventType"),
    actor_kind: str | None = Query(None, alias="actorKind"),
    severity: Severity | None = None,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    store: SecurityEventStore = Depends(get_event_store),
) -> SecurityEventPage:
    """Newest-first events, filterable by type, actor kind, severity and time range."""
    return await store.paginate(
        page=page,
        limit=limit,
        event_type=event_type,
        actor_kind=actor_kind,
        severity=severity.value if severity else None,
        start_date=_as_utc(start_date),
        end_date=_as_utc(end_date),
    )


@router.get(
    "/security/metrics",
    response_model=SecurityMetrics,
    dependencies=[*ADMIN_ONLY, Depends(data_access_logger)],
)
async def security_metrics(
    timeframe: int = Query(30, ge=1, le=365, description="Trailing window in days"),
    store: SecurityEventStore = Depends(get_event_store),
) -> SecurityMetrics:
    return await store.metrics(timeframe_days=timeframe)


@router.delete(
    "/security/events",
    response_model=PurgeResult,
    dependencies=[*SUPERADMIN_ONLY, Depends(configuration_change_logger)],
)
async def security_events_purge(
    body: PurgeRequest | None = None,
    store: SecurityEventStore = Depends(get_event_store),
) -> PurgeResult:
    """Delete events older than ``olderThan`` days, or every event when omitted."""
    older_than = body.older_than if body is not None else None
    deleted = await store.delete_where(older_than_days=older_than)
    return PurgeResult(deleted_count=deleted)
