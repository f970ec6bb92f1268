"""Admin account queries shared by the login and account management routes."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from adminguard.models.admin import AdminPrincipal, normalize_email

logger = logging.getLogger(__name__)


async def get_admin_by_email(db: AsyncSession, email: str) -> AdminPrincipal | None:
    """Case-insensitive lookup; stored emails are already lowercased."""
    result = await db.execute(
        select(AdminPrincipal).where(AdminPrincipal.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_admin(db: AsyncSession, admin_id: uuid.UUID) -> AdminPrincipal | None:
    return await db.get(AdminPrincipal, admin_id)


async def list_admins(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    role: str | None = None,
    status: str | None = None,
) -> tuple[list[AdminPrincipal], int]:
    """Paginated admin accounts, newest first.

    Returns (admins, total_count).
    """
    query = select(AdminPrincipal)
    count_query = select(func.count(AdminPrincipal.id))

    if role:
        query = query.where(AdminPrincipal.role == role)
        count_query = count_query.where(AdminPrincipal.role == role)
    if status:
        query = query.where(AdminPrincipal.status == status)
        count_query = count_query.where(AdminPrincipal.status == status)

    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(
        query.order_by(AdminPrincipal.created_at.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def set_admin_status(
    db: AsyncSession,
    admin_ids: Sequence[uuid.UUID],
    status: str,
) -> int:
    """Set ``status`` on every listed admin. Returns the number of rows changed."""
    if not admin_ids:
        return 0
    result = await db.execute(
        update(AdminPrincipal)
        .where(AdminPrincipal.id.in_(list(admin_ids)))
        .values(status=status)
    )
    count = result.rowcount or 0  # type: ignore[attr-defined]
    logger.info("Admin status set to %s for %d accounts", status, count)
    return count
