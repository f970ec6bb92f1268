"""Role gate — admin-or-above and superadmin-only route protection.

The gate resolves the identity attached by token verification to an
AdminPrincipal and checks role and status before the handler runs. It
does not write security events; loggers are attached separately.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adminguard.admin.auth import Identity, get_identity
from adminguard.errors import Forbidden, InternalError, Unauthenticated
from adminguard.models.admin import AdminPrincipal
from adminguard.models.enums import AdminRole, AdminStatus

logger = logging.getLogger(__name__)


class AdminDirectory:
    """Principal lookup backed by the ``admins`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_id(self, admin_id: str) -> AdminPrincipal | None:
        """Return the principal, or None for unknown or malformed ids."""
        try:
            key = uuid.UUID(str(admin_id))
        except ValueError:
            return None
        async with self._session_factory() as db:
            return await db.get(AdminPrincipal, key)


class RoleGate:
    """FastAPI dependency allowing only active principals with one of ``roles``."""

    def __init__(self, roles: Iterable[AdminRole], denied_message: str) -> None:
        self.roles = frozenset(r.value for r in roles)
        self.denied_message = denied_message

    async def __call__(
        self,
        request: Request,
        identity: Identity | None = Depends(get_identity),  # noqa: B008
    ) -> AdminPrincipal:
        directory: AdminDirectory = request.app.state.admin_directory
        return await self.check(request, identity, directory)

    async def check(
        self,
        request: Request,
        identity: Identity | None,
        directory: AdminDirectory,
    ) -> AdminPrincipal:
        if identity is None or not identity.id:
            raise Unauthenticated("Authentication required")

        try:
            admin = await directory.find_by_id(identity.id)
        except Exception as exc:
            logger.exception("Admin lookup failed for %s", identity.id)
            raise InternalError(f"Error verifying admin privileges: {exc}") from exc

        if admin is None:
            raise Unauthenticated("Admin user not found")

        if admin.role not in self.roles:
            raise Forbidden(self.denied_message)

        if admin.status != AdminStatus.ACTIVE.value:
            raise Forbidden("Admin account is not active")

        request.state.admin = admin
        return admin


require_admin = RoleGate(
    (AdminRole.ADMIN, AdminRole.SUPERADMIN),
    "Admin privileges required",
)

require_superadmin = RoleGate(
    (AdminRole.SUPERADMIN,),
    "Super admin privileges required",
)
