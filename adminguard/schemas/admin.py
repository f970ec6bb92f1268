"""Request and response bodies for the admin account routes."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from adminguard.models.enums import AdminRole, AdminStatus


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class AdminOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: AdminRole
    status: AdminStatus
    last_login_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminOut


class AdminPage(BaseModel):
    items: list[AdminOut]
    total: int
    page: int
    limit: int


class AdminUpdate(BaseModel):
    role: AdminRole | None = None
    status: AdminStatus | None = None


class BulkStatusRequest(BaseModel):
    """Bulk status change. Accepts ``ids`` or ``userIds`` for the target list."""

    ids: list[uuid.UUID] = Field(min_length=1, validation_alias=AliasChoices("ids", "userIds"))
    status: AdminStatus


class BulkStatusResult(BaseModel):
    updated: int
