"""SQLAlchemy declarative base and shared mixins.

Columns use SQLAlchemy's generic Uuid and JSON types (JSONB on PostgreSQL)
so the same models run against asyncpg in production and aiosqlite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSON payload type — native JSONB on PostgreSQL, TEXT-encoded elsewhere.
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class IdMixin:
    """UUID primary key generated client-side."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)


class TimestampMixin(IdMixin):
    """Mixin adding id (UUID), created_at, and updated_at.

    Used by mutable tables only; security events carry their own
    write-time timestamp instead.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
