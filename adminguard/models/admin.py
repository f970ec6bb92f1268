"""AdminPrincipal model — administrator accounts resolved by the role gate."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from adminguard.models.base import Base, TimestampMixin
from adminguard.models.enums import AdminRole, AdminStatus


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AdminPrincipal(TimestampMixin, Base):
    """An administrator who can sign in to the console."""

    __tablename__ = "admins"
    __table_args__ = (CheckConstraint("email = lower(email)", name="ck_admins_email_lowercase"),)

    # Profile (email stored lowercased, so the unique index is case-insensitive)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=AdminRole.ADMIN.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AdminStatus.ACTIVE.value)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    @property
    def is_active(self) -> bool:
        return self.status == AdminStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<AdminPrincipal email={self.email} role={self.role} status={self.status}>"
