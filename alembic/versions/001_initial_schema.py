"""Initial schema — admins and security_events.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    # ── Admin accounts ─────────────────────────────────────────────────

    op.create_table(
        "admins",
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="admin"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("email = lower(email)", name="ck_admins_email_lowercase"),
    )
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)

    # ── Security events (append-only) ──────────────────────────────────

    op.create_table(
        "security_events",
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("user_agent", sa.String(1000)),
        sa.Column("actor_id", sa.String(100)),
        sa.Column("actor_kind", sa.String(20), comment="user, admin, superadmin, system"),
        sa.Column("resource", sa.String(500)),
        sa.Column("action", sa.String(200)),
        sa.Column("description", sa.String(2000)),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("request_data", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("response_status", sa.Integer()),
        sa.Column("processing_time_ms", sa.Integer()),
        sa.Column("risk_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("risk_factors", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_security_events_event_type", "security_events", ["event_type"])
    op.create_index("ix_security_events_timestamp", "security_events", ["timestamp"])
    op.create_index("ix_security_events_type_ts", "security_events", ["event_type", "timestamp"])
    op.create_index("ix_security_events_ip_ts", "security_events", ["ip_address", "timestamp"])
    op.create_index("ix_security_events_actor_ts", "security_events", ["actor_id", "timestamp"])


def downgrade() -> None:
    op.drop_table("security_events")
    op.drop_table("admins")
