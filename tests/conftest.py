"""Shared fixtures — an on-disk SQLite app instance and admin account helpers."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from adminguard.admin.auth import create_access_token, hash_password
from adminguard.app import create_app
from adminguard.config import (
    AbuseSettings,
    AuthSettings,
    BulkLimitSettings,
    DatabaseSettings,
    Settings,
)
from adminguard.db.engine import build_engine, build_session_factory, init_db
from adminguard.models.admin import AdminPrincipal
from adminguard.models.enums import AdminRole, AdminStatus
from adminguard.security.store import SecurityEventStore

TEST_SECRET = "test-secret-key-for-adminguard"
CLIENT_IP = "203.0.113.7"


def _make_settings(tmp_path: Path) -> Settings:
    return Settings(
        environment="test",
        log_level="DEBUG",
        db=DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'adminguard.db'}"),
        auth=AuthSettings(jwt_secret=TEST_SECRET),
        abuse=AbuseSettings(
            max_requests_per_minute=100,
            max_failed_logins_per_hour=10,
            suspicious_user_agents=["sqlmap", "nikto"],
        ),
        bulk=BulkLimitSettings(max_bulk_operations=5, bulk_window_seconds=60),
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return _make_settings(tmp_path)


@pytest.fixture
async def app(test_settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """Application with tables created. The lifespan is not run by the transport."""
    application = create_app(test_settings)
    await init_db(application.state.engine, create_tables=True)
    yield application
    await application.state.dispatcher.stop()
    await application.state.engine.dispose()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app, client=(CLIENT_IP, 50000))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def store(tmp_path: Path) -> AsyncGenerator[SecurityEventStore, None]:
    """Standalone event store on its own SQLite file."""
    engine = build_engine(DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'events.db'}"))
    await init_db(engine, create_tables=True)
    yield SecurityEventStore(build_session_factory(engine))
    await engine.dispose()


# ── Helpers ──────────────────────────────────────────────────────────


async def create_admin(
    app: FastAPI,
    *,
    email: str = "admin@example.com",
    password: str = "correct horse battery",
    role: AdminRole = AdminRole.ADMIN,
    status: AdminStatus = AdminStatus.ACTIVE,
    name: str = "Test Admin",
) -> AdminPrincipal:
    """Insert an admin account directly through the app's session factory."""
    admin = AdminPrincipal(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role.value,
        status=status.value,
    )
    async with app.state.session_factory() as db:
        db.add(admin)
        await db.commit()
    return admin


def auth_headers(app: FastAPI, admin: AdminPrincipal) -> dict[str, str]:
    token = create_access_token(admin.id, admin.role, app.state.settings.auth)
    return {"Authorization": f"Bearer {token}"}
