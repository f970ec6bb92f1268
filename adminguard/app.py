"""Application factory — builds the security services and wires them into FastAPI.

Usage:
    from adminguard.app import create_app

    app = create_app()                   # settings from the environment
    app = create_app(Settings(...))      # explicit settings (tests)

Services are constructed here and published on ``app.state``; dependencies
read them from there, so every app instance owns its own store, dispatcher
and limiter.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from adminguard.admin.routes import router as admin_router
from adminguard.config import Settings, settings
from adminguard.db.engine import build_engine, build_session_factory, init_db
from adminguard.security.abuse import AbuseDetector
from adminguard.security.bulk_limiter import BulkOperationLimiter
from adminguard.security.dispatch import EventDispatcher
from adminguard.security.event_logger import SecurityEventMiddleware
from adminguard.security.retention import retention_loop
from adminguard.security.roles import AdminDirectory
from adminguard.security.store import SecurityEventStore

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build a FastAPI application with the security event layer installed."""
    cfg = app_settings or settings

    engine = build_engine(cfg.db)
    session_factory = build_session_factory(engine)
    store = SecurityEventStore(session_factory)
    dispatcher = EventDispatcher(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application startup and shutdown lifecycle."""
        logger.info("Starting adminguard (env=%s)", cfg.environment)

        # 1. Database
        await init_db(engine, create_tables=not cfg.is_production)
        logger.info("Database initialized")

        # 2. Event dispatcher
        await dispatcher.start()

        # 3. Retention job
        retention_task = asyncio.create_task(
            retention_loop(
                store,
                cfg.event_retention_days,
                interval_seconds=cfg.retention_interval_hours * 3600,
            )
        )
        logger.info("Retention job scheduled (every %dh)", cfg.retention_interval_hours)

        try:
            yield
        finally:
            # Shutdown in reverse order
            retention_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await retention_task

            await dispatcher.stop()
            await engine.dispose()
            logger.info("adminguard shutdown complete")

    app = FastAPI(
        title="adminguard",
        description="Role-gated admin API with security event logging and abuse detection",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.event_store = store
    app.state.dispatcher = dispatcher
    app.state.admin_directory = AdminDirectory(session_factory)
    app.state.abuse_detector = AbuseDetector.from_settings(store, cfg.abuse)
    app.state.bulk_limiter = BulkOperationLimiter(
        max_operations=cfg.bulk.max_bulk_operations,
        window_seconds=cfg.bulk.bulk_window_seconds,
    )

    app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)
    app.include_router(admin_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str | int]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "environment": cfg.environment,
            "pending_events": request.app.state.dispatcher.pending,
        }

    return app
