"""Async database engine, session factory, and schema bootstrap.

Uses SQLAlchemy 2.0 async with the asyncpg driver for PostgreSQL. The
engine and session factory are built by the application factory and kept
on ``app.state``; nothing here connects at import time.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from adminguard.config import DatabaseSettings


def build_engine(db_settings: DatabaseSettings, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine.

    Connection pool sizing only applies to server databases; SQLite uses
    the driver's default pool.
    """
    if db_settings.is_sqlite:
        return create_async_engine(db_settings.database_url, echo=echo)

    return create_async_engine(
        db_settings.database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI — yields an async DB session.

    Usage:
        @router.get("/example")
        async def handler(db: AsyncSession = Depends(get_session)):
            ...
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine, *, create_tables: bool) -> None:
    """Verify connectivity and optionally create tables.

    In production, tables are created via Alembic migrations.
    """
    async with engine.begin() as conn:
        # Import here to ensure all models are registered with Base.metadata
        from adminguard.models import Base

        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
