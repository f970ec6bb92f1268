"""Security event retention — periodic purge of old events.

Events older than EVENT_RETENTION_DAYS (default two years) are deleted
once per RETENTION_INTERVAL_HOURS. The loop is started from the FastAPI
lifespan and cancelled on shutdown.
"""

from __future__ import annotations

import asyncio
import logging

from adminguard.security.store import SecurityEventStore

logger = logging.getLogger(__name__)


async def enforce_event_retention(store: SecurityEventStore, retention_days: int) -> int:
    """Delete events older than ``retention_days``. Returns the deleted count.

    Idempotent; failures are logged and reported as 0.
    """
    try:
        deleted = await store.delete_where(older_than_days=retention_days)
    except Exception:
        logger.exception("Security event retention job failed")
        return 0

    if deleted > 0:
        logger.info("Retention job removed %d security events (retention=%dd)", deleted, retention_days)
    return deleted


async def retention_loop(
    store: SecurityEventStore,
    retention_days: int,
    interval_seconds: float,
) -> None:
    """Run ``enforce_event_retention`` forever, sleeping between runs."""
    while True:
        await enforce_event_retention(store, retention_days)
        try:
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("Retention loop stopped")
            raise
