"""Background writer for security events.

Events are placed on an async queue and persisted by a single worker task,
so the request that produced an event never waits on the store.

Usage:
    dispatcher = EventDispatcher(store)
    await dispatcher.start()          # lifespan startup (optional, lazy otherwise)

    dispatcher.submit(record)         # from anywhere on the event loop

    await dispatcher.stop()           # lifespan shutdown, drains the queue
"""

from __future__ import annotations

import asyncio
import logging

from adminguard.schemas.events import SecurityEventRecord
from adminguard.security.store import SecurityEventStore

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Queue + worker task that persists events with an error boundary."""

    def __init__(self, store: SecurityEventStore) -> None:
        self._store = store
        self._queue: asyncio.Queue[SecurityEventRecord] | None = None
        self._worker_task: asyncio.Task[None] | None = None

    # ── Public API ───────────────────────────────────────────────────

    def submit(self, record: SecurityEventRecord) -> None:
        """Enqueue an event for persistence. Never blocks, never raises."""
        try:
            if self._queue is None:
                self._queue = asyncio.Queue()
            self._ensure_worker()
            self._queue.put_nowait(record)
        except Exception:
            logger.exception("Failed to enqueue security event: %s", record.event_type)
            return
        logger.debug("Security event queued: %s", record.event_type)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def start(self) -> None:
        """Initialize the queue and worker. Call during lifespan startup."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._ensure_worker()
        logger.info("Security event dispatcher started")

    async def stop(self) -> None:
        """Drain pending events and stop the worker. Call during lifespan shutdown."""
        await self.drain()

        if self._worker_task is not None and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass

        self._worker_task = None
        self._queue = None
        logger.info("Security event dispatcher stopped")

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    # ── Background worker ────────────────────────────────────────────

    def _ensure_worker(self) -> None:
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._worker())
            logger.info("Security event worker started")

    async def _worker(self) -> None:
        queue = self._queue
        if queue is None:
            return

        while True:
            try:
                record = await queue.get()
            except asyncio.CancelledError:
                logger.info("Security event worker shutting down")
                break
            try:
                await self._store.insert(record)
            except asyncio.CancelledError:
                queue.task_done()
                logger.info("Security event worker shutting down")
                break
            except Exception:
                # Audit trouble is absorbed here and never reaches a caller.
                logger.exception(
                    "Failed to persist security event: %s (ip=%s)",
                    record.event_type,
                    record.ip_address,
                )
            queue.task_done()
