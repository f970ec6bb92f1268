"""In-memory sliding-window limiter for bulk operations.

One instance is built by the application factory and kept on
``app.state``. Timestamps older than the window are evicted on every
check and empty keys are dropped, so memory stays bounded by the number
of actors active within one window.

Usage:
    limiter = BulkOperationLimiter(max_operations=5, window_seconds=60)
    allowed, retry_after = limiter.check(actor_id)
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable

from fastapi import Request

from adminguard.errors import RateLimited

logger = logging.getLogger(__name__)


class BulkOperationLimiter:
    """Sliding-window counter keyed by actor id."""

    def __init__(
        self,
        max_operations: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_operations = max_operations
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def check(self, key: str) -> tuple[bool, int]:
        """Record an operation for ``key`` if it is within the limit.

        Returns:
            (allowed, retry_after) — retry_after is seconds until the oldest
            operation leaves the window (0 if allowed).
        """
        now = self._clock()
        self._evict(now)

        hits = self._hits.setdefault(key, deque())
        if len(hits) >= self.max_operations:
            retry_after = max(1, int(hits[0] + self.window_seconds - now))
            return False, retry_after

        hits.append(now)
        return True, 0

    def reset(self) -> None:
        self._hits.clear()

    def __len__(self) -> int:
        return len(self._hits)

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]


async def limit_bulk_operations(request: Request) -> None:
    """FastAPI dependency — reject the caller's bulk operation when over the limit.

    Keyed by the resolved admin principal, falling back to the token identity.
    """
    limiter: BulkOperationLimiter = request.app.state.bulk_limiter
    actor = getattr(request.state, "admin", None) or getattr(request.state, "identity", None)
    key = str(actor.id) if actor is not None else "anonymous"

    allowed, retry_after = limiter.check(key)
    if not allowed:
        logger.info("Bulk operation limit reached for %s (retry in %ds)", key, retry_after)
        raise RateLimited("Too many bulk operations. Please wait before trying again.")
