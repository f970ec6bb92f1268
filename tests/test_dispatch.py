"""Tests for adminguard/security/dispatch.py — background event persistence."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from adminguard.schemas.events import SecurityEventRecord
from adminguard.security.dispatch import EventDispatcher


def _record(event_type: str = "data_access") -> SecurityEventRecord:
    return SecurityEventRecord(event_type=event_type, ip_address="203.0.113.5")


class TestEventDispatcher:
    @pytest.mark.asyncio()
    async def test_submit_persists_in_background(self):
        store = AsyncMock()
        dispatcher = EventDispatcher(store)

        dispatcher.submit(_record("login_success"))
        dispatcher.submit(_record("login_failure"))
        await dispatcher.drain()

        written = [c.args[0].event_type for c in store.insert.call_args_list]
        assert written == ["login_success", "login_failure"]
        await dispatcher.stop()

    @pytest.mark.asyncio()
    async def test_submit_does_not_wait_for_store(self):
        release = asyncio.Event()
        store = AsyncMock()

        async def slow_insert(record):
            await release.wait()

        store.insert.side_effect = slow_insert
        dispatcher = EventDispatcher(store)

        dispatcher.submit(_record())
        assert dispatcher.pending == 1

        release.set()
        await dispatcher.drain()
        assert dispatcher.pending == 0
        await dispatcher.stop()

    @pytest.mark.asyncio()
    async def test_store_failure_is_absorbed(self):
        store = AsyncMock()
        store.insert.side_effect = [ConnectionError("db down"), None]
        dispatcher = EventDispatcher(store)

        dispatcher.submit(_record("first"))
        dispatcher.submit(_record("second"))
        await dispatcher.drain()

        assert store.insert.call_count == 2
        await dispatcher.stop()

    @pytest.mark.asyncio()
    async def test_stop_drains_pending_events(self):
        store = AsyncMock()
        dispatcher = EventDispatcher(store)
        await dispatcher.start()

        for _ in range(3):
            dispatcher.submit(_record())
        await dispatcher.stop()

        assert store.insert.call_count == 3
        assert dispatcher.pending == 0

    @pytest.mark.asyncio()
    async def test_restart_after_stop(self):
        store = AsyncMock()
        dispatcher = EventDispatcher(store)
        await dispatcher.start()
        await dispatcher.stop()

        dispatcher.submit(_record())
        await dispatcher.drain()

        assert store.insert.call_count == 1
        await dispatcher.stop()
