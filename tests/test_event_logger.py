"""Tests for adminguard/security/event_logger.py — per-route event emission.

Covers:
- 2xx-only vs log-all-responses behaviour
- request_data contents and body exclusion
- actor resolution
- unhandled exceptions recorded as 500
- derivation errors never reaching the caller
- response payloads exposed to derivations
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from adminguard.models.enums import SecurityEventType
from adminguard.security.event_logger import (
    LogContext,
    RequestSnapshot,
    SecurityEventMiddleware,
    SecurityLogger,
    resolve_actor,
)


# ── Helpers ──────────────────────────────────────────────────────────


def _make_app(*loggers_by_route: tuple[str, str, SecurityLogger, int]):
    """App whose routes return (or raise) the given status with the logger attached.

    Returns (app, dispatcher) where dispatcher.submit is a MagicMock.
    """
    dispatcher = MagicMock()
    app = FastAPI()
    app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

    for method, path, security_logger, status_code in loggers_by_route:
        app.add_api_route(
            path,
            _handler_for(status_code),
            methods=[method],
            status_code=status_code if status_code < 400 else 200,
            dependencies=[Depends(security_logger)],
        )
    return app, dispatcher


def _handler_for(status_code: int):
    async def handler() -> dict[str, str]:
        if status_code >= 400:
            raise HTTPException(status_code=status_code, detail="nope")
        return {"ok": "yes"}

    return handler


def _client(app: FastAPI, **kwargs) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app, client=("198.51.100.4", 4000), **kwargs)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


def _submitted(dispatcher):
    return [c.args[0] for c in dispatcher.submit.call_args_list]


def _make_ctx(**request_fields) -> LogContext:
    fields = {"method": "POST", "path": "/x", "url": "/x"}
    fields.update(request_fields)
    return LogContext(request=RequestSnapshot(**fields), status_code=200)


# ── Status filtering ─────────────────────────────────────────────────


class TestStatusFiltering:
    @pytest.mark.asyncio()
    async def test_success_only_logger_skips_404(self):
        access = SecurityLogger("data_access", resource="thing", action="read")
        app, dispatcher = _make_app(("GET", "/things/{thing_id}", access, 404))

        async with _client(app) as c:
            resp = await c.get("/things/1")

        assert resp.status_code == 404
        dispatcher.submit.assert_not_called()

    @pytest.mark.asyncio()
    async def test_success_only_logger_writes_one_event_on_201(self):
        modify = SecurityLogger("data_modification", resource="thing", action="create")
        app, dispatcher = _make_app(("POST", "/things", modify, 201))

        async with _client(app) as c:
            resp = await c.post("/things", json={"name": "x"})

        assert resp.status_code == 201
        records = _submitted(dispatcher)
        assert len(records) == 1
        assert records[0].event_type == "data_modification"
        assert records[0].response_status == 201

    @pytest.mark.asyncio()
    async def test_log_all_logger_records_401(self):
        failure = SecurityLogger("login_failure", action="login_attempt", log_all_responses=True)
        app, dispatcher = _make_app(("POST", "/login", failure, 401))

        async with _client(app) as c:
            resp = await c.post("/login", json={"email": "a@b.c"})

        assert resp.status_code == 401
        records = _submitted(dispatcher)
        assert len(records) == 1
        assert records[0].response_status == 401


# ── Record contents ──────────────────────────────────────────────────


class TestRecordContents:
    @pytest.mark.asyncio()
    async def test_request_fields_and_no_body_by_default(self):
        modify = SecurityLogger(
            "data_modification",
            resource=lambda ctx: f"user_{ctx.path_params['user_id']}",
            action=lambda ctx: f"{ctx.request.method.lower()}_data",
        )
        app, dispatcher = _make_app(("PUT", "/users/{user_id}", modify, 200))

        async with _client(app) as c:
            await c.put(
                "/users/42?dry=1",
                json={"password": "secret"},
                headers={"User-Agent": "pytest-agent"},
            )

        record = _submitted(dispatcher)[0]
        assert record.resource == "user_42"
        assert record.action == "put_data"
        assert record.ip_address == "198.51.100.4"
        assert record.user_agent == "pytest-agent"
        assert record.request_data == {"endpoint": "/users/42?dry=1", "method": "PUT", "query": {"dry": "1"}}
        assert "body" not in record.request_data
        assert record.processing_time_ms is not None

    @pytest.mark.asyncio()
    async def test_log_body_includes_parsed_json(self):
        verbose = SecurityLogger("data_modification", log_body=True)
        app, dispatcher = _make_app(("POST", "/things", verbose, 200))

        async with _client(app) as c:
            await c.post("/things", json={"name": "x"})

        assert _submitted(dispatcher)[0].request_data["body"] == {"name": "x"}

    @pytest.mark.asyncio()
    async def test_static_data_is_merged(self):
        tagged = SecurityLogger("data_access", static_data={"severity": "high", "action": "fixed"})
        app, dispatcher = _make_app(("GET", "/things", tagged, 200))

        async with _client(app) as c:
            await c.get("/things")

        record = _submitted(dispatcher)[0]
        assert record.severity.value == "high"
        assert record.action == "fixed"

    def test_long_fields_are_clipped(self):
        chatty = SecurityLogger("data_access", resource="r" * 900, description="d" * 5000)
        record = chatty.build_record(_make_ctx(user_agent="u" * 4000))

        assert len(record.resource) == 500
        assert len(record.description) == 2000
        assert len(record.user_agent) == 1000

    def test_non_object_body_reads_as_empty(self):
        ctx = _make_ctx(body=["a", "b"])
        assert ctx.body == {}


# ── Actor resolution ─────────────────────────────────────────────────


class TestResolveActor:
    def test_no_identity(self):
        assert resolve_actor(None, None) == (None, None)

    def test_user_wins_over_admin(self):
        user = SimpleNamespace(id="u1", role="member")
        admin = SimpleNamespace(id="a1", role="admin")
        assert resolve_actor(user, admin) == ("u1", "user")

    def test_superadmin_user_recorded_as_admin(self):
        user = SimpleNamespace(id="u1", role="superadmin")
        assert resolve_actor(user, None) == ("u1", "admin")

    def test_admin_principal_uses_role(self):
        admin = SimpleNamespace(id="a1", role="superadmin")
        assert resolve_actor(None, admin) == ("a1", "superadmin")

    def test_admin_without_role_defaults_to_admin(self):
        admin = SimpleNamespace(id="a1", role=None)
        assert resolve_actor(None, admin) == ("a1", "admin")

    @pytest.mark.asyncio()
    async def test_request_state_user_is_recorded(self):
        access = SecurityLogger("data_access")
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

        async def set_user(request: Request) -> None:
            request.state.user = SimpleNamespace(id="user-7", role=None)

        @app.get("/me", dependencies=[Depends(set_user), Depends(access)])
        async def me() -> dict[str, str]:
            return {}

        async with _client(app) as c:
            await c.get("/me")

        record = _submitted(dispatcher)[0]
        assert (record.actor_id, record.actor_kind) == ("user-7", "user")


# ── Failure handling ─────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio()
    async def test_unhandled_exception_recorded_as_500(self):
        failure = SecurityLogger("suspicious_activity", log_all_responses=True)
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

        @app.get("/boom", dependencies=[Depends(failure)])
        async def boom() -> None:
            raise RuntimeError("kaboom")

        async with _client(app, raise_app_exceptions=False) as c:
            resp = await c.get("/boom")

        assert resp.status_code == 500
        records = _submitted(dispatcher)
        assert len(records) == 1
        assert records[0].response_status == 500

    @pytest.mark.asyncio()
    async def test_broken_derivation_does_not_affect_response(self):
        def explode(ctx: LogContext) -> str:
            raise KeyError("missing")

        broken = SecurityLogger("data_access", resource=explode)
        app, dispatcher = _make_app(("GET", "/things", broken, 200))

        async with _client(app) as c:
            resp = await c.get("/things")

        assert resp.status_code == 200
        dispatcher.submit.assert_not_called()

    @pytest.mark.asyncio()
    async def test_routes_without_loggers_emit_nothing(self):
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

        @app.get("/plain")
        async def plain() -> dict[str, str]:
            return {}

        async with _client(app) as c:
            await c.get("/plain")

        dispatcher.submit.assert_not_called()

    def test_event_type_tags_match_enum(self):
        assert SecurityLogger(SecurityEventType.LOGIN_SUCCESS.value).event_type == "login_success"


# ── Response payload ─────────────────────────────────────────────────


def _created_metadata(ctx: LogContext) -> dict[str, object]:
    return {"createdId": ctx.response.get("id"), "raw": ctx.response_body}


class TestResponsePayload:
    @pytest.mark.asyncio()
    async def test_metadata_reads_json_response(self):
        create = SecurityLogger("data_modification", metadata=_created_metadata)
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

        @app.post("/things", status_code=201, dependencies=[Depends(create)])
        async def create_thing() -> dict[str, object]:
            return {"id": "thing-17", "tags": ["a", "b"]}

        async with _client(app) as c:
            await c.post("/things", json={"name": "x"})

        record = _submitted(dispatcher)[0]
        assert record.metadata == {"createdId": "thing-17", "raw": {"id": "thing-17", "tags": ["a", "b"]}}

    @pytest.mark.asyncio()
    async def test_non_json_response_is_not_exposed(self):
        access = SecurityLogger("data_access", metadata=_created_metadata)
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher)

        @app.get("/report", response_class=PlainTextResponse, dependencies=[Depends(access)])
        async def report() -> str:
            return '{"id": "looks-like-json"}'

        async with _client(app) as c:
            await c.get("/report")

        assert _submitted(dispatcher)[0].metadata == {"createdId": None, "raw": None}

    @pytest.mark.asyncio()
    async def test_oversized_response_is_not_exposed(self):
        access = SecurityLogger("data_access", metadata=_created_metadata)
        dispatcher = MagicMock()
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=dispatcher, max_body_bytes=32)

        @app.get("/big", dependencies=[Depends(access)])
        async def big() -> dict[str, str]:
            return {"id": "x", "padding": "p" * 100}

        async with _client(app) as c:
            resp = await c.get("/big")

        assert resp.json()["id"] == "x"
        assert _submitted(dispatcher)[0].metadata == {"createdId": None, "raw": None}

    @pytest.mark.asyncio()
    async def test_error_response_payload_visible_to_log_all_logger(self):
        failure = SecurityLogger(
            "login_failure",
            description=lambda ctx: f"rejected: {ctx.response.get('detail')}",
            log_all_responses=True,
        )
        app, dispatcher = _make_app(("POST", "/login", failure, 401))

        async with _client(app) as c:
            await c.post("/login", json={})

        assert _submitted(dispatcher)[0].description == "rejected: nope"

    def test_response_defaults_to_empty(self):
        ctx = LogContext(request=RequestSnapshot(method="GET", path="/", url="/"), status_code=200)
        assert ctx.response_body is None
        assert ctx.response == {}


class TestRequestState:
    @pytest.mark.asyncio()
    async def test_middleware_leaves_request_state_clean(self):
        app = FastAPI()
        app.add_middleware(SecurityEventMiddleware, dispatcher=MagicMock())

        @app.get("/state")
        async def state_keys(request: Request) -> list[str]:
            return sorted(request.scope["state"])

        async with _client(app) as c:
            resp = await c.get("/state")

        assert resp.json() == []
