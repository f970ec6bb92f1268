"""Per-route security event logging.

A SecurityLogger is attached to a route as a FastAPI dependency. Attaching
it snapshots the request and registers the logger on the request state.
SecurityEventMiddleware observes the response status as the response
starts and, once the response path has finished, builds one event per
registered logger and hands it to the EventDispatcher. The request never
waits on the write, and nothing that goes wrong here reaches the caller.

Usage:
    data_access = SecurityLogger(
        "data_access",
        resource=lambda ctx: f"user_{ctx.path_params['user_id']}",
        action="get_data",
    )

    @router.get("/users/{user_id}", dependencies=[Depends(data_access)])
    async def get_user(user_id: str): ...
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from fastapi import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from adminguard.errors import LoggingFailure
from adminguard.models.enums import ActorKind, AdminRole
from adminguard.schemas.events import SecurityEventRecord
from adminguard.security.dispatch import EventDispatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A per-route field: either a constant or computed from the log context.
Derivation = Union[T, Callable[["LogContext"], T]]

PENDING_LOGGERS_KEY = "security_loggers"

_MAX_LENGTHS = {"user_agent": 1000, "resource": 500, "action": 200, "description": 2000}

# Response bodies larger than this are not decoded for derivations.
MAX_CAPTURED_RESPONSE_BYTES = 64 * 1024


# ── Request / response context ───────────────────────────────────────


@dataclass(frozen=True)
class RequestSnapshot:
    """Read-only copy of the parts of a request the loggers may use."""

    method: str
    path: str
    url: str
    path_params: Mapping[str, Any] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    client_ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class LogContext:
    """What a derivation sees: the request snapshot plus the response outcome.

    ``response_body`` is the decoded JSON payload the route sent, or None
    when the response was not JSON, was too large, or never started.
    """

    request: RequestSnapshot
    status_code: int
    processing_time_ms: int | None = None
    response_body: Any = None

    @property
    def body(self) -> dict[str, Any]:
        """JSON object body, or an empty dict for anything else."""
        return self.request.body if isinstance(self.request.body, dict) else {}

    @property
    def response(self) -> dict[str, Any]:
        """JSON object response payload, or an empty dict for anything else."""
        return self.response_body if isinstance(self.response_body, dict) else {}

    @property
    def path_params(self) -> Mapping[str, Any]:
        return self.request.path_params

    @property
    def query(self) -> Mapping[str, str]:
        return self.request.query_params

    @property
    def headers(self) -> Mapping[str, str]:
        return self.request.headers


async def snapshot_request(request: Request) -> RequestSnapshot:
    """Copy the request into a RequestSnapshot, parsing a JSON body if present."""
    body: Any = None
    if request.method not in ("GET", "HEAD", "OPTIONS"):
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            raw = await request.body()
            if raw:
                try:
                    body = json.loads(raw)
                except ValueError:
                    body = None

    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"

    return RequestSnapshot(
        method=request.method,
        path=request.url.path,
        url=url,
        path_params=dict(request.path_params),
        query_params=dict(request.query_params),
        headers={k.lower(): v for k, v in request.headers.items()},
        body=body,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def resolve_actor(user: Any, admin: Any) -> tuple[str | None, str | None]:
    """Pick the acting identity for an event.

    An end-user identity wins over an administrator principal. End-users
    whose role is superadmin are recorded with the admin kind.
    """
    if user is not None and getattr(user, "id", None):
        role = _enum_value(getattr(user, "role", None))
        kind = ActorKind.ADMIN if role == AdminRole.SUPERADMIN.value else ActorKind.USER
        return str(user.id), kind.value
    if admin is not None and getattr(admin, "id", None):
        role = _enum_value(getattr(admin, "role", None))
        return str(admin.id), role or ActorKind.ADMIN.value
    return None, None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _resolve(derivation: Derivation[T] | None, ctx: LogContext) -> T | None:
    if derivation is None:
        return None
    if callable(derivation):
        return derivation(ctx)
    return derivation


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


# ── Logger ───────────────────────────────────────────────────────────


class SecurityLogger:
    """Route-level configuration for one kind of security event.

    Args:
        event_type: Tag stored on every event from this logger.
        resource, action, description, metadata: constants or callables
            taking a LogContext.
        log_body: include the parsed request body in ``request_data``.
        log_all_responses: log regardless of status; otherwise only 2xx.
        static_data: extra record fields merged in last (e.g. severity).
    """

    def __init__(
        self,
        event_type: str,
        *,
        resource: Derivation[str] | None = None,
        action: Derivation[str] | None = None,
        description: Derivation[str] | None = None,
        metadata: Derivation[dict[str, Any]] | None = None,
        log_body: bool = False,
        log_all_responses: bool = False,
        static_data: dict[str, Any] | None = None,
    ) -> None:
        self.event_type = event_type
        self.resource = resource
        self.action = action
        self.description = description
        self.metadata = metadata
        self.log_body = log_body
        self.log_all_responses = log_all_responses
        self.static_data = dict(static_data or {})

    async def __call__(self, request: Request) -> None:
        """FastAPI dependency — register this logger for the current request."""
        await self.attach(request)

    async def attach(self, request: Request) -> None:
        """Register for the current request. Handlers may call this directly."""
        try:
            snapshot = await snapshot_request(request)
        except Exception:
            logger.exception("Could not snapshot request for %s logger", self.event_type)
            return
        pending = getattr(request.state, PENDING_LOGGERS_KEY, None)
        if pending is None:
            pending = []
            setattr(request.state, PENDING_LOGGERS_KEY, pending)
        pending.append((self, snapshot))

    def should_log(self, status_code: int) -> bool:
        return self.log_all_responses or 200 <= status_code < 300

    def build_record(
        self,
        ctx: LogContext,
        *,
        user: Any = None,
        admin: Any = None,
    ) -> SecurityEventRecord:
        """Resolve every derivation into a SecurityEventRecord."""
        snapshot = ctx.request
        request_data: dict[str, Any] = {
            "endpoint": snapshot.url,
            "method": snapshot.method,
            "query": dict(snapshot.query_params),
        }
        if self.log_body and snapshot.body is not None:
            request_data["body"] = snapshot.body

        actor_id, actor_kind = resolve_actor(user, admin)

        fields: dict[str, Any] = {
            "event_type": self.event_type,
            "ip_address": snapshot.client_ip,
            "user_agent": snapshot.user_agent,
            "actor_id": actor_id,
            "actor_kind": actor_kind,
            "resource": _resolve(self.resource, ctx),
            "action": _resolve(self.action, ctx),
            "description": _resolve(self.description, ctx),
            "metadata": _resolve(self.metadata, ctx),
            "request_data": request_data,
            "response_status": ctx.status_code,
            "processing_time_ms": ctx.processing_time_ms,
            **self.static_data,
        }
        for name, limit in _MAX_LENGTHS.items():
            fields[name] = _clip(fields.get(name), limit)

        return SecurityEventRecord(**fields)

    def __repr__(self) -> str:
        return f"<SecurityLogger {self.event_type} all={self.log_all_responses}>"


# ── Response hook ────────────────────────────────────────────────────


class SecurityEventMiddleware:
    """ASGI middleware that turns registered loggers into queued events.

    Captures the status code and elapsed time on ``http.response.start``
    and, for requests with registered loggers, buffers a JSON response body
    of up to ``max_body_bytes`` so derivations can read it. Unhandled
    exceptions from the app count as status 500 and are re-raised after the
    events are queued.
    """

    def __init__(
        self,
        app: ASGIApp,
        dispatcher: EventDispatcher,
        max_body_bytes: int = MAX_CAPTURED_RESPONSE_BYTES,
    ) -> None:
        self.app = app
        self.dispatcher = dispatcher
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: dict[str, Any] = scope.setdefault("state", {})
        started = time.perf_counter()
        outcome: dict[str, Any] = {}
        chunks: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start" and "status" not in outcome:
                outcome["status"] = message["status"]
                outcome["elapsed_ms"] = round((time.perf_counter() - started) * 1000)
                outcome["capture"] = bool(state.get(PENDING_LOGGERS_KEY)) and _is_json(message)
                outcome["size"] = 0
            elif message["type"] == "http.response.body" and outcome.get("capture"):
                chunk = message.get("body", b"")
                outcome["size"] += len(chunk)
                if outcome["size"] > self.max_body_bytes:
                    outcome["capture"] = False
                    chunks.clear()
                else:
                    chunks.append(chunk)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            outcome.setdefault("status", 500)
            outcome.setdefault("elapsed_ms", round((time.perf_counter() - started) * 1000))
            self._emit(state, outcome, None)
            raise
        self._emit(state, outcome, _decode_json(chunks) if outcome.get("capture") else None)

    def _emit(self, state: dict[str, Any], outcome: dict[str, Any], response_body: Any) -> None:
        pending = state.get(PENDING_LOGGERS_KEY) or ()
        if not pending:
            return

        status_code = outcome.get("status", 500)
        user = state.get("user")
        admin = state.get("admin")

        for security_logger, snapshot in pending:
            if not security_logger.should_log(status_code):
                continue
            ctx = LogContext(
                request=snapshot,
                status_code=status_code,
                processing_time_ms=outcome.get("elapsed_ms"),
                response_body=response_body,
            )
            try:
                record = _build_record(security_logger, ctx, user, admin)
            except LoggingFailure:
                logger.exception("Error building security event: %s", security_logger.event_type)
                continue
            self.dispatcher.submit(record)


def _is_json(start_message: Message) -> bool:
    for name, value in start_message.get("headers", []):
        if name.lower() == b"content-type":
            return value.split(b";")[0].strip().lower() == b"application/json"
    return False


def _decode_json(chunks: list[bytes]) -> Any:
    raw = b"".join(chunks)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _build_record(
    security_logger: SecurityLogger, ctx: LogContext, user: Any, admin: Any
) -> SecurityEventRecord:
    try:
        return security_logger.build_record(ctx, user=user, admin=admin)
    except Exception as exc:
        raise LoggingFailure(f"{security_logger.event_type}: {exc}") from exc
