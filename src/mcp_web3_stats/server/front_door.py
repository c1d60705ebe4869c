"""HTTP front door: one listener, both transport generations.

Every request goes through the same steps in a fixed order:

1. ``OPTIONS`` is answered with CORS headers and no body.
2. ``GET /health`` is answered, even when auth is enabled.
3. Auth is checked.
4. The request is routed by (method, path) to an adapter, or gets a 404.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import anyio
from starlette.applications import Starlette
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount
from starlette.types import Message, Receive, Scope, Send

from mcp_web3_stats.server.auth import AuthConfig, send_auth_required, validate
from mcp_web3_stats.server.registry import Generation, SessionRegistry
from mcp_web3_stats.server.runner import ServerRunner
from mcp_web3_stats.server.sse import SESSION_ID_HEADER, SSETransport
from mcp_web3_stats.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPTransport
from mcp_web3_stats.settings import DEFAULT_MAX_BODY_BYTES, TransportMode
from mcp_web3_stats.utilities.logging import redact_headers
from mcp_web3_stats.version import VERSION

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, X-API-Key, X-Session-Id, Mcp-Session-Id, MCP-Protocol-Version"
    ),
    "Access-Control-Expose-Headers": "X-Session-Id, Mcp-Session-Id",
}


# --- Route variants ---


@dataclass(frozen=True)
class Preflight:
    pass


@dataclass(frozen=True)
class Health:
    pass


@dataclass(frozen=True)
class ModernPost:
    session_id: str | None


@dataclass(frozen=True)
class ModernGet:
    session_id: str | None


@dataclass(frozen=True)
class ModernDelete:
    session_id: str | None


@dataclass(frozen=True)
class ModernMethodNotAllowed:
    method: str


@dataclass(frozen=True)
class LegacyConnect:
    pass


@dataclass(frozen=True)
class LegacyMessage:
    session_id: str | None


@dataclass(frozen=True)
class NotFound:
    pass


Route = (
    Preflight
    | Health
    | ModernPost
    | ModernGet
    | ModernDelete
    | ModernMethodNotAllowed
    | LegacyConnect
    | LegacyMessage
    | NotFound
)


def resolve_route(method: str, path: str, headers: Headers, *, modern: bool = True, legacy: bool = True) -> Route:
    """Map (method, path, session header) onto exactly one route variant."""
    match method, path:
        case "OPTIONS", _:
            return Preflight()
        case "GET", "/health":
            return Health()
        case "POST", "/mcp" if modern:
            return ModernPost(headers.get(MCP_SESSION_ID_HEADER))
        case "GET", "/mcp" if modern:
            return ModernGet(headers.get(MCP_SESSION_ID_HEADER))
        case "DELETE", "/mcp" if modern:
            return ModernDelete(headers.get(MCP_SESSION_ID_HEADER))
        case _, "/mcp" if modern:
            return ModernMethodNotAllowed(method)
        case "GET", "/sse" if legacy:
            return LegacyConnect()
        case "POST", "/message" if legacy:
            return LegacyMessage(headers.get(SESSION_ID_HEADER))
        case _:
            return NotFound()


class FrontDoor:
    """ASGI app owning the session registry and both transport adapters.

    ``run()`` must be entered (normally from the application lifespan) before
    requests are served; it starts the server lifespan and the task group the
    modern adapter runs handlers in.
    """

    def __init__(
        self,
        runner: ServerRunner,
        *,
        auth: AuthConfig | None = None,
        registry: SessionRegistry | None = None,
        mode: TransportMode = "hybrid",
        json_response: bool = True,
        max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        if mode == "stdio":
            raise ValueError("The HTTP front door cannot serve the stdio transport")
        self.runner = runner
        self.auth = auth or AuthConfig()
        self.registry = registry or SessionRegistry()
        self.mode = mode
        self.json_response = json_response
        self.max_body_bytes = max_body_bytes
        self.started_at = time.monotonic()

        self._modern: StreamableHTTPTransport | None = None
        self._legacy: SSETransport | None = None
        self._run_lock = anyio.Lock()
        self._has_started = False
        self._running = False

    @property
    def modern_enabled(self) -> bool:
        return self.mode in ("http", "hybrid")

    @property
    def legacy_enabled(self) -> bool:
        return self.mode in ("sse-legacy", "hybrid")

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Run the server lifespan and the adapters' task group.

        Can only be entered once per instance.
        """
        if self._has_started:
            raise RuntimeError(
                "FrontDoor .run() can only be called once per instance. Create a new instance if you need to run again."
            )

        async with self._run_lock:
            self._has_started = True
            async with self.runner.run() as running, anyio.create_task_group() as tg:
                if self.modern_enabled:
                    self._modern = StreamableHTTPTransport(
                        running,
                        self.registry,
                        tg,
                        json_response=self.json_response,
                        max_body_bytes=self.max_body_bytes,
                    )
                if self.legacy_enabled:
                    self._legacy = SSETransport(running, self.registry, max_body_bytes=self.max_body_bytes)
                self._running = True
                logger.info("Front door started (%s)", self.mode)
                try:
                    yield
                finally:
                    logger.info("Front door shutting down")
                    self._running = False
                    if self._modern is not None:
                        self._modern.close_all()
                    if self._legacy is not None:
                        self._legacy.close_all()
                    tg.cancel_scope.cancel()

    def health(self) -> dict[str, object]:
        modern = self.registry.count(Generation.MODERN)
        legacy = self.registry.count(Generation.LEGACY)
        return {
            "status": "ok",
            "version": VERSION,
            "modernSessions": modern,
            "legacySessions": legacy,
            "totalSessions": modern + legacy,
            "uptime": round(time.monotonic() - self.started_at, 3),
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        if not self._running:
            raise RuntimeError("Task group is not initialized. Make sure to use run().")

        response_started = False

        async def send_with_cors(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                for name, value in CORS_HEADERS.items():
                    headers[name] = value
            await send(message)

        request = Request(scope, receive)
        try:
            await self._dispatch(request, send_with_cors)
        except Exception:
            logger.exception("Unhandled error for %s %s", request.method, request.url.path)
            if not response_started:
                response = JSONResponse({"error": "Internal server error"}, status_code=500)
                await response(scope, receive, send_with_cors)

    async def _dispatch(self, request: Request, send: Send) -> None:
        route = resolve_route(
            request.method,
            request.url.path,
            request.headers,
            modern=self.modern_enabled,
            legacy=self.legacy_enabled,
        )

        match route:
            case Preflight():
                await Response(status_code=200)(request.scope, request.receive, send)
                return
            case Health():
                await JSONResponse(self.health())(request.scope, request.receive, send)
                return
            case _:
                pass

        if not validate(request, self.auth):
            logger.debug(
                "Rejected unauthenticated %s %s (headers: %s)",
                request.method,
                request.url.path,
                redact_headers(request.headers),
            )
            await send_auth_required(send, self.auth)
            return

        modern, legacy = self._modern, self._legacy
        match route:
            case ModernPost(session_id=session_id) if modern is not None:
                await modern.handle_post(request, send, session_id)
            case ModernGet(session_id=session_id) if modern is not None:
                await modern.handle_get(request, send, session_id)
            case ModernDelete(session_id=session_id) if modern is not None:
                await modern.handle_delete(request, send, session_id)
            case ModernMethodNotAllowed() if modern is not None:
                await modern.method_not_allowed(request, send)
            case LegacyConnect() if legacy is not None:
                await legacy.handle_connect(request, send)
            case LegacyMessage(session_id=session_id) if legacy is not None:
                await legacy.handle_post_message(request, send, session_id)
            case _:
                await JSONResponse({"error": "Not found"}, status_code=404)(request.scope, request.receive, send)


def create_app(front_door: FrontDoor) -> Starlette:
    """Wrap the front door in a Starlette app whose lifespan runs it.

    Usage:
        front_door = FrontDoor(ServerRunner(server), mode="hybrid")
        uvicorn.run(create_app(front_door), host="::", port=3000)
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with front_door.run():
            yield

    return Starlette(routes=[Mount("", app=front_door)], lifespan=lifespan)
