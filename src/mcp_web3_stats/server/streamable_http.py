"""Modern (Streamable HTTP) transport on a single endpoint.

POST carries client messages and is answered with JSON or an SSE stream,
GET opens an optional push channel, DELETE terminates the session. The
session id is minted on ``initialize`` and travels in ``Mcp-Session-Id``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Send

from mcp_web3_stats.server.http_body import BodyTooLargeError, read_request_body
from mcp_web3_stats.server.registry import Generation, Session, SessionRegistry
from mcp_web3_stats.server.runner import RunningServer
from mcp_web3_stats.server.session import SessionInfo
from mcp_web3_stats.server.sink import ChannelSink, NoOpSink, SinkEvent
from mcp_web3_stats.settings import DEFAULT_MAX_BODY_BYTES
from mcp_web3_stats.types import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCRequest,
    JSONRPCResponse,
    dump_message,
    error_envelope,
)

logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER = "mcp-session-id"
ALLOWED_METHODS = "GET, POST, DELETE, OPTIONS"

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_SSE = "text/event-stream"

# Server-initiated messages buffered for a push channel before new ones are dropped
PUSH_BUFFER_SIZE = 100


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


class ModernSession:
    """Transport handle for one modern session.

    Messages are processed one at a time in arrival order; ``terminate`` waits
    for the message in flight before closing.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.state = SessionState.UNINITIALIZED
        self.info: SessionInfo | None = None
        self.lock = anyio.Lock()
        self._push_send: MemoryObjectSendStream[JSONRPCMessage] | None = None

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def has_push_channel(self) -> bool:
        return self._push_send is not None

    def activate(self, info: SessionInfo) -> None:
        self.info = info
        self.state = SessionState.ACTIVE

    def attach_push_channel(self) -> MemoryObjectReceiveStream[JSONRPCMessage]:
        send, receive = anyio.create_memory_object_stream[JSONRPCMessage](PUSH_BUFFER_SIZE)
        self._push_send = send
        return receive

    def detach_push_channel(self, receive: MemoryObjectReceiveStream[JSONRPCMessage]) -> None:
        receive.close()
        if self._push_send is not None:
            self._push_send.close()
            self._push_send = None

    def push(self, message: JSONRPCMessage) -> None:
        """Queue a server-initiated message on the GET channel, dropping it if there is none."""
        if self.closed or self._push_send is None:
            logger.debug("No push channel for session %s, dropping message", self.session_id)
            return
        try:
            self._push_send.send_nowait(message)
        except (anyio.WouldBlock, anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Push channel for session %s unavailable, dropping message", self.session_id)

    def close(self) -> None:
        self.state = SessionState.CLOSED
        if self._push_send is not None:
            self._push_send.close()
            self._push_send = None

    async def terminate(self) -> None:
        """Let the in-flight message finish, then close."""
        async with self.lock:
            self.close()


# --- Post result types ---


@dataclass
class AcceptedResponse:
    """Notification or client response. Ack with 202 and no body."""


@dataclass
class JSONResult:
    """Single JSON body."""

    body: JSONRPCResponse


@dataclass
class SSEStream:
    """Handler is streaming. First event already available."""

    first_event: SinkEvent
    event_stream: MemoryObjectReceiveStream[SinkEvent]


PostResult = AcceptedResponse | JSONResult | SSEStream


def _error_response(status_code: int, code: int, message: str, headers: dict[str, str] | None = None) -> Response:
    return JSONResponse(error_envelope(code, message), status_code=status_code, headers=headers)


def _sse_data(message: JSONRPCMessage) -> dict[str, str]:
    return {"event": "message", "data": json.dumps(dump_message(message))}


@dataclass
class _Accept:
    json: bool
    sse: bool

    @classmethod
    def parse(cls, request: Request) -> _Accept:
        header = request.headers.get("accept", "")
        media_types = {part.split(";")[0].strip().lower() for part in header.split(",") if part.strip()}
        wildcard = not media_types or "*/*" in media_types
        return cls(
            json=wildcard or CONTENT_TYPE_JSON in media_types or "application/*" in media_types,
            sse=CONTENT_TYPE_SSE in media_types,
        )


class StreamableHTTPTransport:
    """Modern transport adapter.

    Handler tasks run in the front door's task group so that a POST can be
    upgraded to an SSE stream while the handler is still working.
    """

    def __init__(
        self,
        running: RunningServer,
        registry: SessionRegistry,
        task_group: TaskGroup,
        *,
        json_response: bool = True,
        max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._running = running
        self._registry = registry
        self._tg = task_group
        self.json_response = json_response
        self.max_body_bytes = max_body_bytes

    def _lookup(self, session_id: str | None) -> Session[ModernSession] | None:
        session = self._registry.get(Generation.MODERN, session_id)
        if session is None or session.handle.closed:
            return None
        return session

    # --- POST ---

    async def handle_post(self, request: Request, send: Send, session_id: str | None) -> None:
        response = await self._post_response(request, session_id)
        await response(request.scope, request.receive, send)

    async def _post_response(self, request: Request, session_id: str | None) -> Response:
        try:
            body = await read_request_body(request, max_body_bytes=self.max_body_bytes)
        except BodyTooLargeError:
            return _error_response(413, INVALID_REQUEST, "Request body too large")

        try:
            message = JSONRPCMessageAdapter.validate_json(body)
        except ValidationError as exc:
            if any(error["type"] == "json_invalid" for error in exc.errors()):
                return _error_response(400, PARSE_ERROR, "Parse error")
            return _error_response(400, INVALID_REQUEST, "Invalid Request")

        initializing = isinstance(message, JSONRPCRequest) and message.method == "initialize"
        session = None if initializing else self._lookup(session_id)
        if not initializing and session is None:
            return _error_response(400, INVALID_REQUEST, "Invalid Request: Missing or invalid session ID")

        # Content negotiation only applies once the message itself is acceptable
        accept = _Accept.parse(request)
        if not (accept.json or accept.sse):
            return _error_response(
                406, INVALID_REQUEST, "Not Acceptable: Client must accept application/json or text/event-stream"
            )

        if session is None:
            return await self._initialize(message)  # type: ignore[arg-type]

        stream = accept.sse and not self.json_response
        result = await self.dispatch(session.handle, message, stream=stream)
        return self._render(result, session.id)

    async def _initialize(self, request: JSONRPCRequest) -> Response:
        session = self._registry.create(Generation.MODERN, ModernSession)
        handle = session.handle

        # The handshake runs inline so the session is active before the id is handed out
        send_stream, receive_stream = anyio.create_memory_object_stream[SinkEvent](1)
        try:
            with receive_stream:
                async with handle.lock:
                    info = await self._running.handle_message(ChannelSink(send_stream), request)
                body: JSONRPCResponse = receive_stream.receive_nowait().message  # type: ignore[assignment]
        except BaseException:
            self._registry.remove(Generation.MODERN, session.id)
            handle.close()
            raise

        if info is None:
            # Handshake rejected: nothing was handed out, so nothing stays registered
            self._registry.remove(Generation.MODERN, session.id)
            handle.close()
            return self._render(JSONResult(body=body), None)

        handle.activate(info)
        logger.info("[Modern] Session initialized: %s", session.id)
        return self._render(JSONResult(body=body), session.id)

    async def dispatch(self, handle: ModernSession, message: JSONRPCMessage, *, stream: bool) -> PostResult:
        """Hand one message to the session and decide how its outcome travels back."""
        if not isinstance(message, JSONRPCRequest):
            self._tg.start_soon(self._run_handler, handle, NoOpSink(), message)
            return AcceptedResponse()

        send_stream, receive_stream = anyio.create_memory_object_stream[SinkEvent](16)
        self._tg.start_soon(self._run_handler, handle, ChannelSink(send_stream), message)

        if stream:
            try:
                first = await receive_stream.receive()
            except anyio.EndOfStream:
                receive_stream.close()
                return JSONResult(body=_internal_error(message))
            if first.is_final:
                receive_stream.close()
                return JSONResult(body=first.message)  # type: ignore[arg-type]
            return SSEStream(first_event=first, event_stream=receive_stream)

        # JSON mode: intermediate messages go to the push channel, if any
        async with receive_stream:
            async for event in receive_stream:
                if event.is_final:
                    return JSONResult(body=event.message)  # type: ignore[arg-type]
                handle.push(event.message)
        return JSONResult(body=_internal_error(message))

    async def _run_handler(self, handle: ModernSession, sink: ChannelSink | NoOpSink, message: JSONRPCMessage) -> None:
        async with handle.lock:
            if handle.closed:
                logger.debug("Session %s closed before message could be handled", handle.session_id)
                await sink.close()
                return
            try:
                info = await self._running.handle_message(sink, message, session=handle.info)
            except Exception:
                logger.exception("Handler error in session %s", handle.session_id)
                await sink.close()
                return
            if info is not None:
                handle.activate(info)

    def _render(self, result: PostResult, session_id: str | None) -> Response:
        headers = {MCP_SESSION_ID_HEADER: session_id} if session_id else None
        match result:
            case AcceptedResponse():
                return Response(status_code=202, headers=headers)

            case JSONResult(body=body):
                return JSONResponse(dump_message(body), headers=headers)

            case SSEStream(first_event=first, event_stream=stream):

                async def events() -> AsyncIterator[dict[str, str]]:
                    yield _sse_data(first.message)
                    async with stream:
                        async for event in stream:
                            yield _sse_data(event.message)

                return EventSourceResponse(events(), headers=headers)

        return Response(status_code=500)  # unreachable but satisfies type checker

    # --- GET ---

    async def handle_get(self, request: Request, send: Send, session_id: str | None) -> None:
        session = self._lookup(session_id)
        if session is None:
            response: Response = JSONResponse({"error": "Missing or invalid session ID"}, status_code=400)
            await response(request.scope, request.receive, send)
            return

        if not _Accept.parse(request).sse:
            response = JSONResponse({"error": "Not Acceptable: Client must accept text/event-stream"}, status_code=406)
            await response(request.scope, request.receive, send)
            return

        handle = session.handle
        if handle.has_push_channel:
            response = JSONResponse({"error": "Conflict: Only one SSE stream is allowed per session"}, status_code=409)
            await response(request.scope, request.receive, send)
            return

        receive_stream = handle.attach_push_channel()

        async def events() -> AsyncIterator[dict[str, str]]:
            async for message in receive_stream:
                yield _sse_data(message)

        logger.debug("Push channel opened for session %s", session.id)
        try:
            response = EventSourceResponse(events(), headers={MCP_SESSION_ID_HEADER: session.id})
            await response(request.scope, request.receive, send)
        finally:
            handle.detach_push_channel(receive_stream)
            logger.debug("Push channel closed for session %s", session.id)

    # --- DELETE ---

    async def handle_delete(self, request: Request, send: Send, session_id: str | None) -> None:
        session = self._lookup(session_id)
        if session is None:
            response = JSONResponse({"error": "Session not found"}, status_code=404)
        else:
            await self.terminate(session.id)
            response = Response(status_code=200)
        await response(request.scope, request.receive, send)

    async def terminate(self, session_id: str) -> None:
        session = self._registry.get(Generation.MODERN, session_id)
        if session is None:
            return
        await session.handle.terminate()
        if self._registry.remove(Generation.MODERN, session_id) is not None:
            logger.info("[Modern] Session closed: %s", session_id)

    def close_all(self) -> None:
        """Close every modern session without waiting. Used at shutdown."""
        for session in self._registry.sessions(Generation.MODERN):
            session.handle.close()
            self._registry.remove(Generation.MODERN, session.id)
            logger.info("[Modern] Session closed: %s", session.id)

    async def method_not_allowed(self, request: Request, send: Send) -> None:
        response = JSONResponse({"error": "Method not allowed"}, status_code=405, headers={"Allow": ALLOWED_METHODS})
        await response(request.scope, request.receive, send)


def _internal_error(message: JSONRPCRequest) -> JSONRPCErrorResponse:
    return JSONRPCErrorResponse(id=message.id, error=ErrorData(code=INTERNAL_ERROR, message="Internal error"))
