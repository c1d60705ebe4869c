"""Legacy (HTTP+SSE) transport.

The push stream and the request channel are separate endpoints:

- ``GET /sse`` opens the stream and mints the session. The id comes back in
  the ``X-Session-Id`` response header and in the first ``endpoint`` event.
- ``POST /message`` with ``X-Session-Id`` hands one envelope to that session.

The two halves of a legacy call have different contracts. The POST answers
synchronously with ``{"status": "ok", "sessionId": ...}`` as soon as the
message is queued; that only means "accepted for processing". The RPC result
is delivered later, asynchronously, as a ``message`` event on the GET stream.
A failing tool call therefore still gets a 200 on its POST.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

import anyio
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Send

from mcp_web3_stats.server.http_body import BodyTooLargeError, read_request_body
from mcp_web3_stats.server.registry import Generation, Session, SessionRegistry
from mcp_web3_stats.server.runner import RunningServer
from mcp_web3_stats.server.session import SessionInfo
from mcp_web3_stats.server.sink import StreamSink
from mcp_web3_stats.settings import DEFAULT_MAX_BODY_BYTES
from mcp_web3_stats.types import (
    INTERNAL_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCRequest,
    dump_message,
)

logger = logging.getLogger(__name__)

SESSION_ID_HEADER = "x-session-id"
MESSAGE_ENDPOINT = "/message"

# Per-direction queue depth; a full inbound queue makes the POST wait
QUEUE_SIZE = 64


class LegacySession:
    """Transport handle for one legacy SSE connection.

    Inbound messages are drained in order by a single worker; results are
    written to the outbound stream that feeds the SSE response.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.info: SessionInfo | None = None
        self.closed = False
        self._inbound_send, self._inbound_receive = anyio.create_memory_object_stream[JSONRPCMessage](QUEUE_SIZE)
        self._outbound_send, self._outbound_receive = anyio.create_memory_object_stream[JSONRPCMessage](QUEUE_SIZE)

    async def submit(self, message: JSONRPCMessage) -> bool:
        """Queue one inbound message. False if the stream has already gone away."""
        if self.closed:
            return False
        try:
            await self._inbound_send.send(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            return False
        return True

    async def process_messages(self, running: RunningServer) -> None:
        """Worker: handle queued messages one at a time until the session closes."""
        sink = StreamSink(self._outbound_send, session_id=self.session_id)
        async with self._inbound_receive:
            async for message in self._inbound_receive:
                try:
                    info = await running.handle_message(sink, message, session=self.info)
                except Exception:
                    logger.exception("[Legacy] Error handling message in session %s", self.session_id)
                    if isinstance(message, JSONRPCRequest):
                        await sink.send_result(
                            JSONRPCErrorResponse(
                                id=message.id, error=ErrorData(code=INTERNAL_ERROR, message="Internal error")
                            )
                        )
                    continue
                if info is not None:
                    self.info = info

    async def events(self, endpoint: str) -> AsyncIterator[dict[str, str]]:
        yield {"event": "endpoint", "data": f"{endpoint}?sessionId={self.session_id}"}
        async with self._outbound_receive:
            async for message in self._outbound_receive:
                yield {"event": "message", "data": _encode(message)}

    def close(self) -> None:
        self.closed = True
        self._inbound_send.close()
        self._outbound_send.close()


def _encode(message: JSONRPCMessage) -> str:
    return json.dumps(dump_message(message))


class SSETransport:
    """Legacy transport adapter."""

    def __init__(
        self,
        running: RunningServer,
        registry: SessionRegistry,
        *,
        endpoint: str = MESSAGE_ENDPOINT,
        max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._running = running
        self._registry = registry
        self.endpoint = endpoint
        self.max_body_bytes = max_body_bytes

    def _lookup(self, session_id: str | None) -> Session[LegacySession] | None:
        session = self._registry.get(Generation.LEGACY, session_id)
        if session is None or session.handle.closed:
            return None
        return session

    async def handle_connect(self, request: Request, send: Send) -> None:
        """Open the push stream. Returns when the client disconnects or the server closes it."""
        logger.info("[Legacy] New SSE connection request")
        session = self._registry.create(Generation.LEGACY, LegacySession)
        handle = session.handle
        logger.info("[Legacy] SSE connection established: %s", session.id)
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(handle.process_messages, self._running)
                response = EventSourceResponse(handle.events(self.endpoint), headers={"X-Session-Id": session.id})
                await response(request.scope, request.receive, send)
                tg.cancel_scope.cancel()
        finally:
            handle.close()
            self._registry.remove(Generation.LEGACY, session.id)
            logger.info("[Legacy] SSE connection closed: %s", session.id)

    async def handle_post_message(self, request: Request, send: Send, session_id: str | None) -> None:
        response = await self._accept_message(request, session_id)
        await response(request.scope, request.receive, send)

    async def _accept_message(self, request: Request, session_id: str | None) -> Response:
        if self._lookup(session_id) is None:
            return _invalid_session()

        try:
            body = await read_request_body(request, max_body_bytes=self.max_body_bytes)
        except BodyTooLargeError:
            return JSONResponse({"error": "Request body too large"}, status_code=413)

        # The stream may have closed while the body was arriving
        session = self._lookup(session_id)
        if session is None:
            return _invalid_session()

        try:
            message = JSONRPCMessageAdapter.validate_json(body)
        except ValidationError:
            return JSONResponse({"error": "Invalid message"}, status_code=400)

        if not await session.handle.submit(message):
            return _invalid_session()

        return JSONResponse({"status": "ok", "sessionId": session.id})

    def close_all(self) -> None:
        """Close every legacy stream. Their connect handlers finish the cleanup."""
        for session in self._registry.sessions(Generation.LEGACY):
            session.handle.close()


def _invalid_session() -> Response:
    return JSONResponse({"error": "Invalid or missing session ID"}, status_code=400)
