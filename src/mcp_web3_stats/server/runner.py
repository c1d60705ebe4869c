"""ServerRunner and RunningServer.

The runner bridges the LowLevelServer (pure dispatch) with transports. It
enters the lifespan once, answers the initialize handshake and ``ping``, and
dispatches everything else.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from pydantic import ValidationError

from mcp_web3_stats.server.context import RequestContext, ResponseSink
from mcp_web3_stats.server.lowlevel import LowLevelServer
from mcp_web3_stats.server.session import SessionInfo
from mcp_web3_stats.types import (
    INVALID_PARAMS,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    ErrorData,
    InitializeRequestParams,
    InitializeResult,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResultResponse,
    ServerCapabilities,
)

logger = logging.getLogger(__name__)

Lifespan = Callable[[LowLevelServer], AbstractAsyncContextManager[Any]]


@asynccontextmanager
async def _default_lifespan(server: LowLevelServer) -> AsyncIterator[dict[str, Any]]:
    yield {}


class ServerRunner:
    """Manages lifecycle and produces a RunningServer.

    Usage:
        runner = ServerRunner(server, lifespan=my_lifespan)
        async with runner.run() as running:
            await running.handle_message(sink, message, session=...)
    """

    def __init__(self, server: LowLevelServer, *, lifespan: Lifespan | None = None) -> None:
        self.server = server
        self._lifespan = lifespan or _default_lifespan

    @asynccontextmanager
    async def run(self) -> AsyncIterator[RunningServer]:
        """Enter server lifespan once, yield a running server."""
        async with self._lifespan(self.server) as server_state:
            yield RunningServer(self.server, server_state)


def negotiate_protocol_version(requested: str) -> str:
    """Echo the client's version when we speak it, otherwise offer our latest."""
    return requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION


class RunningServer:
    """A server with active lifespan, ready to handle messages.

    The LowLevelServer never sees ``initialize``: the handshake is protocol
    machinery, not application logic.
    """

    def __init__(self, server: LowLevelServer, server_state: Any) -> None:
        self._server = server
        self._server_state = server_state

    async def handle_message(
        self,
        sink: ResponseSink,
        message: JSONRPCMessage,
        *,
        session: SessionInfo | None = None,
    ) -> SessionInfo | None:
        """Dispatch a single message. Returns SessionInfo if this was a successful init handshake.

        Requests are always answered through ``sink``; notifications and
        client responses produce nothing.
        """
        if isinstance(message, JSONRPCRequest):
            if message.method == "initialize":
                return await self._handle_initialize(sink, message)
            if message.method == "ping":
                await sink.send_result(JSONRPCResultResponse(id=message.id, result={}))
                return None

            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id=message.id,
                _sink=sink,
                progress_token=_progress_token(message),
            )
            response = await self._server.dispatch_request(ctx, message)
            await sink.send_result(response)
            return None

        if isinstance(message, JSONRPCNotification):
            if message.method == "notifications/initialized":
                return None
            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id=None,
                _sink=sink,
            )
            await self._server.dispatch_notification(ctx, message)
            return None

        # Client responses only matter for server-initiated requests, which this server never sends.
        logger.debug("Ignoring client response for id %s", message.id)
        return None

    async def _handle_initialize(self, sink: ResponseSink, request: JSONRPCRequest) -> SessionInfo | None:
        try:
            params = InitializeRequestParams.model_validate(request.params or {})
        except ValidationError as exc:
            await sink.send_result(
                JSONRPCErrorResponse(
                    id=request.id,
                    error=ErrorData(code=INVALID_PARAMS, message=f"Invalid initialize params: {exc}"),
                )
            )
            return None

        protocol_version = negotiate_protocol_version(params.protocol_version)
        result = InitializeResult.model_validate(
            {
                "protocolVersion": protocol_version,
                "capabilities": self.capabilities.model_dump(by_alias=True, exclude_none=True),
                "serverInfo": {"name": self._server.name, "version": self._server.version},
                "instructions": self._server.instructions,
            }
        )
        await sink.send_result(
            JSONRPCResultResponse(id=request.id, result=result.model_dump(by_alias=True, exclude_none=True))
        )
        return SessionInfo(
            client_info=params.client_info,
            client_capabilities=params.capabilities,
            protocol_version=protocol_version,
        )

    @property
    def capabilities(self) -> ServerCapabilities:
        return self._server.get_capabilities()

    @property
    def server_state(self) -> Any:
        return self._server_state


def _progress_token(request: JSONRPCRequest) -> str | int | None:
    meta = (request.params or {}).get("_meta")
    if isinstance(meta, dict):
        token = meta.get("progressToken")
        if isinstance(token, str | int):
            return token
    return None
