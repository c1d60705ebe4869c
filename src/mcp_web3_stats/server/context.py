"""RequestContext and the ResponseSink protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from mcp_web3_stats.server.session import SessionInfo
from mcp_web3_stats.types import JSONRPCMessage, JSONRPCNotification, JSONRPCResponse, RequestId


@runtime_checkable
class ResponseSink(Protocol):
    """Where a request's outgoing messages go.

    One per incoming request. ChannelSink feeds the HTTP adapters, StreamSink
    writes straight onto a session's outbound stream (legacy SSE, stdio).
    """

    async def send_intermediate(self, message: JSONRPCMessage) -> None: ...

    async def send_result(self, response: JSONRPCResponse) -> None: ...

    async def close(self) -> None: ...


@dataclass
class RequestContext:
    """What handlers receive."""

    server_state: Any
    session: SessionInfo | None
    request_id: RequestId | None
    _sink: ResponseSink
    progress_token: str | int | None = None

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification to the client while the request is being processed."""
        await self._sink.send_intermediate(JSONRPCNotification(method=method, params=params))

    async def report_progress(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        """Send ``notifications/progress`` if the client asked for it with a progress token."""
        if self.progress_token is None:
            return
        params: dict[str, Any] = {"progressToken": self.progress_token, "progress": progress}
        if total is not None:
            params["total"] = total
        if message is not None:
            params["message"] = message
        await self.send_notification("notifications/progress", params)
