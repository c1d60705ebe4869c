"""ResponseSink implementations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from mcp_web3_stats.types import JSONRPCMessage, JSONRPCResponse

logger = logging.getLogger(__name__)


@dataclass
class SinkEvent:
    """An event produced by a ResponseSink for the transport layer to consume."""

    message: JSONRPCMessage
    is_final: bool = False


class ChannelSink:
    """ResponseSink that writes events to a memory channel.

    The modern adapter reads the other end to decide between a JSON body and
    an SSE stream.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[SinkEvent]) -> None:
        self._send = send_stream
        self._closed = False

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        if self._closed:
            return
        try:
            await self._send.send(SinkEvent(message=message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Dropping intermediate message, response already gone")

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Send the final result and close the channel."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._send.send(SinkEvent(message=response, is_final=True))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Dropping result for request %s, response already gone", response.id)
        await self._send.aclose()

    async def close(self) -> None:
        """Close the channel without sending a result (e.g., on handler error)."""
        if self._closed:
            return
        self._closed = True
        with anyio.CancelScope(shield=True):
            await self._send.aclose()


class StreamSink:
    """ResponseSink that writes every message onto a session's outbound stream.

    Used where results travel over a long-lived channel rather than the
    request's own response: the legacy SSE stream and stdio. A closed stream
    means the client went away; writes are then logged and dropped.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[JSONRPCMessage], *, session_id: str | None = None) -> None:
        self._send = send_stream
        self._session_id = session_id

    async def _write(self, message: JSONRPCMessage) -> None:
        try:
            await self._send.send(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Session %s is closed, dropping outbound message", self._session_id)

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        await self._write(message)

    async def send_result(self, response: JSONRPCResponse) -> None:
        await self._write(response)

    async def close(self) -> None:
        # The stream belongs to the session, not to one request
        pass


class NoOpSink:
    """A sink that does nothing. Used for notifications which don't produce responses."""

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        pass

    async def send_result(self, response: JSONRPCResponse) -> None:
        pass

    async def close(self) -> None:
        pass
