"""Shared test helpers: a fake upstream and a one-shot JSON-RPC call."""

import json
from typing import Any

import anyio
import httpx

from mcp_web3_stats.server.runner import RunningServer
from mcp_web3_stats.server.sink import ChannelSink, SinkEvent
from mcp_web3_stats.types import JSONRPCMessage, JSONRPCRequest

TEST_DUNE_KEY = "test-dune-key"

INITIALIZE_PARAMS = {
    "protocolVersion": "2025-03-26",
    "capabilities": {},
    "clientInfo": {"name": "test-client", "version": "1.0.0"},
}


class FakeUpstream:
    """Routes upstream calls by URL path to canned JSON bodies and records every request.

    A route is keyed either by ``host + path`` or by path alone; unknown
    routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: Any = None, *, status_code: int = 200) -> None:
        self.routes[path] = (status_code, body)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.url.host}{request.url.path}"
        for candidate in (key, request.url.path):
            if candidate in self.routes:
                status_code, body = self.routes[candidate]
                if isinstance(body, str):
                    return httpx.Response(status_code, text=body)
                return httpx.Response(status_code, json=body)
        return httpx.Response(404, text=f"no route for {key}")


async def rpc(running: RunningServer, method: str, params: dict[str, Any] | None = None, id: int | str = 1) -> Any:
    """Send one request through the running server and return the wire form of its answer."""
    send, receive = anyio.create_memory_object_stream[SinkEvent](16)
    with receive:
        await running.handle_message(ChannelSink(send), JSONRPCRequest(id=id, method=method, params=params))
        events = [event async for event in receive]
    final: JSONRPCMessage = events[-1].message
    return json.loads(final.model_dump_json(by_alias=True, exclude_none=True))


async def call_tool(running: RunningServer, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
    """Call a tool and return its ``result`` (``content`` and ``isError``)."""
    response = await rpc(running, "tools/call", {"name": name, "arguments": arguments or {}})
    return response["result"]


def tool_json(result: dict[str, Any]) -> Any:
    """Decode the JSON text of a successful tool result."""
    assert not result.get("isError"), result
    return json.loads(result["content"][0]["text"])


def stream_scope(path: str, headers: dict[str, str]) -> dict[str, Any]:
    raw_headers = [(b"host", b"testserver")]
    raw_headers += [(name.lower().encode(), value.encode()) for name, value in headers.items()]
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


def parse_event(chunk: bytes) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in chunk.decode().splitlines():
        name, _, value = line.partition(": ")
        if name in ("event", "data"):
            fields[name] = value
    return fields


class EventStream:
    """One long-lived GET against an ASGI app, driven through the raw interface.

    httpx's ASGI transport buffers whole responses, so streams that stay open
    are read here one ASGI message at a time. Start ``serve`` in a task group,
    then await ``started()``; set ``disconnected`` to hang up.
    """

    def __init__(self, app: Any, path: str, headers: dict[str, str] | None = None) -> None:
        self.app = app
        self.scope = stream_scope(path, {"Accept": "text/event-stream", **(headers or {})})
        self.disconnected = anyio.Event()
        self._send, self.messages = anyio.create_memory_object_stream[dict[str, Any]](100)
        self.start: dict[str, Any] = {}

    async def receive(self) -> dict[str, Any]:
        await self.disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        await self._send.send(message)

    async def serve(self) -> None:
        async with self._send:
            await self.app(self.scope, self.receive, self.send)

    async def started(self) -> dict[str, Any]:
        self.start = await self.messages.receive()
        return self.start

    def header(self, name: str) -> str:
        return dict(self.start["headers"])[name.lower().encode()].decode()

    async def next_event(self) -> dict[str, str]:
        """Skip keep-alive comments and return the next named event."""
        while True:
            message = await self.messages.receive()
            event = parse_event(message.get("body", b""))
            if "event" in event:
                return event

    async def drain(self) -> None:
        """Wait for the server to end the stream."""
        async for _ in self.messages:
            pass
