"""Stdio transport: newline-delimited JSON-RPC on stdin/stdout.

One process, one client, one session. Messages are handled strictly in the
order they are read.

Example:
    ```python
    async def main():
        await serve_stdio(ServerRunner(server))

    anyio.run(main)
    ```
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from io import TextIOWrapper
from typing import BinaryIO

import anyio
import anyio.lowlevel
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import ValidationError

from mcp_web3_stats.server.runner import ServerRunner
from mcp_web3_stats.server.session import SessionInfo
from mcp_web3_stats.server.sink import StreamSink
from mcp_web3_stats.types import (
    INVALID_REQUEST,
    PARSE_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    dump_message,
)

logger = logging.getLogger(__name__)


class _NonClosingTextIOWrapper(TextIOWrapper):
    """Text wrapper that never closes the underlying binary stream."""

    def close(self) -> None:
        if self.closed:
            return
        if self.writable():
            self.flush()


def _wrap_process_stdio(binary_stream: BinaryIO) -> anyio.AsyncFile[str]:
    return anyio.wrap_file(_NonClosingTextIOWrapper(binary_stream, encoding="utf-8"))


@dataclass
class Undecodable:
    """A line that could not be decoded, with the error envelope that answers it."""

    response: JSONRPCErrorResponse


def _decode_line(line: str) -> JSONRPCMessage | Undecodable:
    try:
        return JSONRPCMessageAdapter.validate_json(line)
    except ValidationError as exc:
        if any(error["type"] == "json_invalid" for error in exc.errors()):
            return Undecodable(JSONRPCErrorResponse(error=ErrorData(code=PARSE_ERROR, message="Parse error")))
        return Undecodable(JSONRPCErrorResponse(error=ErrorData(code=INVALID_REQUEST, message="Invalid Request")))


@asynccontextmanager
async def stdio_streams(stdin: anyio.AsyncFile[str] | None = None, stdout: anyio.AsyncFile[str] | None = None):
    """Yield (read_stream, write_stream) bridged to the process' stdin and stdout.

    Lines that fail to decode arrive on the read stream as ``Undecodable``.
    """
    if not stdin:
        stdin = _wrap_process_stdio(sys.stdin.buffer)
    if not stdout:
        stdout = _wrap_process_stdio(sys.stdout.buffer)

    read_stream_writer: MemoryObjectSendStream[JSONRPCMessage | Undecodable]
    read_stream: MemoryObjectReceiveStream[JSONRPCMessage | Undecodable]
    write_stream: MemoryObjectSendStream[JSONRPCMessage]
    write_stream_reader: MemoryObjectReceiveStream[JSONRPCMessage]

    read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
    write_stream, write_stream_reader = anyio.create_memory_object_stream(0)

    async def stdin_reader():
        try:
            async with read_stream_writer:
                async for line in stdin:
                    if not line.strip():
                        continue
                    await read_stream_writer.send(_decode_line(line))
        except anyio.ClosedResourceError:
            await anyio.lowlevel.checkpoint()

    async def stdout_writer():
        try:
            async with write_stream_reader:
                async for message in write_stream_reader:
                    await stdout.write(json.dumps(dump_message(message)) + "\n")
                    await stdout.flush()
        except anyio.ClosedResourceError:
            await anyio.lowlevel.checkpoint()

    async with anyio.create_task_group() as tg:
        tg.start_soon(stdin_reader)
        tg.start_soon(stdout_writer)
        yield read_stream, write_stream


async def serve_stdio(
    runner: ServerRunner,
    stdin: anyio.AsyncFile[str] | None = None,
    stdout: anyio.AsyncFile[str] | None = None,
) -> None:
    """Serve one client over stdio until stdin reaches EOF."""
    async with runner.run() as running, stdio_streams(stdin, stdout) as (read_stream, write_stream):
        sink = StreamSink(write_stream, session_id="stdio")
        session: SessionInfo | None = None
        async with read_stream, write_stream:
            async for message in read_stream:
                if isinstance(message, Undecodable):
                    await write_stream.send(message.response)
                    continue
                try:
                    info = await running.handle_message(sink, message, session=session)
                except Exception:
                    logger.exception("Error handling stdio message")
                    continue
                if info is not None:
                    session = info
                    logger.info("stdio session initialized for %s", info.client_info.name)
