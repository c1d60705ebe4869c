import io
import json

import anyio
import pytest

from mcp_web3_stats.catalog import Web3StatsMCP
from mcp_web3_stats.server.stdio import Undecodable, _decode_line, serve_stdio
from mcp_web3_stats.types import INVALID_REQUEST, PARSE_ERROR, JSONRPCRequest
from tests.helpers import INITIALIZE_PARAMS

pytestmark = pytest.mark.anyio


def test_decode_line():
    assert isinstance(_decode_line('{"jsonrpc": "2.0", "id": 1, "method": "ping"}'), JSONRPCRequest)

    parse_error = _decode_line("{oops")
    assert isinstance(parse_error, Undecodable)
    assert parse_error.response.error.code == PARSE_ERROR

    invalid = _decode_line('{"jsonrpc": "2.0", "id": 1}')
    assert isinstance(invalid, Undecodable)
    assert invalid.response.error.code == INVALID_REQUEST


async def test_serve_stdio_answers_in_order(mcp: Web3StatsMCP):
    lines = [
        json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": INITIALIZE_PARAMS}),
        json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        "",
        "this is not json",
        json.dumps({"jsonrpc": "2.0", "id": 2, "method": "ping"}),
        json.dumps({"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "ping_dune_server"}}),
    ]
    stdin = anyio.AsyncFile(io.StringIO("\n".join(lines) + "\n"))
    output = io.StringIO()

    with anyio.fail_after(5):
        await serve_stdio(mcp.runner(), stdin, anyio.AsyncFile(output))

    responses = [json.loads(line) for line in output.getvalue().splitlines()]
    assert [response.get("id") for response in responses] == [1, None, 2, 3]
    assert responses[0]["result"]["serverInfo"]["name"] == "mcp-web3-stats"
    assert responses[1] == {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}}
    assert responses[2]["result"] == {}
    assert responses[3]["result"]["content"][0]["text"] == "Pong! Dune MCP server is active."
