"""Tests for the HTTP front door and the modern /mcp transport."""

import json
import uuid

import anyio
import httpx
import pytest
from starlette.datastructures import Headers

from mcp_web3_stats.catalog import Web3StatsMCP
from mcp_web3_stats.server.auth import AuthConfig
from mcp_web3_stats.server.front_door import (
    FrontDoor,
    Health,
    LegacyConnect,
    LegacyMessage,
    ModernDelete,
    ModernGet,
    ModernMethodNotAllowed,
    ModernPost,
    NotFound,
    Preflight,
    resolve_route,
)
from mcp_web3_stats.server.registry import Generation
from mcp_web3_stats.types import INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR
from tests.helpers import INITIALIZE_PARAMS, EventStream

pytestmark = pytest.mark.anyio

ACCEPT_BOTH = {"Accept": "application/json, text/event-stream"}
INITIALIZE = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": INITIALIZE_PARAMS}


def _headers(**values: str) -> Headers:
    return Headers({name.replace("_", "-"): value for name, value in values.items()})


@pytest.mark.parametrize(
    ("method", "path", "expected"),
    [
        ("OPTIONS", "/anything", Preflight()),
        ("GET", "/health", Health()),
        ("POST", "/mcp", ModernPost("abc")),
        ("GET", "/mcp", ModernGet("abc")),
        ("DELETE", "/mcp", ModernDelete("abc")),
        ("PUT", "/mcp", ModernMethodNotAllowed("PUT")),
        ("GET", "/sse", LegacyConnect()),
        ("POST", "/message", LegacyMessage("legacy-id")),
        ("GET", "/message", NotFound()),
        ("POST", "/elsewhere", NotFound()),
    ],
)
def test_resolve_route(method: str, path: str, expected: object):
    headers = _headers(mcp_session_id="abc", x_session_id="legacy-id")

    assert resolve_route(method, path, headers) == expected


def test_resolve_route_respects_disabled_generations():
    headers = _headers()

    assert resolve_route("POST", "/mcp", headers, modern=False) == NotFound()
    assert resolve_route("GET", "/sse", headers, legacy=False) == NotFound()
    assert resolve_route("GET", "/health", headers, modern=False, legacy=False) == Health()


def test_front_door_refuses_stdio(mcp: Web3StatsMCP):
    with pytest.raises(ValueError):
        FrontDoor(mcp.runner(), mode="stdio")


async def test_front_door_runs_once(mcp: Web3StatsMCP):
    front_door = FrontDoor(mcp.runner())
    async with front_door.run():
        pass

    with pytest.raises(RuntimeError):
        async with front_door.run():
            pass


async def test_requests_before_run_are_refused(mcp: Web3StatsMCP):
    front_door = FrontDoor(mcp.runner())
    transport = httpx.ASGITransport(app=front_door)

    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        with pytest.raises(RuntimeError, match="run\\(\\)"):
            await client.get("/health")


async def test_app_lifespan_starts_the_front_door(mcp: Web3StatsMCP):
    app = mcp.http_app("http")

    async with app.router.lifespan_context(app):
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
            response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.fixture
async def front_door(mcp: Web3StatsMCP):
    front_door = FrontDoor(mcp.runner(), mode="hybrid", max_body_bytes=1024)
    async with front_door.run():
        yield front_door


@pytest.fixture
async def client(front_door: FrontDoor):
    transport = httpx.ASGITransport(app=front_door)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def initialize(client: httpx.AsyncClient) -> str:
    response = await client.post("/mcp", headers=ACCEPT_BOTH, json=INITIALIZE)
    assert response.status_code == 200
    return response.headers["mcp-session-id"]


async def test_health_reports_sessions(client: httpx.AsyncClient):
    await initialize(client)

    response = await client.get("/health")

    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "2.0.0"
    assert body["modernSessions"] == 1
    assert body["legacySessions"] == 0
    assert body["totalSessions"] == 1
    assert body["uptime"] >= 0


async def test_preflight_carries_cors_headers(client: httpx.AsyncClient):
    response = await client.options("/mcp")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "Mcp-Session-Id" in response.headers["access-control-allow-headers"]
    assert response.headers["access-control-expose-headers"] == "X-Session-Id, Mcp-Session-Id"


async def test_unknown_path(client: httpx.AsyncClient):
    response = await client.get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}
    assert response.headers["access-control-allow-origin"] == "*"


async def test_initialize_mints_session(client: httpx.AsyncClient, front_door: FrontDoor):
    response = await client.post("/mcp", headers=ACCEPT_BOTH, json=INITIALIZE)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    session_id = response.headers["mcp-session-id"]
    assert front_door.registry.get(Generation.MODERN, session_id) is not None
    assert response.json()["result"]["serverInfo"]["name"] == "mcp-web3-stats"


async def test_rejected_initialize_leaves_no_session(client: httpx.AsyncClient, front_door: FrontDoor):
    response = await client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})

    assert response.status_code == 200
    assert "mcp-session-id" not in response.headers
    assert response.json()["error"]["code"] == -32602
    assert front_door.registry.count(Generation.MODERN) == 0


async def test_call_within_session(client: httpx.AsyncClient):
    session_id = await initialize(client)

    response = await client.post(
        "/mcp",
        headers={**ACCEPT_BOTH, "Mcp-Session-Id": session_id},
        json={"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "ping_dune_server"}},
    )

    assert response.status_code == 200
    assert response.headers["mcp-session-id"] == session_id
    assert response.json() == {
        "jsonrpc": "2.0",
        "id": 2,
        "result": {"content": [{"type": "text", "text": "Pong! Dune MCP server is active."}], "isError": False},
    }


async def test_notification_is_accepted(client: httpx.AsyncClient):
    session_id = await initialize(client)

    response = await client.post(
        "/mcp",
        headers={"Mcp-Session-Id": session_id},
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
    )

    assert response.status_code == 202
    assert response.content == b""


@pytest.mark.parametrize("session_id", [None, "not-a-session"])
async def test_request_without_valid_session(client: httpx.AsyncClient, session_id: str | None):
    headers = {"Mcp-Session-Id": session_id} if session_id else {}

    response = await client.post("/mcp", headers=headers, json={"jsonrpc": "2.0", "id": 3, "method": "ping"})

    assert response.status_code == 400
    assert response.json() == {
        "jsonrpc": "2.0",
        "error": {"code": INVALID_REQUEST, "message": "Invalid Request: Missing or invalid session ID"},
        "id": None,
    }


async def test_parse_error(client: httpx.AsyncClient):
    response = await client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == PARSE_ERROR


async def test_invalid_envelope(client: httpx.AsyncClient):
    response = await client.post("/mcp", json={"hello": "world"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == INVALID_REQUEST


async def test_batches_are_rejected(client: httpx.AsyncClient):
    response = await client.post("/mcp", json=[{"jsonrpc": "2.0", "id": 1, "method": "ping"}])

    assert response.status_code == 400
    assert response.json()["error"]["code"] == INVALID_REQUEST


async def test_not_acceptable(client: httpx.AsyncClient, front_door: FrontDoor):
    session_id = await initialize(client)

    rejected_init = await client.post("/mcp", headers={"Accept": "text/html"}, json=INITIALIZE)
    response = await client.post(
        "/mcp",
        headers={"Accept": "text/html", "Mcp-Session-Id": session_id},
        json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
    )

    assert rejected_init.status_code == 406
    assert response.status_code == 406
    assert front_door.registry.count(Generation.MODERN) == 1


async def test_protocol_errors_take_precedence_over_accept(client: httpx.AsyncClient):
    html = {"Accept": "text/html"}

    bad_json = await client.post("/mcp", content=b"{bad", headers=html)
    no_session = await client.post("/mcp", headers=html, json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

    assert bad_json.status_code == 400
    assert bad_json.json()["error"]["code"] == PARSE_ERROR
    assert no_session.status_code == 400
    assert no_session.json()["error"]["message"] == "Invalid Request: Missing or invalid session ID"


async def test_unknown_method_echoes_request_id(client: httpx.AsyncClient):
    session_id = await initialize(client)

    response = await client.post(
        "/mcp",
        headers={**ACCEPT_BOTH, "Mcp-Session-Id": session_id},
        json={"jsonrpc": "2.0", "id": 77, "method": "bogus/x"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 77
    assert body["error"]["code"] == METHOD_NOT_FOUND


async def test_body_too_large(client: httpx.AsyncClient):
    response = await client.post("/mcp", content=b"x" * 2048, headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert response.json()["error"]["message"] == "Request body too large"


async def test_delete_terminates_session(client: httpx.AsyncClient, front_door: FrontDoor):
    session_id = await initialize(client)

    first = await client.delete("/mcp", headers={"Mcp-Session-Id": session_id})
    second = await client.delete("/mcp", headers={"Mcp-Session-Id": session_id})
    after = await client.post(
        "/mcp", headers={"Mcp-Session-Id": session_id}, json={"jsonrpc": "2.0", "id": 4, "method": "ping"}
    )

    assert first.status_code == 200
    assert second.status_code == 404
    assert after.status_code == 400
    assert front_door.registry.count(Generation.MODERN) == 0


async def test_delete_unknown_session(client: httpx.AsyncClient, front_door: FrontDoor):
    await initialize(client)

    response = await client.delete("/mcp", headers={"Mcp-Session-Id": str(uuid.uuid4())})

    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}
    assert front_door.registry.count(Generation.MODERN) == 1


async def test_get_requires_event_stream(client: httpx.AsyncClient):
    session_id = await initialize(client)

    response = await client.get("/mcp", headers={"Accept": "application/json", "Mcp-Session-Id": session_id})

    assert response.status_code == 406


@pytest.mark.parametrize("headers", [{}, {"Accept": "text/event-stream"}, {"Mcp-Session-Id": "not-a-session"}])
async def test_get_requires_session(client: httpx.AsyncClient, headers: dict[str, str]):
    response = await client.get("/mcp", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid session ID"}


async def test_push_channel_lifecycle(client: httpx.AsyncClient, front_door: FrontDoor):
    session_id = await initialize(client)
    session_headers = {"Mcp-Session-Id": session_id}
    stream = EventStream(front_door, "/mcp", session_headers)

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(stream.serve)
            start = await stream.started()
            assert start["status"] == 200
            assert stream.header("Mcp-Session-Id") == session_id

            second = await client.get("/mcp", headers={**session_headers, "Accept": "text/event-stream"})
            assert second.status_code == 409

            # In JSON mode, progress travels on the push channel while the result comes back inline
            response = await client.post(
                "/mcp",
                headers={**ACCEPT_BOTH, **session_headers},
                json={
                    "jsonrpc": "2.0",
                    "id": 8,
                    "method": "tools/call",
                    "params": {
                        "name": "investigate_smart_contract",
                        "arguments": {"contractAddress": "0xc0ffee", "chainId": "1"},
                        "_meta": {"progressToken": "push"},
                    },
                },
            )
            assert response.json()["id"] == 8

            pushed = [json.loads((await stream.next_event())["data"]) for _ in range(3)]
            assert {message["method"] for message in pushed} == {"notifications/progress"}
            assert sorted(message["params"]["progress"] for message in pushed) == [1, 2, 3]

            deleted = await client.delete("/mcp", headers=session_headers)
            assert deleted.status_code == 200
            await stream.drain()

    assert front_door.registry.count(Generation.MODERN) == 0


async def test_health_counts_both_generations(client: httpx.AsyncClient, front_door: FrontDoor):
    await initialize(client)
    await initialize(client)
    stream = EventStream(front_door, "/sse")

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(stream.serve)
            await stream.started()

            first = (await client.get("/health")).json()
            second = (await client.get("/health")).json()

            stream.disconnected.set()

    for body in (first, second):
        assert (body["modernSessions"], body["legacySessions"], body["totalSessions"]) == (2, 1, 3)


async def test_other_methods_not_allowed(client: httpx.AsyncClient):
    response = await client.put("/mcp", content=b"")

    assert response.status_code == 405
    assert response.headers["allow"] == "GET, POST, DELETE, OPTIONS"


async def test_legacy_message_requires_session(client: httpx.AsyncClient):
    response = await client.post("/message", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or missing session ID"}


@pytest.mark.parametrize(
    ("mode", "path", "method"),
    [
        ("http", "/sse", "GET"),
        ("http", "/message", "POST"),
        ("sse-legacy", "/mcp", "POST"),
        ("sse-legacy", "/mcp", "DELETE"),
    ],
)
async def test_disabled_generation_is_not_found(mcp: Web3StatsMCP, mode: str, path: str, method: str):
    front_door = FrontDoor(mcp.runner(), mode=mode)  # type: ignore[arg-type]

    async with front_door.run():
        transport = httpx.ASGITransport(app=front_door)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.request(method, path)

    assert response.status_code == 404


class TestAuth:
    @pytest.fixture
    async def client(self, mcp: Web3StatsMCP):
        auth = AuthConfig(enabled=True, api_keys=frozenset({"secret-key"}))
        front_door = FrontDoor(mcp.runner(), auth=auth)
        async with front_door.run():
            transport = httpx.ASGITransport(app=front_door)
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
                yield client

    async def test_health_skips_auth(self, client: httpx.AsyncClient):
        assert (await client.get("/health")).status_code == 200

    async def test_preflight_skips_auth(self, client: httpx.AsyncClient):
        assert (await client.options("/mcp")).status_code == 200

    async def test_missing_credentials(self, client: httpx.AsyncClient):
        response = await client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == 'Bearer realm="MCP Server"'
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.json()["error"]["code"] == -32000

    async def test_unknown_paths_are_hidden_behind_auth(self, client: httpx.AsyncClient):
        assert (await client.get("/nowhere")).status_code == 401

    async def test_api_key_header(self, client: httpx.AsyncClient):
        response = await client.post(
            "/mcp",
            headers={**ACCEPT_BOTH, "X-API-Key": "secret-key"},
            json=INITIALIZE,
        )

        assert response.status_code == 200
        assert "mcp-session-id" in response.headers


async def test_progress_upgrades_response_to_sse(mcp: Web3StatsMCP):
    front_door = FrontDoor(mcp.runner(), json_response=False)

    async with front_door.run():
        transport = httpx.ASGITransport(app=front_door)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            session_id = await initialize(client)
            response = await client.post(
                "/mcp",
                headers={**ACCEPT_BOTH, "Mcp-Session-Id": session_id},
                json={
                    "jsonrpc": "2.0",
                    "id": 5,
                    "method": "tools/call",
                    "params": {
                        "name": "investigate_smart_contract",
                        "arguments": {"contractAddress": "0xc0ffee", "chainId": "1"},
                        "_meta": {"progressToken": "tok"},
                    },
                },
            )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    messages = [json.loads(line[len("data: ") :]) for line in response.text.splitlines() if line.startswith("data: ")]
    progress, final = messages[:-1], messages[-1]
    assert sorted(message["params"]["progress"] for message in progress) == [1, 2, 3]
    assert all(message["method"] == "notifications/progress" for message in progress)
    assert all(message["params"]["progressToken"] == "tok" for message in progress)
    assert final["id"] == 5
    assert final["result"]["isError"] is False


async def test_json_mode_drops_progress_without_push_channel(client: httpx.AsyncClient):
    session_id = await initialize(client)

    response = await client.post(
        "/mcp",
        headers={**ACCEPT_BOTH, "Mcp-Session-Id": session_id},
        json={
            "jsonrpc": "2.0",
            "id": 6,
            "method": "tools/call",
            "params": {
                "name": "investigate_smart_contract",
                "arguments": {"contractAddress": "0xc0ffee", "chainId": "1"},
                "_meta": {"progressToken": "tok"},
            },
        },
    )

    assert response.headers["content-type"] == "application/json"
    assert response.json()["id"] == 6
