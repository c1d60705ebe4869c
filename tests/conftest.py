import anyio
import httpx
import pytest
import sse_starlette
from packaging import version

from mcp_web3_stats.app import create_server
from mcp_web3_stats.catalog import Web3StatsMCP
from mcp_web3_stats.settings import Web3StatsSettings
from tests.helpers import TEST_DUNE_KEY, FakeUpstream


@pytest.fixture
def anyio_backend():
    return "asyncio"


SSE_STARLETTE_VERSION = version.parse(sse_starlette.__version__)
NEEDS_RESET = SSE_STARLETTE_VERSION < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Reset sse-starlette's global AppStatus singleton before each test.

    Before sse-starlette 3.0, AppStatus.should_exit_event is a module-level
    event bound to the first event loop that touches it.
    """
    if not NEEDS_RESET:
        yield
        return

    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
    yield
    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings() -> Web3StatsSettings:
    return Web3StatsSettings(DUNE_API_KEY=TEST_DUNE_KEY, _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
async def mcp(settings: Web3StatsSettings, upstream: FakeUpstream, anyio_backend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http:
        yield create_server(settings, http_client=http)


@pytest.fixture
async def running(mcp: Web3StatsMCP):
    async with mcp.runner().run() as running:
        yield running
