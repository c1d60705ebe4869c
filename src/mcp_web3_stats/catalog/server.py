"""Web3StatsMCP - a decorator-driven facade over the low-level server."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
import pydantic_core
import uvicorn
from starlette.applications import Starlette

from mcp_web3_stats.catalog.prompts import Message, Prompt, PromptManager
from mcp_web3_stats.catalog.resources import Resource, ResourceManager
from mcp_web3_stats.catalog.tools import ToolManager
from mcp_web3_stats.exceptions import ConfigurationError, ToolError
from mcp_web3_stats.server.auth import AuthConfig
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.server.front_door import FrontDoor, create_app
from mcp_web3_stats.server.lowlevel import LowLevelServer
from mcp_web3_stats.server.runner import ServerRunner
from mcp_web3_stats.server.stdio import serve_stdio
from mcp_web3_stats.settings import TransportMode, Web3StatsSettings
from mcp_web3_stats.types import (
    CallToolRequestParams,
    CallToolResult,
    GetPromptRequestParams,
    GetPromptResult,
    JSONRPCRequest,
    ListPromptsResult,
    ListResourcesResult,
    ListToolsResult,
    ReadResourceRequestParams,
    ReadResourceResult,
    TextContent,
    ToolAnnotations,
)
from mcp_web3_stats.upstream import BlockscoutClient, DuneClient, create_http_client
from mcp_web3_stats.version import SERVER_NAME, VERSION

logger = logging.getLogger(__name__)

AnyFunction = TypeVar("AnyFunction", bound=Callable[..., Any])


@dataclass
class Web3StatsState:
    """What the lifespan yields; reachable from handlers as ``ctx.server_state``."""

    dune: DuneClient
    blockscout: BlockscoutClient


def _convert_to_content(result: Any) -> list[TextContent]:
    if isinstance(result, str):
        return [TextContent(text=result)]
    return [TextContent(text=pydantic_core.to_json(result, fallback=str, indent=2).decode())]


class Web3StatsMCP:
    """Tools, resources and prompts over the low-level server.

    Usage:
        mcp = Web3StatsMCP(settings=Web3StatsSettings())

        @mcp.tool()
        async def ping_dune_server() -> str:
            return "Pong! Dune MCP server is active."

        anyio.run(mcp.run_stdio_async)
    """

    def __init__(
        self,
        name: str = SERVER_NAME,
        instructions: str | None = None,
        *,
        settings: Web3StatsSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or Web3StatsSettings()
        # An injected client belongs to the caller and is never closed here
        self._http_client = http_client
        self._tool_manager = ToolManager()
        self._resource_manager = ResourceManager()
        self._prompt_manager = PromptManager()
        self._lowlevel_server = LowLevelServer(name=name, version=VERSION, instructions=instructions)
        self._setup_handlers()

    @property
    def name(self) -> str:
        return self._lowlevel_server.name

    # --- Lifespan and transports ---

    @asynccontextmanager
    async def lifespan(self, server: LowLevelServer) -> AsyncIterator[Web3StatsState]:
        """Build the upstream clients around one shared HTTP client."""
        api_key = self.settings.dune_api_key
        if api_key is None or not api_key.get_secret_value():
            raise ConfigurationError("DUNE_API_KEY is not set in the environment variables.")

        async with AsyncExitStack() as stack:
            http = self._http_client
            if http is None:
                http = await stack.enter_async_context(create_http_client(self.settings.upstream_timeout))
            logger.debug("Upstream clients ready for %s", server.name)
            yield Web3StatsState(
                dune=DuneClient(api_key.get_secret_value(), http=http, base_url=self.settings.dune_base_url),
                blockscout=BlockscoutClient(http=http),
            )

    def runner(self) -> ServerRunner:
        return ServerRunner(self._lowlevel_server, lifespan=self.lifespan)

    def http_app(self, mode: TransportMode = "hybrid", auth: AuthConfig | None = None) -> Starlette:
        """Return a Starlette app serving ``mode`` through the front door."""
        front_door = FrontDoor(
            self.runner(),
            auth=auth,
            mode=mode,
            json_response=self.settings.json_response,
            max_body_bytes=self.settings.max_body_bytes,
        )
        return create_app(front_door)

    async def run_stdio_async(self) -> None:
        """Run the server using stdio transport."""
        await serve_stdio(self.runner())

    async def run_http_async(self, mode: TransportMode = "hybrid", auth: AuthConfig | None = None) -> None:
        """Run the server under uvicorn in one of the HTTP modes."""
        config = uvicorn.Config(
            self.http_app(mode, auth),
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
            log_config=None,
        )
        server = uvicorn.Server(config)
        await server.serve()

    # --- Registration ---

    def add_tool(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        annotations: ToolAnnotations | None = None,
    ) -> None:
        """Add a tool to the server.

        The function's docstring is the default description. A parameter
        annotated with ``RequestContext`` receives the per-request context.
        """
        self._tool_manager.add_tool(fn, name=name, description=description, annotations=annotations)

    def tool(
        self,
        name: str | None = None,
        description: str | None = None,
        annotations: ToolAnnotations | None = None,
    ) -> Callable[[AnyFunction], AnyFunction]:
        """Decorator to register a tool."""
        if callable(name):
            raise TypeError(
                "The @tool decorator was used incorrectly. Did you forget to call it? Use @tool() instead of @tool"
            )

        def decorator(fn: AnyFunction) -> AnyFunction:
            self.add_tool(fn, name=name, description=description, annotations=annotations)
            return fn

        return decorator

    def add_resource(
        self,
        fn: Callable[..., Any],
        uri: str,
        *,
        name: str,
        description: str | None = None,
        mime_type: str = "application/json",
    ) -> None:
        resource = Resource.from_function(fn, uri=uri, name=name, description=description, mime_type=mime_type)
        self._resource_manager.add_resource(resource)

    def resource(
        self, uri: str, *, name: str, description: str | None = None, mime_type: str = "application/json"
    ) -> Callable[[AnyFunction], AnyFunction]:
        """Decorator to register a resource under a fixed URI."""

        def decorator(fn: AnyFunction) -> AnyFunction:
            self.add_resource(fn, uri, name=name, description=description, mime_type=mime_type)
            return fn

        return decorator

    def add_prompt(
        self, fn: Callable[..., Sequence[Message]], name: str | None = None, description: str | None = None
    ) -> None:
        self._prompt_manager.add_prompt(Prompt.from_function(fn, name=name, description=description))

    def prompt(self, name: str | None = None, description: str | None = None) -> Callable[[AnyFunction], AnyFunction]:
        """Decorator to register a prompt."""
        if callable(name):
            raise TypeError(
                "The @prompt decorator was used incorrectly. "
                "Did you forget to call it? Use @prompt() instead of @prompt"
            )

        def decorator(fn: AnyFunction) -> AnyFunction:
            self.add_prompt(fn, name=name, description=description)
            return fn

        return decorator

    # --- Protocol handlers ---

    def _setup_handlers(self) -> None:
        """Set up core MCP protocol handlers."""
        server = self._lowlevel_server
        server.request_handler("tools/list")(self._list_tools)
        server.request_handler("tools/call")(self._call_tool)
        server.request_handler("resources/list")(self._list_resources)
        server.request_handler("resources/read")(self._read_resource)
        server.request_handler("prompts/list")(self._list_prompts)
        server.request_handler("prompts/get")(self._get_prompt)

    async def _list_tools(self, ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
        return ListToolsResult(tools=[tool.to_definition() for tool in self._tool_manager.list_tools()])

    async def _call_tool(self, ctx: RequestContext, request: JSONRPCRequest) -> CallToolResult:
        params = CallToolRequestParams.model_validate(request.params or {})
        try:
            result = await self._tool_manager.call_tool(params.name, params.arguments or {}, ctx)
        except ToolError as e:
            return CallToolResult(content=[TextContent(text=str(e))], is_error=True)
        return CallToolResult(content=_convert_to_content(result))

    async def _list_resources(self, ctx: RequestContext, request: JSONRPCRequest) -> ListResourcesResult:
        return ListResourcesResult(
            resources=[resource.to_definition() for resource in self._resource_manager.list_resources()]
        )

    async def _read_resource(self, ctx: RequestContext, request: JSONRPCRequest) -> ReadResourceResult:
        params = ReadResourceRequestParams.model_validate(request.params or {})
        resource = self._resource_manager.get_resource(params.uri)
        return ReadResourceResult(contents=[await resource.read(ctx)])

    async def _list_prompts(self, ctx: RequestContext, request: JSONRPCRequest) -> ListPromptsResult:
        return ListPromptsResult(prompts=[prompt.to_definition() for prompt in self._prompt_manager.list_prompts()])

    async def _get_prompt(self, ctx: RequestContext, request: JSONRPCRequest) -> GetPromptResult:
        params = GetPromptRequestParams.model_validate(request.params or {})
        prompt = self._prompt_manager.get_prompt(params.name)
        messages = await self._prompt_manager.render_prompt(params.name, params.arguments, ctx)
        return GetPromptResult(description=prompt.description if prompt else None, messages=messages)
