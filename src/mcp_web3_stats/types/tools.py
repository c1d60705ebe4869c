"""Types for tool listing and invocation."""

from typing import Annotated, Any

from pydantic import Field

from mcp_web3_stats.types.base import MCPModel, RequestParams, Result
from mcp_web3_stats.types.content import ContentBlock


class ToolAnnotations(MCPModel):
    read_only_hint: Annotated[bool | None, Field(alias="readOnlyHint")] = None
    open_world_hint: Annotated[bool | None, Field(alias="openWorldHint")] = None
    title: str | None = None


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    name: str
    description: str | None = None
    input_schema: Annotated[dict[str, Any], Field(alias="inputSchema")]
    annotations: ToolAnnotations | None = None


class ListToolsResult(Result):
    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolRequestParams(RequestParams):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result):
    """Server's response to a tools/call request."""

    content: list[ContentBlock]
    is_error: Annotated[bool, Field(alias="isError")] = False
