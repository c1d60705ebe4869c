from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from mcp_web3_stats.catalog.func_metadata import FuncMetadata, func_metadata
from mcp_web3_stats.exceptions import RequestError, ToolError, Web3StatsError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.types import INVALID_PARAMS, ToolAnnotations
from mcp_web3_stats.types import Tool as ToolDefinition

logger = logging.getLogger(__name__)


class Tool(BaseModel):
    """Internal tool registration info."""

    fn: Callable[..., Any] = Field(exclude=True)
    name: str = Field(description="Name of the tool")
    description: str = Field(description="Description of what the tool does")
    parameters: dict[str, Any] = Field(description="JSON schema for tool parameters")
    fn_metadata: FuncMetadata = Field(description="Argument model and context injection for the function")
    annotations: ToolAnnotations | None = Field(None, description="Optional annotations for the tool")

    @classmethod
    def from_function(
        cls,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        annotations: ToolAnnotations | None = None,
    ) -> Tool:
        """Create a Tool from a function."""
        func_name = name or fn.__name__
        if func_name == "<lambda>":
            raise ValueError("You must provide a name for lambda functions")

        metadata = func_metadata(fn)
        return cls(
            fn=fn,
            name=func_name,
            description=description or inspect.cleandoc(fn.__doc__ or ""),
            parameters=metadata.parameters_schema(),
            fn_metadata=metadata,
            annotations=annotations,
        )

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.parameters,
            annotations=self.annotations,
        )

    async def run(self, arguments: dict[str, Any], context: RequestContext | None = None) -> Any:
        """Run the tool with arguments.

        Every failure comes out as ToolError, which the caller reports as an
        ``isError`` result. Our own errors keep their message unchanged.
        """
        try:
            return await self.fn_metadata.call_fn_with_arg_validation(self.fn, arguments, context)
        except ValidationError as e:
            raise ToolError(f"Invalid arguments for tool {self.name}: {e}") from e
        except ToolError:
            raise
        except Web3StatsError as e:
            raise ToolError(str(e)) from e
        except Exception as e:
            logger.exception("Tool %s failed", self.name)
            raise ToolError(f"Error executing tool {self.name}: {e}") from e


class ToolManager:
    """Manages the server's tools."""

    def __init__(self, warn_on_duplicate_tools: bool = True) -> None:
        self._tools: dict[str, Tool] = {}
        self.warn_on_duplicate_tools = warn_on_duplicate_tools

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def add_tool(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        annotations: ToolAnnotations | None = None,
    ) -> Tool:
        """Add a tool to the server."""
        tool = Tool.from_function(fn, name=name, description=description, annotations=annotations)
        existing = self._tools.get(tool.name)
        if existing:
            if self.warn_on_duplicate_tools:
                logger.warning(f"Tool already exists: {tool.name}")
            return existing
        self._tools[tool.name] = tool
        return tool

    async def call_tool(self, name: str, arguments: dict[str, Any], context: RequestContext | None = None) -> Any:
        """Call a tool by name. An unknown name is a protocol error, not a tool error."""
        tool = self.get_tool(name)
        if not tool:
            raise RequestError(f"Unknown tool: {name}", INVALID_PARAMS)
        return await tool.run(arguments, context)
