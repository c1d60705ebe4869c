"""Types for prompt listing and rendering."""

from typing import Annotated, Literal

from pydantic import Field

from mcp_web3_stats.types.base import MCPModel, RequestParams, Result
from mcp_web3_stats.types.content import ContentBlock


class PromptArgument(MCPModel):
    name: str
    description: str | None = None
    required: bool = False


class Prompt(MCPModel):
    name: str
    description: str | None = None
    arguments: list[PromptArgument] | None = None


class PromptMessage(MCPModel):
    role: Literal["user", "assistant"]
    content: ContentBlock


class ListPromptsResult(Result):
    prompts: list[Prompt]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class GetPromptRequestParams(RequestParams):
    name: str
    arguments: dict[str, str] | None = None


class GetPromptResult(Result):
    description: str | None = None
    messages: list[PromptMessage]
