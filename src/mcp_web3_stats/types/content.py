from typing import Literal

from mcp_web3_stats.types.base import MCPModel


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str


# Every tool and prompt in this server speaks text only.
ContentBlock = TextContent
