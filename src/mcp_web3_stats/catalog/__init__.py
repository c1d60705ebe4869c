"""Tool, resource and prompt registration."""

from mcp_web3_stats.catalog.prompts import AssistantMessage, Message, UserMessage
from mcp_web3_stats.catalog.server import Web3StatsMCP, Web3StatsState

__all__ = ["AssistantMessage", "Message", "UserMessage", "Web3StatsMCP", "Web3StatsState"]
