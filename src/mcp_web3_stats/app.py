"""Server assembly: the facade with the whole catalog registered."""

import httpx

from mcp_web3_stats import prompts, resources
from mcp_web3_stats.catalog import Web3StatsMCP
from mcp_web3_stats.settings import Web3StatsSettings
from mcp_web3_stats.tools import register_all_tools
from mcp_web3_stats.version import SERVER_NAME

INSTRUCTIONS = (
    "Blockchain analytics over the Dune Sim API and Blockscout explorers. "
    "Use the compound tools (profile_wallet_behavior, token_deep_analysis, investigate_smart_contract, "
    "analyze_transaction_impact) for overviews and the single-source tools for raw data."
)


def create_server(
    settings: Web3StatsSettings | None = None, *, http_client: httpx.AsyncClient | None = None
) -> Web3StatsMCP:
    mcp = Web3StatsMCP(SERVER_NAME, INSTRUCTIONS, settings=settings, http_client=http_client)
    register_all_tools(mcp)
    resources.register(mcp)
    prompts.register(mcp)
    return mcp
