"""MCP Web3 Stats - blockchain data tools served over the Model Context Protocol."""

from mcp_web3_stats.version import VERSION

__version__ = VERSION

__all__ = ["VERSION", "__version__"]
