"""Protocol core and transports."""

from mcp_web3_stats.server.lowlevel import LowLevelServer
from mcp_web3_stats.server.runner import RunningServer, ServerRunner

__all__ = ["LowLevelServer", "RunningServer", "ServerRunner"]
