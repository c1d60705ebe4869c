"""Tool catalog."""

from typing import TYPE_CHECKING

from mcp_web3_stats.tools import blockscout, compound, dune

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsMCP


def register_all_tools(mcp: "Web3StatsMCP") -> None:
    dune.register(mcp)
    blockscout.register(mcp)
    compound.register(mcp)


__all__ = ["register_all_tools"]
