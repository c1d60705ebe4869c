"""Read-only resources: chain support and curated reference tables."""

from __future__ import annotations

import json
import logging
from functools import cache
from importlib import resources
from typing import TYPE_CHECKING, Any

from mcp_web3_stats.exceptions import UpstreamAPIError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.types import TextResourceContents
from mcp_web3_stats.upstream import BLOCKSCOUT_NETWORKS

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsMCP

logger = logging.getLogger(__name__)

SUPPORTED_NETWORKS_URI = "web3-stats://supported-networks"
DUNE_SUPPORTED_CHAINS_URI = "dune://evm/supported-chains"
DUNE_SUPPORTED_CHAINS_PATH = "/v1/evm/supported-chains"


@cache
def load_table(name: str) -> dict[str, Any]:
    """Load one of the curated JSON tables shipped in ``mcp_web3_stats/data``."""
    source = resources.files("mcp_web3_stats").joinpath("data", f"{name}.json")
    return json.loads(source.read_text(encoding="utf-8"))


def merge_networks(dune_chains: Any) -> dict[str, Any]:
    """Combine the explorer table with the Dune chain list.

    ``dune_chains`` is the body of the supported-chains endpoint or anything
    without a ``chains`` list (for instance an error marker), in which case
    only the explorer networks are reported.
    """
    networks: dict[str, dict[str, Any]] = {
        chain_id: {
            "chainId": chain_id,
            "name": network.name,
            "blockscout": {"available": True, "url": network.url, "apiVersion": "v2"},
            "dune": {"available": False, "capabilities": {}},
        }
        for chain_id, network in BLOCKSCOUT_NETWORKS.items()
    }

    chains = dune_chains.get("chains") if isinstance(dune_chains, dict) else None
    for chain in chains or []:
        chain_id = str(chain.get("chain_id"))
        entry = networks.setdefault(
            chain_id, {"chainId": chain_id, "name": chain.get("name"), "blockscout": {"available": False}}
        )
        endpoints = chain.get("endpoints") or {}
        entry["dune"] = {
            "available": True,
            "capabilities": {endpoint: True for endpoint, supported in endpoints.items() if supported},
        }

    ordered = dict(sorted(networks.items(), key=lambda item: _chain_sort_key(item[0])))
    availability = [(n["blockscout"]["available"], n["dune"]["available"]) for n in ordered.values()]
    return {
        "networks": ordered,
        "summary": {
            "totalNetworks": len(ordered),
            "blockscoutOnly": availability.count((True, False)),
            "duneOnly": availability.count((False, True)),
            "bothApis": availability.count((True, True)),
        },
    }


def _chain_sort_key(chain_id: str) -> tuple[int, float | str]:
    try:
        return (0, float(chain_id))
    except ValueError:
        return (1, chain_id)


async def supported_networks(ctx: RequestContext) -> Any:
    """Unified list of networks supported by both Dune and Blockscout APIs with their capabilities."""
    try:
        try:
            dune_chains = await ctx.server_state.dune.get(DUNE_SUPPORTED_CHAINS_PATH)
        except UpstreamAPIError as exc:
            logger.warning("Dune chain list unavailable: %s", exc)
            dune_chains = {"error": str(exc)}
        return merge_networks(dune_chains)
    except Exception as exc:
        logger.exception("Failed to build the network list")
        return TextResourceContents(
            uri=SUPPORTED_NETWORKS_URI, mime_type="text/plain", text=f"Error fetching network support: {exc}"
        )


async def dune_evm_supported_chains(ctx: RequestContext) -> Any:
    """Provides a list of EVM chains supported by the Dune API and their capabilities per endpoint."""
    try:
        return await ctx.server_state.dune.get(DUNE_SUPPORTED_CHAINS_PATH)
    except UpstreamAPIError as exc:
        return TextResourceContents(uri=DUNE_SUPPORTED_CHAINS_URI, mime_type="text/plain", text=str(exc))


def stablecoin_addresses() -> dict[str, Any]:
    """Known stablecoin contract addresses across different chains"""
    return load_table("stablecoins")


def dex_router_contracts() -> dict[str, Any]:
    """Major decentralized exchange router contracts across different chains"""
    return load_table("dex_routers")


def bridge_contracts() -> dict[str, Any]:
    """Known bridge contracts for cross-chain transfers"""
    return load_table("bridges")


def security_patterns() -> dict[str, Any]:
    """Known spam addresses, vulnerability patterns, and suspicious behaviors"""
    return load_table("security_patterns")


def token_categories() -> dict[str, Any]:
    """Categorized lists of tokens for analysis"""
    return load_table("token_categories")


def register(mcp: Web3StatsMCP) -> None:
    mcp.add_resource(supported_networks, SUPPORTED_NETWORKS_URI, name="Supported Networks")
    mcp.add_resource(dune_evm_supported_chains, DUNE_SUPPORTED_CHAINS_URI, name="Dune EVM Supported Chains")
    mcp.add_resource(stablecoin_addresses, "web3-stats://tokens/stablecoins", name="Stablecoin Addresses")
    mcp.add_resource(dex_router_contracts, "web3-stats://contracts/dex-routers", name="DEX Router Contracts")
    mcp.add_resource(bridge_contracts, "web3-stats://contracts/bridges", name="Bridge Contracts")
    mcp.add_resource(security_patterns, "web3-stats://security/patterns", name="Security Patterns")
    mcp.add_resource(token_categories, "web3-stats://tokens/categories", name="Token Categories")
