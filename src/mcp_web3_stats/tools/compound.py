"""Compound tools that fan out to both upstream services and summarize the results.

Sub-fetches run concurrently. A failed sub-fetch does not fail the tool: its
slot holds ``{"error": "<message>"}`` instead. The summary labels come from
simple heuristics and are meant as hints, not verdicts.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Annotated, Any

import anyio
from pydantic import Field

from mcp_web3_stats.exceptions import ToolError, Web3StatsError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.tools.blockscout import fetch_contract_methods
from mcp_web3_stats.upstream import BLOCKSCOUT_NETWORKS

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsState, Web3StatsMCP

ChainId = Annotated[str, Field(alias="chainId", description="The chain ID (e.g., '1' for Ethereum, '137' for Polygon)")]

STABLECOIN_SYMBOLS = frozenset({"USDC", "USDT", "DAI", "BUSD"})
NFT_TOKEN_TYPES = frozenset({"ERC721", "ERC1155"})


def _state(ctx: RequestContext) -> Web3StatsState:
    return ctx.server_state


def network_name(chain_id: str) -> str:
    network = BLOCKSCOUT_NETWORKS.get(chain_id)
    return network.name if network else f"Chain {chain_id}"


async def gather_soft(
    ctx: RequestContext | None = None, /, **fetches: Callable[[], Awaitable[Any]]
) -> dict[str, Any]:
    """Run every fetch concurrently; a failed one yields ``{"error": message}``.

    With a context, progress is reported each time a fetch settles.
    """
    results: dict[str, Any] = {}

    async def run(key: str, fetch: Callable[[], Awaitable[Any]]) -> None:
        try:
            results[key] = await fetch()
        except Web3StatsError as exc:
            results[key] = {"error": str(exc)}
        if ctx is not None:
            await ctx.report_progress(len(results), len(fetches))

    async with anyio.create_task_group() as tg:
        for key, fetch in fetches.items():
            tg.start_soon(run, key, fetch)
    return results


def _get(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _items(data: Any) -> list[Any]:
    items = _get(data, "items")
    return items if isinstance(items, list) else []


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _first(*values: Any) -> Any:
    """First truthy value, else the last one."""
    for value in values:
        if value:
            return value
    return values[-1]


# --- Wallet heuristics ---


def determine_wallet_type(tx_patterns: dict[str, Any], portfolio: dict[str, Any]) -> str:
    if portfolio["nftCount"] > portfolio["tokenCount"] * 0.5:
        return "NFT Collector"
    if portfolio["defiTokens"] > 2:
        return "DeFi User"
    if tx_patterns["contractInteractions"] > tx_patterns["totalTransactions"] * 0.7:
        return "Smart Contract Power User"
    if portfolio["stablecoins"] > portfolio["tokenCount"] * 0.5:
        return "Stablecoin Holder"
    if tx_patterns["totalTransactions"] < 10:
        return "New/Inactive Wallet"
    return "General User"


def determine_primary_use(tx_patterns: dict[str, Any], portfolio: dict[str, Any]) -> str:
    uses = []
    if portfolio["nftCount"] > 0:
        uses.append("NFT Trading")
    if portfolio["defiTokens"] > 0:
        uses.append("DeFi")
    if portfolio["stablecoins"] > 0:
        uses.append("Stablecoin Transactions")
    if tx_patterns["contractInteractions"] > 10:
        uses.append("dApp Interactions")
    return ", ".join(uses or ["Basic Transfers"])


def activity_level(total_transactions: float) -> str:
    if total_transactions > 1000:
        return "high"
    if total_transactions > 100:
        return "medium"
    return "low"


async def profile_wallet_behavior(
    ctx: RequestContext,
    wallet_address: Annotated[str, Field(alias="walletAddress", description="The wallet address to profile")],
    chain_id: ChainId,
) -> dict[str, Any]:
    """Create a comprehensive behavioral profile of a wallet by combining real-time activity from Blockscout with historical patterns from Dune."""
    state = _state(ctx)
    blockscout, dune = state.blockscout, state.dune
    data = await gather_soft(
        ctx,
        info=functools.partial(blockscout.get, chain_id, f"/addresses/{wallet_address}"),
        transactions=functools.partial(
            blockscout.get, chain_id, f"/addresses/{wallet_address}/transactions", {"items_count": 20}
        ),
        tokens=functools.partial(blockscout.get, chain_id, f"/addresses/{wallet_address}/tokens"),
        internal=functools.partial(
            blockscout.get, chain_id, f"/addresses/{wallet_address}/internal-transactions", {"items_count": 10}
        ),
        balances=functools.partial(dune.get, f"/v1/evm/balances/{wallet_address}", {"chain_ids": chain_id}),
        activity=functools.partial(dune.get, f"/v1/evm/activity/{wallet_address}", {"limit": 20}),
    )
    info = data["info"]

    unique_contracts: set[str] = set()
    tx_patterns: dict[str, Any] = {
        "totalTransactions": _number(_get(info, "transaction_count")),
        "contractInteractions": 0,
        "transfersIn": 0,
        "transfersOut": 0,
    }
    for tx in _items(data["transactions"]):
        if _get(tx, "to", "is_contract"):
            tx_patterns["contractInteractions"] += 1
            unique_contracts.add(_get(tx, "to", "hash"))
        sender = _get(tx, "from", "hash")
        if isinstance(sender, str) and sender.lower() == wallet_address.lower():
            tx_patterns["transfersOut"] += 1
        else:
            tx_patterns["transfersIn"] += 1

    portfolio: dict[str, Any] = {
        "nativeBalance": _get(info, "coin_balance"),
        "tokenCount": 0,
        "nftCount": 0,
        "defiTokens": 0,
        "stablecoins": 0,
    }
    for token in _items(data["balances"]):
        portfolio["tokenCount"] += 1
        symbol = str(_get(token, "symbol") or "")
        name = str(_get(token, "name") or "").lower()
        if _get(token, "token_type") in NFT_TOKEN_TYPES:
            portfolio["nftCount"] += 1
        if symbol.upper() in STABLECOIN_SYMBOLS:
            portfolio["stablecoins"] += 1
        if "lp" in symbol.lower() or "liquidity" in name or "vault" in name:
            portfolio["defiTokens"] += 1

    return {
        "wallet": {
            "address": wallet_address,
            "chainId": chain_id,
            "network": network_name(chain_id),
            "ens": _get(info, "ens_domain_name"),
            "createdAt": "tracked" if _get(info, "creation_transaction_hash") else "unknown",
        },
        "activity": {
            "firstSeen": _get(info, "creation_transaction_hash"),
            "totalTransactions": tx_patterns["totalTransactions"],
            "contractInteractions": tx_patterns["contractInteractions"],
            "uniqueContractsUsed": len(unique_contracts),
            "recentTransactions": data["transactions"],
            "internalTransactions": data["internal"],
        },
        "portfolio": portfolio,
        "behavior": {
            "type": determine_wallet_type(tx_patterns, portfolio),
            "activityLevel": activity_level(tx_patterns["totalTransactions"]),
            "primaryUse": determine_primary_use(tx_patterns, portfolio),
        },
        "duneMetrics": {"balances": data["balances"], "recentActivity": data["activity"]},
    }


def holder_concentration(holders: Any) -> dict[str, Any]:
    """Sum the top holders' share of supply and bucket it."""
    items = _items(holders)
    if not items:
        return {"concentration": "unknown", "topHolderPercentage": 0}
    top_share = sum(_number(_get(holder, "percentage_of_total_supply")) for holder in items)
    if top_share > 50:
        concentration = "high"
    elif top_share > 25:
        concentration = "medium"
    else:
        concentration = "low"
    return {"concentration": concentration, "topHolderPercentage": top_share}


async def token_deep_analysis(
    ctx: RequestContext,
    token_address: Annotated[str, Field(alias="tokenAddress", description="The token contract address")],
    chain_id: ChainId,
) -> dict[str, Any]:
    """Comprehensive token analysis combining real-time transfers from Blockscout with holder analytics from Dune."""
    state = _state(ctx)
    blockscout, dune = state.blockscout, state.dune
    data = await gather_soft(
        ctx,
        info=functools.partial(blockscout.get, chain_id, f"/tokens/{token_address}"),
        transfers=functools.partial(blockscout.get, chain_id, f"/tokens/{token_address}/transfers", {"items_count": 10}),
        holders=functools.partial(blockscout.get, chain_id, f"/tokens/{token_address}/holders", {"items_count": 10}),
        dune_info=functools.partial(
            dune.get, f"/v1/evm/token-info/{chain_id}/{token_address}", {"chain_ids": chain_id}
        ),
        dune_holders=functools.partial(dune.get, f"/v1/evm/token-holders/{chain_id}/{token_address}", {"limit": 10}),
    )
    info, dune_info = data["info"], data["dune_info"]
    holder_analysis = holder_concentration(data["dune_holders"])

    is_verified = _get(info, "error") is None and _get(info, "address") is not None
    has_liquidity = _number(_get(dune_info, "volume_24h")) > 0
    warnings = []
    if holder_analysis["concentration"] == "high":
        warnings.append("High holder concentration - top 10 holders own >50% of supply")
    if not is_verified:
        warnings.append("Token contract not found or not verified")
    if not has_liquidity:
        warnings.append("Low or no trading volume in last 24h")

    return {
        "token": {"address": token_address, "chainId": chain_id, "network": network_name(chain_id)},
        "basicInfo": {
            "name": _first(_get(info, "name"), _get(dune_info, "name")),
            "symbol": _first(_get(info, "symbol"), _get(dune_info, "symbol")),
            "decimals": _first(_get(info, "decimals"), _get(dune_info, "decimals")),
            "type": _first(_get(info, "type"), _get(dune_info, "type")),
            "totalSupply": _first(_get(info, "total_supply"), _get(dune_info, "total_supply")),
        },
        "marketMetrics": {
            "price": _get(dune_info, "current_price"),
            "marketCap": _first(_get(dune_info, "market_cap"), _get(info, "circulating_market_cap")),
            "volume24h": _first(_get(dune_info, "volume_24h"), _get(info, "volume_24h")),
            "holderCount": _first(_get(info, "holders_count"), _get(dune_info, "holder_count")),
        },
        "activity": {
            "recentTransfers": data["transfers"],
            "transferCount24h": _get(info, "counters", "transfers_count_24h"),
        },
        "holders": {
            "topHoldersBlockscout": data["holders"],
            "topHoldersDune": data["dune_holders"],
            "analysis": holder_analysis,
        },
        "risks": {
            "isVerified": is_verified,
            "hasLiquidity": has_liquidity,
            "holderConcentration": holder_analysis["concentration"],
            "warnings": warnings,
        },
    }


async def investigate_smart_contract(
    ctx: RequestContext,
    contract_address: Annotated[
        str, Field(alias="contractAddress", description="The smart contract address to investigate")
    ],
    chain_id: ChainId,
) -> dict[str, Any]:
    """Comprehensive smart contract analysis combining real-time data from Blockscout with historical analytics from Dune."""
    state = _state(ctx)
    data = await gather_soft(
        ctx,
        info=functools.partial(state.blockscout.get, chain_id, f"/smart-contracts/{contract_address}"),
        methods=functools.partial(fetch_contract_methods, state.blockscout, chain_id, contract_address),
        token=functools.partial(
            state.dune.get, f"/v1/evm/token-info/{chain_id}/{contract_address}", {"chain_ids": chain_id}
        ),
    )
    info, token = data["info"], data["token"]
    return {
        "contract": {"address": contract_address, "chainId": chain_id, "network": network_name(chain_id)},
        "realTimeData": {"contractInfo": info, "methods": data["methods"]},
        "analytics": {"tokenMetrics": token},
        "summary": {
            "isVerified": bool(_get(info, "is_verified")),
            "hasTokenInfo": _get(token, "error") is None,
            "contractType": _get(info, "proxy_type") or "standard",
            "language": _get(info, "language") or "unknown",
        },
    }


async def analyze_transaction_impact(
    ctx: RequestContext,
    tx_hash: Annotated[str, Field(alias="txHash", description="The transaction hash to analyze")],
    chain_id: ChainId,
) -> dict[str, Any]:
    """Deep dive into a transaction's full impact by combining Blockscout's detailed traces with Dune's wallet context."""
    state = _state(ctx)
    blockscout, dune = state.blockscout, state.dune
    try:
        tx = await blockscout.get(chain_id, f"/transactions/{tx_hash}")
    except Web3StatsError as exc:
        raise ToolError(f"Error analyzing transaction: {exc}") from exc

    fetches: dict[str, Callable[[], Awaitable[Any]]] = {
        "logs": functools.partial(blockscout.get, chain_id, f"/transactions/{tx_hash}/logs"),
        "internal": functools.partial(blockscout.get, chain_id, f"/transactions/{tx_hash}/internal-transactions"),
        "state_changes": functools.partial(blockscout.get, chain_id, f"/transactions/{tx_hash}/state-changes"),
    }
    sender = _get(tx, "from", "hash")
    receiver = _get(tx, "to", "hash")
    if sender:
        fetches["sender"] = functools.partial(dune.get, f"/v1/evm/activity/{sender}", {"limit": 5})
    # Contracts have no wallet history worth fetching
    if receiver and not _get(tx, "to", "is_contract"):
        fetches["receiver"] = functools.partial(dune.get, f"/v1/evm/activity/{receiver}", {"limit": 5})
    data = await gather_soft(ctx, **fetches)

    token_transfers = _get(tx, "token_transfers")
    return {
        "transaction": {
            "hash": tx_hash,
            "chainId": chain_id,
            "network": network_name(chain_id),
            "status": _get(tx, "status"),
            "timestamp": _get(tx, "timestamp"),
            "blockNumber": _get(tx, "block"),
        },
        "participants": {
            "from": {
                "address": sender,
                "isContract": _get(tx, "from", "is_contract"),
                "recentActivity": data.get("sender"),
            },
            "to": {
                "address": receiver,
                "isContract": _get(tx, "to", "is_contract"),
                "recentActivity": data.get("receiver"),
            },
        },
        "execution": {
            "gasUsed": _get(tx, "gas_used"),
            "gasPrice": _get(tx, "gas_price"),
            "value": _get(tx, "value"),
            "fee": _get(tx, "fee", "value"),
        },
        "effects": {
            "logs": data["logs"],
            "internalTransactions": data["internal"],
            "stateChanges": data["state_changes"],
            "tokenTransfers": token_transfers,
        },
        "analysis": {
            "complexity": "complex" if _items(data["internal"]) else "simple",
            "hasTokenTransfers": bool(token_transfers),
            "hasStateChanges": bool(_items(data["state_changes"])),
            "eventCount": len(_items(data["logs"])),
        },
    }


COMPOUND_TOOLS = (
    profile_wallet_behavior,
    token_deep_analysis,
    investigate_smart_contract,
    analyze_transaction_impact,
)


def register(mcp: Web3StatsMCP) -> None:
    for fn in COMPOUND_TOOLS:
        mcp.add_tool(fn)
