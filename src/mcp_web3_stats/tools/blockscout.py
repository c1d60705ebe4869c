"""Blockscout explorer tools.

Every tool takes the chain as a string id; an id outside ``BLOCKSCOUT_NETWORKS``
fails the call with the list of supported chains. ``limit`` is sent upstream
as ``items_count``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import pydantic_core
from pydantic import Field

from mcp_web3_stats.exceptions import UnsupportedChainError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.upstream import BlockscoutClient

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsMCP

ChainId = Annotated[str, Field(alias="chainId", description="The chain ID (e.g., '1' for Ethereum, '137' for Polygon)")]
NextPageParams = Annotated[str | None, Field(description="Optional. Pagination cursor from previous response")]

Limit = Annotated[int | None, Field(gt=0, description="Optional. Number of items to return (default: 50)")]


def _blockscout(ctx: RequestContext) -> BlockscoutClient:
    return ctx.server_state.blockscout


async def blockscout_address_info(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The address to get information for")],
    chain_id: ChainId,
) -> Any:
    """Get detailed information about an address including balance, type (EOA/contract), and basic stats from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/addresses/{address}")


async def blockscout_address_transactions(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The address to get transactions for")],
    chain_id: ChainId,
    filter: Annotated[
        str | None, Field(description="Optional. Filter by transaction type: 'from' | 'to' | 'contract_creation'")
    ] = None,
    limit: Limit = None,
    next_page_params: NextPageParams = None,
) -> Any:
    """Get all transactions for an address from Blockscout with filtering and pagination support."""
    return await _blockscout(ctx).get(
        chain_id,
        f"/addresses/{address}/transactions",
        {"filter": filter, "items_count": limit, "next_page_params": next_page_params},
    )


async def blockscout_address_internal_txs(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The address to get internal transactions for")],
    chain_id: ChainId,
    filter: Annotated[str | None, Field(description="Optional. Filter by direction: 'from' | 'to'")] = None,
    limit: Limit = None,
    next_page_params: NextPageParams = None,
) -> Any:
    """Get internal transactions (contract interactions) for an address from Blockscout."""
    return await _blockscout(ctx).get(
        chain_id,
        f"/addresses/{address}/internal-transactions",
        {"filter": filter, "items_count": limit, "next_page_params": next_page_params},
    )


async def blockscout_address_logs(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The address to get logs for")],
    chain_id: ChainId,
    limit: Limit = None,
    next_page_params: NextPageParams = None,
) -> Any:
    """Get event logs emitted by or to an address from Blockscout."""
    return await _blockscout(ctx).get(
        chain_id, f"/addresses/{address}/logs", {"items_count": limit, "next_page_params": next_page_params}
    )


async def blockscout_address_token_balances(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The address to get token balances for")],
    chain_id: ChainId,
    type: Annotated[
        str | None, Field(description="Optional. Filter by token type: 'ERC-20' | 'ERC-721' | 'ERC-1155'")
    ] = None,
) -> Any:
    """Get all token balances (ERC20, ERC721, ERC1155) for an address from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/addresses/{address}/tokens", {"type": type})


async def blockscout_block_details(
    ctx: RequestContext,
    block_number: Annotated[str, Field(alias="blockNumber", description="The block number or hash")],
    chain_id: ChainId,
) -> Any:
    """Get comprehensive information about a specific block from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/blocks/{block_number}")


async def blockscout_block_transactions(
    ctx: RequestContext,
    block_number: Annotated[str, Field(alias="blockNumber", description="The block number or hash")],
    chain_id: ChainId,
    limit: Limit = None,
) -> Any:
    """Get all transactions included in a specific block from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/blocks/{block_number}/transactions", {"items_count": limit})


async def blockscout_contract_info(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The contract address")],
    chain_id: ChainId,
) -> Any:
    """Get verified smart contract details including source code, ABI, and metadata from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/smart-contracts/{address}")


async def fetch_contract_methods(client: BlockscoutClient, chain_id: str, address: str) -> dict[str, Any]:
    """Read methods, then write methods, of a verified contract."""
    read_methods = await client.get(chain_id, f"/smart-contracts/{address}/methods-read")
    write_methods = await client.get(chain_id, f"/smart-contracts/{address}/methods-write")
    return {"readMethods": read_methods, "writeMethods": write_methods}


async def blockscout_contract_methods(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The contract address")],
    chain_id: ChainId,
) -> Any:
    """Get readable and writable methods of a verified smart contract from Blockscout."""
    return await fetch_contract_methods(_blockscout(ctx), chain_id, address)


async def blockscout_latest_blocks(ctx: RequestContext, chain_id: ChainId, limit: Limit = None) -> Any:
    """Get the most recent blocks from the blockchain via Blockscout."""
    return await _blockscout(ctx).get(chain_id, "/blocks", {"items_count": limit})


async def blockscout_nft_instances(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The NFT collection contract address")],
    chain_id: ChainId,
    limit: Limit = None,
    next_page_params: NextPageParams = None,
) -> Any:
    """Get individual NFT instances for an NFT collection from Blockscout."""
    return await _blockscout(ctx).get(
        chain_id, f"/tokens/{address}/instances", {"items_count": limit, "next_page_params": next_page_params}
    )


async def blockscout_nft_metadata(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The NFT collection contract address")],
    token_id: Annotated[str, Field(alias="tokenId", description="The specific NFT token ID")],
    chain_id: ChainId,
) -> Any:
    """Get metadata for a specific NFT token ID from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/tokens/{address}/instances/{token_id}")


async def blockscout_read_contract(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The contract address")],
    chain_id: ChainId,
    method: Annotated[str, Field(description="The method name to call")],
    args: Annotated[list[Any] | None, Field(description="Optional. Array of arguments to pass to the method")] = None,
) -> Any:
    """Call a read method on a verified smart contract and get the result from Blockscout."""
    params: dict[str, Any] = {"method_id": method}
    for index, arg in enumerate(args or []):
        params[f"args[{index}]"] = _render_arg(arg)
    return await _blockscout(ctx).get(chain_id, f"/smart-contracts/{address}/query-read-method", params)


def _render_arg(arg: Any) -> str:
    if isinstance(arg, bool):
        return "true" if arg else "false"
    return str(arg)


async def blockscout_search(
    ctx: RequestContext,
    query: Annotated[str, Field(description="The search query (address, tx hash, block number, token name, etc.)")],
    chain_id: Annotated[
        str, Field(alias="chainId", description="The chain ID to search on (e.g., '1' for Ethereum, '137' for Polygon)")
    ],
) -> Any:
    """Search across addresses, tokens, blocks, and transactions on a specific blockchain using Blockscout."""
    return await _blockscout(ctx).get(chain_id, "/search", {"q": query})


async def blockscout_token_info(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The token contract address")],
    chain_id: ChainId,
) -> Any:
    """Get detailed information about a token including supply, decimals, and metadata from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/tokens/{address}")


async def blockscout_token_transfers(
    ctx: RequestContext,
    address: Annotated[str, Field(description="The token contract address")],
    chain_id: ChainId,
    limit: Limit = None,
    next_page_params: NextPageParams = None,
) -> Any:
    """Get token transfer history for a specific token from Blockscout."""
    return await _blockscout(ctx).get(
        chain_id, f"/tokens/{address}/transfers", {"items_count": limit, "next_page_params": next_page_params}
    )


async def blockscout_transaction_raw_trace(
    ctx: RequestContext,
    tx_hash: Annotated[str, Field(alias="txHash", description="The transaction hash")],
    chain_id: ChainId,
) -> Any:
    """Get the raw execution trace of a transaction from Blockscout (useful for debugging)."""
    return await _blockscout(ctx).get(chain_id, f"/transactions/{tx_hash}/raw-trace")


async def blockscout_transaction_state_changes(
    ctx: RequestContext,
    tx_hash: Annotated[str, Field(alias="txHash", description="The transaction hash")],
    chain_id: ChainId,
) -> Any:
    """Get state changes (storage slot updates) caused by a transaction from Blockscout."""
    return await _blockscout(ctx).get(chain_id, f"/transactions/{tx_hash}/state-changes")


async def blockscout_verified_contracts(
    ctx: RequestContext,
    chain_id: ChainId,
    filter: Annotated[
        str | None, Field(description="Optional. Filter by verification type: 'solidity' | 'vyper' | 'yul'")
    ] = None,
    limit: Limit = None,
) -> Any:
    """Get a list of recently verified smart contracts from Blockscout."""
    return await _blockscout(ctx).get(chain_id, "/smart-contracts", {"filter": filter, "items_count": limit})


async def ping_blockscout(
    ctx: RequestContext,
    chain_id: Annotated[
        str, Field(alias="chainId", description="The chain ID to test (e.g., '1' for Ethereum, '137' for Polygon)")
    ],
) -> str:
    """Test connectivity to a Blockscout instance for a specific chain."""
    client = _blockscout(ctx)
    try:
        network = client.network(chain_id)
    except UnsupportedChainError as exc:
        # Reported as a normal answer, not a failed call
        return str(exc)
    stats = await client.get(chain_id, "/stats")
    stats_text = pydantic_core.to_json(stats, fallback=str, indent=2).decode()
    return f"✓ Blockscout {network.name} (chain {chain_id}) is active. Network stats: {stats_text}"


BLOCKSCOUT_TOOLS = (
    blockscout_address_info,
    blockscout_address_transactions,
    blockscout_address_internal_txs,
    blockscout_address_logs,
    blockscout_address_token_balances,
    blockscout_block_details,
    blockscout_block_transactions,
    blockscout_contract_info,
    blockscout_contract_methods,
    blockscout_latest_blocks,
    blockscout_nft_instances,
    blockscout_nft_metadata,
    blockscout_read_contract,
    blockscout_search,
    blockscout_token_info,
    blockscout_token_transfers,
    blockscout_transaction_raw_trace,
    blockscout_transaction_state_changes,
    blockscout_verified_contracts,
    ping_blockscout,
)


def register(mcp: Web3StatsMCP) -> None:
    for fn in BLOCKSCOUT_TOOLS:
        mcp.add_tool(fn)
