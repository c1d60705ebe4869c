"""Dune Sim API tools: balances, activity, collectibles and token data for EVM and SVM wallets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from pydantic import Field

from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.upstream import DuneClient

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsMCP

EVM_WALLET_EXAMPLE = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def _dune(ctx: RequestContext) -> DuneClient:
    return ctx.server_state.dune


async def get_evm_balances(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description=f"The EVM wallet address (e.g., {EVM_WALLET_EXAMPLE})")
    ],
    chain_ids: Annotated[
        str | None,
        Field(
            alias="chainIds",
            description="Optional. Comma-separated list of chain IDs (e.g., '1,56') or 'all' to fetch balances for specific chains.",
        ),
    ] = None,
    metadata: Annotated[
        str | None, Field(description="Optional. Comma-separated list of metadata to include (e.g., 'url,logo').")
    ] = None,
    exclude_spam_tokens: Annotated[
        bool | None, Field(alias="excludeSpamTokens", description="Optional. Set to true to exclude spam tokens.")
    ] = None,
    limit: Annotated[
        int | None, Field(gt=0, description="Optional. Maximum number of balance items to return for pagination.")
    ] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination for balances.")] = None,
) -> Any:
    """Fetches EVM token balances for a given wallet address from the Dune API. Supports chain filtering, metadata inclusion, spam filtering, and pagination."""
    return await _dune(ctx).get(
        f"/v1/evm/balances/{wallet_address}",
        {
            "chain_ids": chain_ids,
            "metadata": metadata,
            "exclude_spam_tokens": exclude_spam_tokens,
            "limit": limit,
            "offset": offset,
        },
    )


async def get_evm_activity(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description=f"The EVM wallet address (e.g., {EVM_WALLET_EXAMPLE})")
    ],
    limit: Annotated[
        int | None,
        Field(gt=0, description="Optional. Number of activity items to return. Defaults to 25 if not specified by API."),
    ] = None,
    offset: Annotated[
        str | None,
        Field(description="Optional. The offset (cursor) for pagination, from a previous 'next_offset' response."),
    ] = None,
    exclude_spam_tokens: Annotated[
        bool | None,
        Field(alias="excludeSpamTokens", description="Optional. Set to true to exclude activities related to spam tokens."),
    ] = None,
) -> Any:
    """Fetches EVM account activity for a given wallet address from the Dune API. Supports spam filtering and pagination."""
    return await _dune(ctx).get(
        f"/v1/evm/activity/{wallet_address}",
        {"limit": limit, "offset": offset, "exclude_spam_tokens": exclude_spam_tokens},
    )


async def get_evm_collectibles(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description=f"The EVM wallet address (e.g., {EVM_WALLET_EXAMPLE})")
    ],
    limit: Annotated[
        int | None,
        Field(gt=0, description="Optional. Number of collectible items to return. Defaults to 50 if not specified by API."),
    ] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination.")] = None,
) -> Any:
    """Fetches EVM NFT collectibles (ERC721 and ERC1155) for a given wallet address. Supports pagination."""
    return await _dune(ctx).get(f"/v1/evm/collectibles/{wallet_address}", {"limit": limit, "offset": offset})


async def get_evm_transactions(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description=f"The EVM wallet address (e.g., {EVM_WALLET_EXAMPLE})")
    ],
    limit: Annotated[int | None, Field(gt=0, description="Optional. Maximum number of transactions to return.")] = None,
    offset: Annotated[
        str | None,
        Field(description="Optional. The offset (cursor) for pagination, taken from 'next_offset' of a previous response."),
    ] = None,
) -> Any:
    """Retrieves granular EVM transaction details for a given wallet address from the Dune API."""
    return await _dune(ctx).get(f"/v1/evm/transactions/{wallet_address}", {"limit": limit, "offset": offset})


async def get_evm_token_info(
    ctx: RequestContext,
    chain_and_token_uri: Annotated[
        str,
        Field(
            alias="chainAndTokenUri",
            description=(
                "The URI path segment for the token, e.g., '1/0xTOKEN_ADDRESS' for an ERC20 token on Ethereum "
                "(chain_id 1), or '1/native' for Ethereum's native token."
            ),
        ),
    ],
    chain_ids: Annotated[
        str,
        Field(
            alias="chainIds",
            description="Mandatory. Comma-separated list of chain IDs (e.g., '1,56') or 'all' to fetch tokens for all supported chains.",
        ),
    ],
    limit: Annotated[int | None, Field(gt=0, description="Optional. Maximum number of items to return.")] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination.")] = None,
) -> Any:
    """Fetches detailed metadata and real-time price information for a native asset or ERC20 token on EVM chains from the Dune API."""
    return await _dune(ctx).get(
        f"/v1/evm/token-info/{chain_and_token_uri}",
        {"chain_ids": chain_ids, "limit": limit, "offset": offset},
    )


async def get_evm_token_holders(
    ctx: RequestContext,
    chain_id: Annotated[str | int, Field(alias="chainId", description="The chain ID (e.g., 1 or '1' for Ethereum).")],
    token_address: Annotated[
        str,
        Field(
            alias="tokenAddress",
            description="The ERC20 or ERC721 token contract address (e.g., 0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2).",
        ),
    ],
    limit: Annotated[int | None, Field(gt=0, description="Optional. Maximum number of token holders to return.")] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination.")] = None,
) -> Any:
    """Discovers token distribution across ERC20 or ERC721 holders for a given token on a specific EVM chain, ranked by wallet value."""
    return await _dune(ctx).get(
        f"/v1/evm/token-holders/{chain_id}/{token_address}", {"limit": limit, "offset": offset}
    )


async def get_svm_balances(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description="The SVM wallet address (e.g., a Solana or Eclipse address).")
    ],
    chains: Annotated[
        str | None,
        Field(
            description=(
                "Optional. Comma-separated list of chains (e.g., 'solana,eclipse') or 'all'. "
                "Defaults to fetching for all supported SVM chains if not specified."
            )
        ),
    ] = None,
    limit: Annotated[int | None, Field(gt=0, description="Optional. Maximum number of balance items to return.")] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination.")] = None,
) -> Any:
    """Fetches token balances (native, SPL, SPL-2022) for a given SVM wallet address from the Dune API."""
    return await _dune(ctx).get(
        f"/beta/svm/balances/{wallet_address}", {"chains": chains, "limit": limit, "offset": offset}
    )


async def get_svm_transactions(
    ctx: RequestContext,
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description="The SVM wallet address (e.g., a Solana address).")
    ],
    limit: Annotated[int | None, Field(gt=0, description="Optional. Maximum number of transactions to return.")] = None,
    offset: Annotated[str | None, Field(description="Optional. The offset (cursor) for pagination.")] = None,
) -> Any:
    """Fetches transactions for a given SVM wallet address (currently Solana only) from the Dune API."""
    return await _dune(ctx).get(f"/beta/svm/transactions/{wallet_address}", {"limit": limit, "offset": offset})


def ping_dune_server() -> str:
    """A simple tool to check if the Dune MCP server is responsive."""
    return "Pong! Dune MCP server is active."


DUNE_TOOLS = (
    get_evm_balances,
    get_evm_activity,
    get_evm_collectibles,
    get_evm_transactions,
    get_evm_token_info,
    get_evm_token_holders,
    get_svm_balances,
    get_svm_transactions,
    ping_dune_server,
)


def register(mcp: Web3StatsMCP) -> None:
    for fn in DUNE_TOOLS:
        mcp.add_tool(fn)
