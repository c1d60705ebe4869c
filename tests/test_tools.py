"""Tests for the tool catalog as seen over JSON-RPC."""

import httpx
import pytest

from mcp_web3_stats.app import create_server
from mcp_web3_stats.exceptions import ConfigurationError
from mcp_web3_stats.server.runner import RunningServer
from mcp_web3_stats.settings import Web3StatsSettings
from mcp_web3_stats.tools.compound import determine_wallet_type, gather_soft, holder_concentration
from mcp_web3_stats.types import INVALID_PARAMS
from tests.helpers import TEST_DUNE_KEY, FakeUpstream, call_tool, rpc, tool_json

pytestmark = pytest.mark.anyio

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


async def test_catalog_lists_every_tool(running: RunningServer):
    response = await rpc(running, "tools/list")

    tools = {tool["name"]: tool for tool in response["result"]["tools"]}
    assert len(tools) == 33
    assert {"ping_dune_server", "ping_blockscout", "profile_wallet_behavior", "get_svm_balances"} <= set(tools)

    schema = tools["get_evm_balances"]["inputSchema"]
    assert schema["required"] == ["walletAddress"]
    assert {"walletAddress", "chainIds", "excludeSpamTokens", "limit", "offset", "metadata"} == set(
        schema["properties"]
    )
    assert "ctx" not in schema["properties"]
    assert tools["ping_dune_server"]["description"] == "A simple tool to check if the Dune MCP server is responsive."


async def test_ping_dune_server(running: RunningServer):
    result = await call_tool(running, "ping_dune_server")

    assert result["content"] == [{"type": "text", "text": "Pong! Dune MCP server is active."}]
    assert not result.get("isError")


async def test_dune_tool_forwards_arguments(running: RunningServer, upstream: FakeUpstream):
    upstream.add(f"/v1/evm/balances/{WALLET}", {"wallet_address": WALLET, "balances": [{"symbol": "ETH"}]})

    result = await call_tool(
        running, "get_evm_balances", {"walletAddress": WALLET, "chainIds": "1,56", "excludeSpamTokens": True}
    )

    assert tool_json(result)["balances"] == [{"symbol": "ETH"}]
    (request,) = upstream.requests
    assert request.headers["X-Sim-Api-Key"] == TEST_DUNE_KEY
    assert dict(request.url.params) == {"chain_ids": "1,56", "exclude_spam_tokens": "true"}


async def test_numeric_chain_ids_are_accepted(running: RunningServer, upstream: FakeUpstream):
    upstream.add("eth.blockscout.com/api/v2/stats", {"total_blocks": "100"})

    result = await call_tool(running, "ping_blockscout", {"chainId": 1})

    text = result["content"][0]["text"]
    assert text.startswith("✓ Blockscout Ethereum (chain 1) is active.")
    assert '"total_blocks": "100"' in text


async def test_ping_blockscout_on_unsupported_chain_is_not_an_error(running: RunningServer, upstream: FakeUpstream):
    result = await call_tool(running, "ping_blockscout", {"chainId": "999"})

    assert not result.get("isError")
    assert result["content"][0]["text"].startswith("Unsupported chain ID: 999. Supported chains: 1, 10, 56")
    assert upstream.requests == []


async def test_upstream_failure_is_a_tool_error(running: RunningServer, upstream: FakeUpstream):
    upstream.add(f"/v1/evm/activity/{WALLET}", '{"message":"rate limited"}', status_code=429)

    result = await call_tool(running, "get_evm_activity", {"walletAddress": WALLET})

    assert result["isError"] is True
    assert result["content"][0]["text"] == (
        'Dune API Error: 429 Too Many Requests. Details: {"message":"rate limited"}'
    )


async def test_invalid_arguments_are_a_tool_error(running: RunningServer, upstream: FakeUpstream):
    result = await call_tool(running, "get_evm_balances", {"walletAddress": WALLET, "limit": 0})

    assert result["isError"] is True
    assert result["content"][0]["text"].startswith("Invalid arguments for tool get_evm_balances")
    assert upstream.requests == []


async def test_missing_required_argument(running: RunningServer):
    result = await call_tool(running, "blockscout_address_info", {"chainId": "1"})

    assert result["isError"] is True
    assert "address" in result["content"][0]["text"]


async def test_unknown_tool_is_a_protocol_error(running: RunningServer):
    response = await rpc(running, "tools/call", {"name": "does_not_exist", "arguments": {}})

    assert response["error"]["code"] == INVALID_PARAMS
    assert response["error"]["message"] == "Unknown tool: does_not_exist"


async def test_profile_wallet_behavior_tolerates_partial_failures(running: RunningServer, upstream: FakeUpstream):
    upstream.add(
        f"eth.blockscout.com/api/v2/addresses/{WALLET}",
        {"transaction_count": "1500", "coin_balance": "42", "ens_domain_name": "vitalik.eth"},
    )
    upstream.add(
        f"eth.blockscout.com/api/v2/addresses/{WALLET}/transactions",
        {
            "items": [
                {"from": {"hash": WALLET.upper()}, "to": {"hash": "0xc1", "is_contract": True}},
                {"from": {"hash": "0xother"}, "to": {"hash": WALLET, "is_contract": False}},
            ]
        },
    )
    upstream.add(
        f"/v1/evm/balances/{WALLET}",
        {"balances": [], "items": [{"symbol": "USDC"}, {"symbol": "UNI-LP", "name": "Uniswap LP"}]},
    )
    # tokens, internal transactions and activity are left unrouted and answer 404

    profile = tool_json(await call_tool(running, "profile_wallet_behavior", {"walletAddress": WALLET, "chainId": "1"}))

    assert profile["wallet"]["ens"] == "vitalik.eth"
    assert profile["wallet"]["network"] == "Ethereum"
    assert profile["activity"]["totalTransactions"] == 1500
    assert profile["activity"]["contractInteractions"] == 1
    assert profile["activity"]["uniqueContractsUsed"] == 1
    assert profile["activity"]["internalTransactions"]["error"].startswith("Blockscout API Error (Ethereum): 404")
    assert profile["duneMetrics"]["recentActivity"]["error"].startswith("Dune API Error: 404")
    assert profile["portfolio"]["stablecoins"] == 1
    assert profile["portfolio"]["defiTokens"] == 1
    assert profile["behavior"]["activityLevel"] == "high"


async def test_analyze_transaction_impact_fails_without_the_transaction(running: RunningServer):
    result = await call_tool(running, "analyze_transaction_impact", {"txHash": "0xdead", "chainId": "1"})

    assert result["isError"] is True
    assert result["content"][0]["text"].startswith("Error analyzing transaction: Blockscout API Error (Ethereum): 404")


async def test_analyze_transaction_impact_skips_contract_receivers(running: RunningServer, upstream: FakeUpstream):
    upstream.add(
        "eth.blockscout.com/api/v2/transactions/0xabc",
        {"status": "ok", "from": {"hash": "0xsender"}, "to": {"hash": "0xpool", "is_contract": True}},
    )
    upstream.add("eth.blockscout.com/api/v2/transactions/0xabc/logs", {"items": [{}, {}]})

    impact = tool_json(await call_tool(running, "analyze_transaction_impact", {"txHash": "0xabc", "chainId": "1"}))

    assert impact["analysis"]["eventCount"] == 2
    assert impact["analysis"]["complexity"] == "simple"
    assert "/v1/evm/activity/0xsender" in upstream.paths()
    assert "/v1/evm/activity/0xpool" not in upstream.paths()


async def test_gather_soft_keeps_successes():
    async def ok():
        return 1

    async def boom():
        raise ConfigurationError("nope")

    assert await gather_soft(a=ok, b=boom) == {"a": 1, "b": {"error": "nope"}}


@pytest.mark.parametrize(
    ("holders", "expected"),
    [
        (None, "unknown"),
        ({"items": [{"percentage_of_total_supply": 40}, {"percentage_of_total_supply": "15"}]}, "high"),
        ({"items": [{"percentage_of_total_supply": 30}]}, "medium"),
        ({"items": [{"percentage_of_total_supply": 3}]}, "low"),
    ],
)
def test_holder_concentration(holders, expected):
    assert holder_concentration(holders)["concentration"] == expected


def test_wallet_type_prefers_nft_collectors():
    portfolio = {"nftCount": 6, "tokenCount": 10, "defiTokens": 5, "stablecoins": 0}
    patterns = {"contractInteractions": 0, "totalTransactions": 500}

    assert determine_wallet_type(patterns, portfolio) == "NFT Collector"
    assert determine_wallet_type(patterns, {**portfolio, "nftCount": 0}) == "DeFi User"


async def test_lifespan_requires_dune_key(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DUNE_API_KEY", raising=False)
    settings = Web3StatsSettings(_env_file=None)  # type: ignore[call-arg]

    async with httpx.AsyncClient(transport=httpx.MockTransport(FakeUpstream())) as http:
        mcp = create_server(settings, http_client=http)
        with pytest.raises(ConfigurationError, match="DUNE_API_KEY"):
            async with mcp.runner().run():
                pass
