import json

import pytest

from mcp_web3_stats.resources import DUNE_SUPPORTED_CHAINS_URI, SUPPORTED_NETWORKS_URI, load_table, merge_networks
from mcp_web3_stats.server.runner import RunningServer
from mcp_web3_stats.types import INVALID_PARAMS, RESOURCE_NOT_FOUND
from tests.helpers import FakeUpstream, rpc

pytestmark = pytest.mark.anyio

DUNE_CHAINS = {
    "chains": [
        {"chain_id": 1, "name": "ethereum", "endpoints": {"balances": True, "activity": True, "collectibles": False}},
        {"chain_id": 59144, "name": "linea", "endpoints": {"balances": True}},
    ]
}


def test_merge_networks_combines_both_sources():
    merged = merge_networks(DUNE_CHAINS)
    networks = merged["networks"]

    assert networks["1"]["blockscout"] == {"available": True, "url": "https://eth.blockscout.com", "apiVersion": "v2"}
    assert networks["1"]["dune"] == {"available": True, "capabilities": {"balances": True, "activity": True}}
    assert networks["59144"] == {
        "chainId": "59144",
        "name": "linea",
        "blockscout": {"available": False},
        "dune": {"available": True, "capabilities": {"balances": True}},
    }
    assert networks["137"]["dune"] == {"available": False, "capabilities": {}}
    assert list(networks)[:3] == ["1", "10", "56"]
    assert list(networks)[-1] == "59144"
    assert merged["summary"] == {"totalNetworks": 10, "blockscoutOnly": 8, "duneOnly": 1, "bothApis": 1}


def test_merge_networks_without_dune_data():
    merged = merge_networks({"error": "Dune API Error: 500"})

    assert merged["summary"] == {"totalNetworks": 9, "blockscoutOnly": 9, "duneOnly": 0, "bothApis": 0}


@pytest.mark.parametrize(
    ("name", "key"),
    [
        ("stablecoins", "stablecoins"),
        ("dex_routers", "routers"),
        ("bridges", "bridges"),
        ("security_patterns", "patterns"),
        ("token_categories", "categories"),
    ],
)
def test_static_tables_are_packaged(name: str, key: str):
    table = load_table(name)

    assert table["lastUpdated"] == "2024-01-31"
    assert table["description"]
    assert key in table


async def test_resources_are_listed(running: RunningServer):
    response = await rpc(running, "resources/list")

    resources = {resource["uri"]: resource for resource in response["result"]["resources"]}
    assert set(resources) == {
        SUPPORTED_NETWORKS_URI,
        DUNE_SUPPORTED_CHAINS_URI,
        "web3-stats://tokens/stablecoins",
        "web3-stats://contracts/dex-routers",
        "web3-stats://contracts/bridges",
        "web3-stats://security/patterns",
        "web3-stats://tokens/categories",
    }
    assert resources["web3-stats://contracts/bridges"]["name"] == "Bridge Contracts"
    assert resources["web3-stats://contracts/bridges"]["mimeType"] == "application/json"


async def test_read_static_table(running: RunningServer, upstream: FakeUpstream):
    response = await rpc(running, "resources/read", {"uri": "web3-stats://tokens/stablecoins"})

    (contents,) = response["result"]["contents"]
    assert contents["mimeType"] == "application/json"
    table = json.loads(contents["text"])
    assert table["stablecoins"]["1"]["USDC"] == "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
    assert upstream.requests == []


async def test_read_supported_networks(running: RunningServer, upstream: FakeUpstream):
    upstream.add("/v1/evm/supported-chains", DUNE_CHAINS)

    response = await rpc(running, "resources/read", {"uri": SUPPORTED_NETWORKS_URI})

    (contents,) = response["result"]["contents"]
    assert json.loads(contents["text"])["summary"]["bothApis"] == 1


async def test_supported_networks_survives_dune_outage(running: RunningServer, upstream: FakeUpstream):
    upstream.add("/v1/evm/supported-chains", "unavailable", status_code=503)

    response = await rpc(running, "resources/read", {"uri": SUPPORTED_NETWORKS_URI})

    (contents,) = response["result"]["contents"]
    assert json.loads(contents["text"])["summary"]["duneOnly"] == 0


async def test_dune_chains_error_is_plain_text(running: RunningServer, upstream: FakeUpstream):
    upstream.add("/v1/evm/supported-chains", "unavailable", status_code=503)

    response = await rpc(running, "resources/read", {"uri": DUNE_SUPPORTED_CHAINS_URI})

    (contents,) = response["result"]["contents"]
    assert contents["mimeType"] == "text/plain"
    assert contents["text"] == "Dune API Error: 503 Service Unavailable. Details: unavailable"


async def test_unknown_resource(running: RunningServer):
    response = await rpc(running, "resources/read", {"uri": "web3-stats://nope"})

    assert response["error"]["code"] == RESOURCE_NOT_FOUND
    assert response["error"]["message"] == "Resource not found: web3-stats://nope"


async def test_prompts_are_listed_with_wire_argument_names(running: RunningServer):
    response = await rpc(running, "prompts/list")

    prompts = {prompt["name"]: prompt for prompt in response["result"]["prompts"]}
    assert len(prompts) == 17
    assert "arguments" not in prompts["compare_networks"]
    assert prompts["nft_collection_forensics"]["arguments"] == [
        {"name": "collectionAddress", "description": "The NFT collection contract address", "required": True},
        {"name": "chainId", "description": "The chain ID", "required": True},
        {
            "name": "includeRarity",
            "description": "Optional: Include rarity analysis - 'true' or 'false' (default: true)",
            "required": False,
        },
    ]


async def test_render_prompt(running: RunningServer):
    response = await rpc(
        running, "prompts/get", {"name": "evm_wallet_overview", "arguments": {"walletAddress": "0xabc"}}
    )

    result = response["result"]
    assert result["description"].startswith("Get an overview of an EVM wallet")
    user, assistant = result["messages"]
    assert user["role"] == "user"
    assert user["content"]["type"] == "text"
    assert "EVM wallet 0xabc" in user["content"]["text"]
    assert assistant["role"] == "assistant"
    assert "'get_evm_balances'" in assistant["content"]["text"]


@pytest.mark.parametrize(("include", "has_rarity"), [(None, True), ("true", True), ("false", False)])
async def test_nft_prompt_rarity_switch(running: RunningServer, include: str | None, has_rarity: bool):
    arguments = {"collectionAddress": "0xnft", "chainId": "1"}
    if include is not None:
        arguments["includeRarity"] = include

    response = await rpc(running, "prompts/get", {"name": "nft_collection_forensics", "arguments": arguments})

    text = response["result"]["messages"][0]["content"]["text"]
    assert ("6. Rarity distribution analysis" in text) is has_rarity


async def test_prompt_missing_argument(running: RunningServer):
    response = await rpc(running, "prompts/get", {"name": "analyze_erc20_token", "arguments": {"chainId": "1"}})

    assert response["error"]["code"] == INVALID_PARAMS
    assert response["error"]["message"] == "Missing required arguments for prompt analyze_erc20_token: tokenAddress"


async def test_unknown_prompt(running: RunningServer):
    response = await rpc(running, "prompts/get", {"name": "nope"})

    assert response["error"]["code"] == INVALID_PARAMS
    assert response["error"]["message"] == "Unknown prompt: nope"
