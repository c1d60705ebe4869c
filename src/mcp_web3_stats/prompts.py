"""Canned analysis prompts.

Each prompt renders a user request followed by the assistant's plan naming the
tools it will use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from pydantic import Field

from mcp_web3_stats.catalog import AssistantMessage, Message, UserMessage

if TYPE_CHECKING:
    from mcp_web3_stats.catalog import Web3StatsMCP

ChainId = Annotated[str, Field(alias="chainId", description="The chain ID (e.g., '1' for Ethereum, '137' for Polygon)")]
PlainChainId = Annotated[str, Field(alias="chainId", description="The chain ID")]


def evm_wallet_overview(
    wallet_address: Annotated[
        str, Field(alias="walletAddress", description="The EVM wallet address to get an overview for.")
    ],
) -> list[Message]:
    """Get an overview of an EVM wallet: current token balances and its 5 most recent activities."""
    return [
        UserMessage(
            f"Please provide an overview for EVM wallet {wallet_address}. I'm interested in its current token "
            "balances and a summary of its 5 most recent activities. Present the balances first, then the "
            "activity summary."
        ),
        AssistantMessage(
            "Okay, I will use the 'get_evm_balances' tool to fetch token balances and the 'get_evm_activity' tool "
            f"(with a limit of 5) to get recent activity for {wallet_address}. Then I will summarize the findings."
        ),
    ]


def analyze_erc20_token(
    chain_id: Annotated[
        str,
        Field(
            alias="chainId",
            description="The chain ID where the token resides (e.g., '1' for Ethereum). Input as a string.",
        ),
    ],
    token_address: Annotated[str, Field(alias="tokenAddress", description="The ERC20 token contract address.")],
) -> list[Message]:
    """Analyze a specific ERC20 token, showing its information and top 10 holders."""
    return [
        UserMessage(
            f"I need a detailed analysis of the ERC20 token {token_address} on chain {chain_id}. "
            "Please fetch its token information and list its top 10 holders."
        ),
        AssistantMessage(
            f"Understood. I will use 'get_evm_token_info' for chain {chain_id} and token {token_address} "
            f"(using chainId {chain_id} for the chain_ids parameter), and then 'get_evm_token_holders' for the "
            "same chain and token with a limit of 10. I will then present this information."
        ),
    ]


def svm_address_check(
    wallet_address: Annotated[str, Field(alias="walletAddress", description="The SVM wallet address to check.")],
) -> list[Message]:
    """Check basic information for an SVM address, including balances and its 3 most recent transactions."""
    return [
        UserMessage(
            f"Please provide a quick check for the SVM address {wallet_address}. Show me its token balances "
            "(for Solana by default) and its 3 most recent transactions."
        ),
        AssistantMessage(
            "Okay, I will use 'get_svm_balances' (defaulting to Solana chain) and 'get_svm_transactions' "
            f"(with a limit of 3) for the address {wallet_address} and summarize the results."
        ),
    ]


def comprehensive_wallet_analysis(
    wallet_address: Annotated[str, Field(alias="walletAddress", description="The wallet address to analyze")],
    chain_id: ChainId,
) -> list[Message]:
    """Perform a deep analysis of a wallet using both Blockscout and Dune APIs for comprehensive insights."""
    return [
        UserMessage(
            f"Please perform a comprehensive analysis of wallet {wallet_address} on chain {chain_id}. I need:\n"
            "1. A behavioral profile of the wallet\n"
            "2. Current portfolio composition\n"
            "3. Recent transaction patterns\n"
            "4. Risk assessment"
        ),
        AssistantMessage(
            "I'll perform a comprehensive analysis using the 'profile_wallet_behavior' tool which combines data "
            f"from both Blockscout and Dune APIs to give you detailed insights about wallet {wallet_address} "
            f"on chain {chain_id}."
        ),
    ]


def smart_contract_deep_dive(
    contract_address: Annotated[
        str, Field(alias="contractAddress", description="The smart contract address to investigate")
    ],
    chain_id: ChainId,
) -> list[Message]:
    """Investigate a smart contract thoroughly using combined Blockscout and Dune data."""
    return [
        UserMessage(
            f"I need a thorough investigation of smart contract {contract_address} on chain {chain_id}. "
            "Please provide:\n"
            "1. Contract verification status and source code availability\n"
            "2. Available read/write methods\n"
            "3. Token metrics if applicable\n"
            "4. Recent usage patterns"
        ),
        AssistantMessage(
            f"I'll investigate smart contract {contract_address} on chain {chain_id} using the "
            "'investigate_smart_contract' tool, which combines real-time Blockscout data with Dune analytics "
            "to provide comprehensive contract analysis."
        ),
    ]


def token_risk_assessment(
    token_address: Annotated[str, Field(alias="tokenAddress", description="The token contract address")],
    chain_id: ChainId,
) -> list[Message]:
    """Perform a detailed risk assessment of a token using multi-source analysis."""
    return [
        UserMessage(
            f"Please perform a comprehensive risk assessment of token {token_address} on chain {chain_id}. "
            "I need to understand:\n"
            "1. Holder concentration and distribution\n"
            "2. Recent transfer activity\n"
            "3. Liquidity and trading volume\n"
            "4. Any red flags or warnings"
        ),
        AssistantMessage(
            f"I'll perform a detailed token analysis using the 'token_deep_analysis' tool for {token_address} "
            f"on chain {chain_id}. This will combine real-time transfer data from Blockscout with holder "
            "analytics from Dune to provide a comprehensive risk assessment."
        ),
    ]


def transaction_post_mortem(
    tx_hash: Annotated[str, Field(alias="txHash", description="The transaction hash to analyze")],
    chain_id: ChainId,
) -> list[Message]:
    """Analyze a transaction's full impact and context using advanced tools."""
    return [
        UserMessage(
            f"Please analyze transaction {tx_hash} on chain {chain_id}. I want to understand:\n"
            "1. What exactly happened in this transaction\n"
            "2. All internal transactions and state changes\n"
            "3. Context about the sender and receiver\n"
            "4. Overall impact and complexity"
        ),
        AssistantMessage(
            f"I'll analyze transaction {tx_hash} on chain {chain_id} using the 'analyze_transaction_impact' "
            "tool, which provides deep insights by combining Blockscout's detailed traces with Dune's wallet "
            "context data."
        ),
    ]


def compare_networks() -> list[Message]:
    """Compare supported networks and their API capabilities."""
    return [
        UserMessage(
            "Show me all supported blockchain networks and compare which APIs (Dune vs Blockscout) are "
            "available for each chain."
        ),
        AssistantMessage(
            "I'll fetch the unified network support information that shows all supported chains and their API "
            "availability across both Dune and Blockscout."
        ),
    ]


def defi_protocol_investigation(
    protocol_name: Annotated[
        str, Field(alias="protocolName", description="The name of the DeFi protocol (e.g., 'Uniswap', 'Aave')")
    ],
    main_contract: Annotated[str, Field(alias="mainContract", description="The main protocol contract address")],
    chain_id: Annotated[str, Field(alias="chainId", description="The chain ID where the protocol operates")],
) -> list[Message]:
    """Investigate a DeFi protocol by analyzing its core contracts, TVL, and user activity patterns."""
    return [
        UserMessage(
            f"Investigate the {protocol_name} DeFi protocol on chain {chain_id}. Main contract: {main_contract}. "
            "I need:\n"
            "1. Contract verification and security analysis\n"
            "2. Top users and their activity patterns\n"
            "3. Token flows and liquidity analysis\n"
            "4. Recent significant transactions\n"
            "5. Risk assessment and red flags"
        ),
        AssistantMessage(
            f"I'll conduct a comprehensive investigation of {protocol_name} using multiple analysis tools to "
            "examine the contract, user patterns, and transaction flows."
        ),
    ]


def token_launch_investigation(
    token_address: Annotated[str, Field(alias="tokenAddress", description="The token contract address")],
    chain_id: PlainChainId,
    launch_date: Annotated[
        str | None, Field(alias="launchDate", description="Optional: The token launch date (YYYY-MM-DD)")
    ] = None,
) -> list[Message]:
    """Perform forensic analysis on a newly launched token to identify potential risks or scams."""
    launched = f" launched on {launch_date}" if launch_date else ""
    return [
        UserMessage(
            f"Perform a forensic investigation of token {token_address} on chain {chain_id}{launched}. "
            "Check for:\n"
            "1. Contract code red flags (minting, pause, blacklist functions)\n"
            "2. Initial distribution and holder concentration\n"
            "3. Liquidity pool analysis and locks\n"
            "4. Developer wallet activity\n"
            "5. Similar contract deployments by same deployer\n"
            "6. Social engineering indicators"
        ),
        AssistantMessage(
            "I'll perform a comprehensive forensic analysis to identify any potential risks or scam indicators "
            "for this token launch."
        ),
    ]


def whale_movement_analysis(
    token_address: Annotated[str, Field(alias="tokenAddress", description="The token contract address to monitor")],
    chain_id: PlainChainId,
    threshold: Annotated[
        str | None,
        Field(description="Optional: Minimum USD value to consider as whale activity (default: $100,000)"),
    ] = None,
) -> list[Message]:
    """Track and analyze large holder (whale) movements for a specific token or protocol."""
    with_threshold = f" with threshold {threshold}" if threshold else ""
    return [
        UserMessage(
            f"Track whale movements for token {token_address} on chain {chain_id}{with_threshold}. Analyze:\n"
            "1. Large holder list and concentration changes\n"
            "2. Recent significant transfers (in/out)\n"
            "3. Accumulation or distribution patterns\n"
            "4. Correlation with price movements\n"
            "5. Cross-protocol activity by whales"
        ),
        AssistantMessage(
            "I'll analyze whale activity and large holder movements to identify accumulation/distribution "
            "patterns and their market impact."
        ),
    ]


def nft_collection_forensics(
    collection_address: Annotated[
        str, Field(alias="collectionAddress", description="The NFT collection contract address")
    ],
    chain_id: PlainChainId,
    include_rarity: Annotated[
        str | None,
        Field(
            alias="includeRarity",
            description="Optional: Include rarity analysis - 'true' or 'false' (default: true)",
        ),
    ] = None,
) -> list[Message]:
    """Comprehensive analysis of an NFT collection including rarity, trading patterns, and holder behavior."""
    rarity = "6. Rarity distribution analysis" if include_rarity != "false" else ""
    return [
        UserMessage(
            f"Analyze NFT collection {collection_address} on chain {chain_id}. Include:\n"
            "1. Collection metadata and verified status\n"
            "2. Holder distribution and concentration\n"
            "3. Trading volume and floor price trends\n"
            "4. Wash trading detection\n"
            "5. Blue chip holder overlap\n"
            f"{rarity}"
        ),
        AssistantMessage(
            "I'll perform a comprehensive NFT collection analysis including holder patterns, trading activity, "
            "and market dynamics."
        ),
    ]


def bridge_transaction_verification(
    bridge_contract: Annotated[str, Field(alias="bridgeContract", description="The bridge contract address")],
    source_chain: Annotated[str, Field(alias="sourceChain", description="Source chain ID")],
    tx_hash: Annotated[
        str | None, Field(alias="txHash", description="Optional: Specific transaction to verify")
    ] = None,
    target_chain: Annotated[str | None, Field(alias="targetChain", description="Optional: Target chain ID")] = None,
) -> list[Message]:
    """Verify and analyze cross-chain bridge transactions for security and completion status."""
    target = f" bridging to chain {target_chain}" if target_chain else ""
    transaction = f" for transaction {tx_hash}" if tx_hash else ""
    last_check = "6. Specific transaction status and verification" if tx_hash else "6. Pending/stuck transactions"
    return [
        UserMessage(
            f"Analyze bridge {bridge_contract} on chain {source_chain}{target}{transaction}. Check:\n"
            "1. Bridge contract verification and security\n"
            "2. Recent bridge transactions and success rate\n"
            "3. Liquidity on both sides\n"
            "4. Fee structure analysis\n"
            "5. Known security incidents\n"
            f"{last_check}"
        ),
        AssistantMessage(
            "I'll analyze the bridge contract and transactions to verify security and operational status."
        ),
    ]


def mev_activity_detection(
    chain_id: PlainChainId,
    target_address: Annotated[
        str | None, Field(alias="targetAddress", description="Optional: Specific address or contract to monitor")
    ] = None,
    block_range: Annotated[
        str | None, Field(alias="blockRange", description="Optional: Block range to analyze (e.g., 'latest-100')")
    ] = None,
) -> list[Message]:
    """Detect and analyze MEV (Maximum Extractable Value) activity including sandwich attacks and arbitrage."""
    involving = f" involving {target_address}" if target_address else ""
    blocks = f" in blocks {block_range}" if block_range else " in recent blocks"
    return [
        UserMessage(
            f"Detect MEV activity on chain {chain_id}{involving}{blocks}. Identify:\n"
            "1. Sandwich attacks (front-run + back-run patterns)\n"
            "2. Arbitrage transactions across DEXes\n"
            "3. Liquidation races\n"
            "4. NFT MEV (trait sniping, floor sweeping)\n"
            "5. MEV bot identification and profit analysis"
        ),
        AssistantMessage(
            "I'll scan for MEV patterns including sandwich attacks, arbitrage, and other extractable value "
            "activities."
        ),
    ]


def gas_optimization_audit(
    address: Annotated[str, Field(description="Contract or wallet address to analyze")],
    chain_id: PlainChainId,
    timeframe: Annotated[str | None, Field(description="Optional: Analysis timeframe (e.g., '7d', '30d')")] = None,
) -> list[Message]:
    """Analyze gas usage patterns and identify optimization opportunities for contracts or users."""
    over = f" over {timeframe}" if timeframe else ""
    return [
        UserMessage(
            f"Perform gas optimization analysis for {address} on chain {chain_id}{over}. Analyze:\n"
            "1. Gas consumption by function/transaction type\n"
            "2. Comparison with similar contracts/users\n"
            "3. Peak vs off-peak usage patterns\n"
            "4. Failed transaction gas waste\n"
            "5. Specific optimization recommendations\n"
            "6. Estimated savings potential"
        ),
        AssistantMessage(
            "I'll analyze gas usage patterns and identify specific optimization opportunities to reduce "
            "transaction costs."
        ),
    ]


def dao_treasury_audit(
    treasury_address: Annotated[str, Field(alias="treasuryAddress", description="The DAO treasury address")],
    chain_id: PlainChainId,
    governance_contract: Annotated[
        str | None, Field(alias="governanceContract", description="Optional: Governance contract address")
    ] = None,
) -> list[Message]:
    """Comprehensive audit of a DAO treasury including assets, spending, and governance."""
    governance = f" with governance {governance_contract}" if governance_contract else ""
    return [
        UserMessage(
            f"Audit DAO treasury {treasury_address} on chain {chain_id}{governance}. Analyze:\n"
            "1. Current asset composition and diversification\n"
            "2. Inflow/outflow patterns and burn rate\n"
            "3. Large transactions and approval process\n"
            "4. Yield generation strategies\n"
            "5. Risk assessment (concentration, liquidity)\n"
            "6. Governance participation and proposal history"
        ),
        AssistantMessage(
            "I'll conduct a comprehensive treasury audit analyzing assets, spending patterns, and governance "
            "effectiveness."
        ),
    ]


def yield_strategy_comparison(
    asset: Annotated[str, Field(description="The asset to analyze (e.g., 'USDC', 'ETH')")],
    chain_id: PlainChainId,
    min_tvl: Annotated[
        str | None, Field(alias="minTvl", description="Optional: Minimum TVL for protocols to consider")
    ] = None,
) -> list[Message]:
    """Compare and analyze DeFi yield strategies across protocols."""
    tvl = f" with minimum TVL {min_tvl}" if min_tvl else ""
    return [
        UserMessage(
            f"Compare yield strategies for {asset} on chain {chain_id}{tvl}. Analyze:\n"
            "1. Current yield rates across protocols\n"
            "2. Risk assessment (smart contract, liquidity, impermanent loss)\n"
            "3. Gas costs and minimum viable amounts\n"
            "4. Historical yield stability\n"
            "5. Composability opportunities\n"
            "6. Optimal strategy recommendations"
        ),
        AssistantMessage(
            f"I'll analyze and compare yield opportunities across DeFi protocols to identify optimal strategies "
            f"for {asset}."
        ),
    ]


PROMPTS = (
    comprehensive_wallet_analysis,
    smart_contract_deep_dive,
    token_risk_assessment,
    transaction_post_mortem,
    compare_networks,
    defi_protocol_investigation,
    token_launch_investigation,
    whale_movement_analysis,
    nft_collection_forensics,
    bridge_transaction_verification,
    mev_activity_detection,
    gas_optimization_audit,
    dao_treasury_audit,
    yield_strategy_comparison,
    evm_wallet_overview,
    analyze_erc20_token,
    svm_address_check,
)


def register(mcp: Web3StatsMCP) -> None:
    for fn in PROMPTS:
        mcp.add_prompt(fn)
