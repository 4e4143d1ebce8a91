"""
Type definitions for the OKX DEX client
"""

from .chain import (
    ChainConfig,
    DEFAULT_NETWORK_CONFIGS,
    EVM_CHAIN_IDS,
    SOLANA_CHAIN_ID,
    SUI_CHAIN_ID,
    TON_CHAIN_ID,
    TRON_CHAIN_ID,
    build_network_configs,
    is_evm_chain,
)
from .common import (
    format_display_amount,
    to_base_units,
    lamports_to_sol,
    sol_to_lamports,
)
from .params import (
    QuoteParams,
    SwapParams,
    ApproveTokenParams,
    GasLimitParams,
    SwapSimulationParams,
    BroadcastTransactionParams,
    TransactionOrdersParams,
    serialize_params,
)
from .result import (
    TokenDisplay,
    SwapDetails,
    SwapResult,
    ApprovalStatus,
    ApprovalOutcome,
    ApprovalResult,
    SimulationResult,
    ALREADY_APPROVED_MESSAGE,
)

__all__ = [
    # Chains
    "ChainConfig",
    "DEFAULT_NETWORK_CONFIGS",
    "EVM_CHAIN_IDS",
    "SOLANA_CHAIN_ID",
    "SUI_CHAIN_ID",
    "TON_CHAIN_ID",
    "TRON_CHAIN_ID",
    "build_network_configs",
    "is_evm_chain",
    # Amounts
    "format_display_amount",
    "to_base_units",
    "lamports_to_sol",
    "sol_to_lamports",
    # Params
    "QuoteParams",
    "SwapParams",
    "ApproveTokenParams",
    "GasLimitParams",
    "SwapSimulationParams",
    "BroadcastTransactionParams",
    "TransactionOrdersParams",
    "serialize_params",
    # Results
    "TokenDisplay",
    "SwapDetails",
    "SwapResult",
    "ApprovalStatus",
    "ApprovalOutcome",
    "ApprovalResult",
    "SimulationResult",
    "ALREADY_APPROVED_MESSAGE",
]
