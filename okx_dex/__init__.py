"""
OKX DEX - multi-chain client for the OKX Web3 DEX aggregator

Provides:
- Quotes, swap data, token lists and liquidity sources
- Swap execution on EVM chains, Solana and Sui
- ERC20 approvals (EVM)
- Gas estimation, simulation, broadcast and order tracking

TON and Tron are supported for read-only aggregator calls.
"""

from .client import OKXDexClient
from .api import DexAPI
from .config import (
    OKXConfig,
    EVMConfig,
    SolanaConfig,
    SuiConfig,
    setup_logging,
    enable_file_logging,
)
from .types import (
    ChainConfig,
    DEFAULT_NETWORK_CONFIGS,
    QuoteParams,
    SwapParams,
    ApproveTokenParams,
    GasLimitParams,
    SwapSimulationParams,
    BroadcastTransactionParams,
    TransactionOrdersParams,
    SwapResult,
    ApprovalResult,
    ApprovalOutcome,
    SimulationResult,
    format_display_amount,
    to_base_units,
)
from .errors import (
    OKXDexError,
    ErrorCode,
    APIError,
    ConfigurationError,
    ValidationError,
    PayloadError,
    TransactionError,
    InsufficientGasObjects,
    SignerError,
    OperationNotSupported,
)
from .swap import SwapExecutorFactory
from .infra import EVMWallet, SolanaWallet, SuiWallet, HTTPClient

__version__ = "0.1.0"

__all__ = [
    # Client
    "OKXDexClient",
    "DexAPI",
    "HTTPClient",
    # Config
    "OKXConfig",
    "EVMConfig",
    "SolanaConfig",
    "SuiConfig",
    "setup_logging",
    "enable_file_logging",
    # Types
    "ChainConfig",
    "DEFAULT_NETWORK_CONFIGS",
    "QuoteParams",
    "SwapParams",
    "ApproveTokenParams",
    "GasLimitParams",
    "SwapSimulationParams",
    "BroadcastTransactionParams",
    "TransactionOrdersParams",
    "SwapResult",
    "ApprovalResult",
    "ApprovalOutcome",
    "SimulationResult",
    "format_display_amount",
    "to_base_units",
    # Errors
    "OKXDexError",
    "ErrorCode",
    "APIError",
    "ConfigurationError",
    "ValidationError",
    "PayloadError",
    "TransactionError",
    "InsufficientGasObjects",
    "SignerError",
    "OperationNotSupported",
    # Execution
    "SwapExecutorFactory",
    "EVMWallet",
    "SolanaWallet",
    "SuiWallet",
]
