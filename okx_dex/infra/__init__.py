"""
Infrastructure layer: signed REST client, chain RPC clients, wallets and retry
"""

from .http_client import HTTPClient, sign_request, iso_timestamp
from .rpc import JsonRpcClient, SolanaRpcClient, RpcClientConfig
from .retry import execute_with_retry, classify_error, CorrelationContext
from .solana_signer import Signer, LocalSigner, SolanaWallet, create_solana_wallet
from .evm_signer import EVMWallet, create_web3, ERC20_ABI
from .sui_client import SuiClient
from .sui_signer import SuiSigner, SuiWallet, create_sui_wallet, parse_sui_private_key

__all__ = [
    "HTTPClient",
    "sign_request",
    "iso_timestamp",
    "JsonRpcClient",
    "SolanaRpcClient",
    "RpcClientConfig",
    "execute_with_retry",
    "classify_error",
    "CorrelationContext",
    "Signer",
    "LocalSigner",
    "SolanaWallet",
    "create_solana_wallet",
    "EVMWallet",
    "create_web3",
    "ERC20_ABI",
    "SuiClient",
    "SuiSigner",
    "SuiWallet",
    "create_sui_wallet",
    "parse_sui_private_key",
]
