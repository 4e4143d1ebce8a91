"""
OKXDexClient - entry point for the OKX DEX aggregator

Wires configuration, the signed HTTP client and the DexAPI facade.
"""

from __future__ import annotations

from typing import Optional

from .api import DexAPI
from .config import OKXConfig
from .infra import HTTPClient


class OKXDexClient:
    """
    OKX DEX aggregator client

    Usage:
        # Credentials and wallets from environment / .env
        client = OKXDexClient()

        # Or explicit configuration
        client = OKXDexClient(OKXConfig(
            api_key="...", secret_key="...", api_passphrase="...", project_id="...",
            solana=SolanaConfig(private_key="...", rpc_url="https://api.mainnet-beta.solana.com"),
        ))

        quote = client.dex.get_quote({"chainId": "501", ...})
        result = client.dex.execute_swap(SwapParams(chain_id="501", ..., slippage="0.005"))
    """

    def __init__(self, config: Optional[OKXConfig] = None):
        """
        Args:
            config: Client configuration (defaults to OKXConfig.from_env())

        Raises:
            ConfigurationError: If API credentials are missing
        """
        self._config = config or OKXConfig.from_env()
        self._http = HTTPClient(self._config)
        self._dex = DexAPI(self._http, self._config)

    @property
    def config(self) -> OKXConfig:
        return self._config

    @property
    def http(self) -> HTTPClient:
        return self._http

    @property
    def dex(self) -> DexAPI:
        """
        Aggregator facade

        Provides:
        - get_quote / get_swap_data / get_tokens / get_liquidity / get_chain_data
        - execute_swap / execute_approval / execute_solana_swap_instructions
        - get_gas_price / get_gas_limit / simulate_transaction / broadcast_transaction
        - get_transaction_orders
        """
        return self._dex

    def close(self):
        self._dex.close()
        self._http.close()

    def __enter__(self) -> "OKXDexClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"OKXDexClient(base_url={self._http.base_url})"
