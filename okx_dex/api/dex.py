"""
Aggregator facade

Wraps the OKX Web3 DEX aggregator endpoints and routes execution to the
chain executors.
"""

import logging
import math
import threading
from typing import Any, Dict, Mapping, Union

from ..config import OKXConfig
from ..errors import ConfigurationError, ValidationError
from ..infra import HTTPClient
from ..swap import SwapExecutorFactory
from ..swap.evm_approve import dex_approve_address
from ..types import (
    ApprovalResult,
    ApproveTokenParams,
    BroadcastTransactionParams,
    ChainConfig,
    GasLimitParams,
    QuoteParams,
    SimulationResult,
    SwapParams,
    SwapResult,
    SwapSimulationParams,
    TransactionOrdersParams,
    build_network_configs,
    serialize_params,
)
from ..types.params import body_params, params_to_dict

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v5/dex"
AGGREGATOR = f"{API_PREFIX}/aggregator"
PRE_TRANSACTION = f"{API_PREFIX}/pre-transaction"
POST_TRANSACTION = f"{API_PREFIX}/post-transaction"

Params = Union[Mapping[str, Any], Any]


def validate_swap_params(params: Mapping[str, Any]) -> None:
    """
    Slippage policy for swap requests (camelCase keys)

    Raises:
        ValidationError: Before any network call
    """
    slippage = params.get("slippage")
    auto_slippage = params.get("autoSlippage")
    has_slippage = slippage is not None and slippage != ""

    if not has_slippage and not auto_slippage:
        raise ValidationError("Either slippage or autoSlippage must be provided", "slippage")

    if has_slippage:
        try:
            value = float(slippage)
        except (TypeError, ValueError):
            value = math.nan
        if math.isnan(value) or value < 0 or value > 1:
            raise ValidationError("Slippage must be between 0 and 1", "slippage")

    if auto_slippage and not params.get("maxAutoSlippage"):
        raise ValidationError(
            "maxAutoSlippageBps must be provided when autoSlippage is enabled",
            "maxAutoSlippage",
        )


class DexAPI:
    """
    OKX DEX aggregator API

    Provides:
    - Quotes, liquidity sources, chain metadata and token lists
    - Swap data with slippage validation
    - Swap execution on EVM chains, Solana and Sui
    - ERC20 approvals
    - Gas price / gas limit, simulation, broadcast and order tracking

    Usage:
        dex = DexAPI(HTTPClient(config), config)
        quote = dex.get_quote(QuoteParams(chain_id="8453", from_token_address=..., to_token_address=..., amount="1000000"))
        result = dex.execute_swap(SwapParams(chain_id="8453", ..., slippage="0.005", user_wallet_address=...))
    """

    def __init__(self, client: HTTPClient, config: OKXConfig):
        self._client = client
        self._config = config
        self._networks = build_network_configs(config.networks)
        # chain id -> wallet adapter, built once and shared by every execute_* call
        self._wallets: Dict[str, Any] = {}
        self._wallet_lock = threading.Lock()

    @property
    def networks(self) -> Mapping[str, ChainConfig]:
        """Read-only chain id -> ChainConfig table"""
        return self._networks

    def get_network_config(self, chain_id: str) -> ChainConfig:
        network = self._networks.get(str(chain_id))
        if network is None:
            raise ConfigurationError.network_not_found(chain_id)
        return network

    def _chain_wallet(self, chain_id: str, network: ChainConfig) -> Any:
        """Wallet for a chain, resolved on first use and reused afterwards"""
        with self._wallet_lock:
            wallet = self._wallets.get(chain_id)
            if wallet is None:
                wallet = SwapExecutorFactory.resolve_wallet(chain_id, self._config, network)
                self._wallets[chain_id] = wallet
                logger.debug(f"Resolved wallet for chain {chain_id}: {wallet!r}")
            return wallet

    def close(self):
        """Close RPC connections of wallets built from keys (caller-supplied wallets are left open)"""
        supplied = [section.wallet for section in (self._config.evm, self._config.solana) if section is not None]
        with self._wallet_lock:
            wallets = list(self._wallets.values())
            self._wallets.clear()
        for wallet in wallets:
            if any(wallet is other for other in supplied):
                continue
            close = getattr(wallet, "close", None)
            if close is not None:
                close()

    def _get(self, path: str, params: Params) -> Dict[str, Any]:
        return self._client.request("GET", path, serialize_params(params))

    def _post(self, path: str, params: Params) -> Dict[str, Any]:
        return self._client.request("POST", path, body_params(params))

    # ========== Aggregator ==========

    def get_quote(self, params: Union[QuoteParams, Dict[str, Any]]) -> Dict[str, Any]:
        return self._get(f"{AGGREGATOR}/quote", params)

    def get_liquidity(self, chain_id: str) -> Dict[str, Any]:
        """DEX liquidity sources available on a chain"""
        return self._get(f"{AGGREGATOR}/get-liquidity", {"chainId": chain_id})

    def get_chain_data(self, chain_id: str) -> Dict[str, Any]:
        """Chain metadata including dexTokenApproveAddress"""
        return self._get(f"{AGGREGATOR}/supported/chain", {"chainId": chain_id})

    def get_supported_chains(self, chain_id: str) -> Dict[str, Any]:
        return self.get_chain_data(chain_id)

    def get_tokens(self, chain_id: str) -> Dict[str, Any]:
        return self._get(f"{AGGREGATOR}/all-tokens", {"chainId": chain_id})

    def get_swap_data(self, params: Union[SwapParams, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Swap transaction data for a route

        Raises:
            ValidationError: Slippage policy violated (no request is sent)
        """
        validate_swap_params(params_to_dict(params))
        return self._get(f"{AGGREGATOR}/swap", params)

    def get_solana_swap_instruction(self, params: Union[SwapParams, Dict[str, Any]]) -> Dict[str, Any]:
        """Swap as a Solana instruction list plus address lookup tables"""
        validate_swap_params(params_to_dict(params))
        return self._get(f"{AGGREGATOR}/swap-instruction", params)

    # ========== Execution ==========

    def execute_swap(self, params: Union[SwapParams, Dict[str, Any]]) -> SwapResult:
        """
        Fetch swap data and execute it on the params' chain

        Raises:
            ValidationError: Bad slippage parameters
            ConfigurationError: Unknown network or chain without executor
            PayloadError: Unusable aggregator response
            TransactionError: Rejected on-chain or retries exhausted
        """
        chain_id = str(params_to_dict(params)["chainId"])
        swap_data = self.get_swap_data(params)
        network = self.get_network_config(chain_id)

        executor = SwapExecutorFactory.create_executor(
            chain_id, self._config, network, wallet=self._chain_wallet(chain_id, network)
        )
        result = executor.execute_swap(swap_data, params)
        logger.info(f"Swap executed on chain {chain_id}: {result.explorer_url}")
        return result

    def execute_solana_swap_instructions(self, params: Union[SwapParams, Dict[str, Any]]) -> SwapResult:
        """Execute a Solana swap from the instruction-list form"""
        chain_id = str(params_to_dict(params)["chainId"])
        network = self.get_network_config(chain_id)
        executor = SwapExecutorFactory.create_instruction_executor(
            chain_id, self._config, network, wallet=self._chain_wallet(chain_id, network)
        )

        instruction_data = self.get_solana_swap_instruction(params)
        return executor.execute_instructions(instruction_data)

    def execute_approval(self, params: Union[ApproveTokenParams, Dict[str, Any]]) -> ApprovalResult:
        """
        Approve the aggregator to spend an ERC20 token

        An existing allowance covering the amount is returned as
        ApprovalResult(already_approved=True) with an empty hash.
        """
        values = params_to_dict(params)
        chain_id = str(values["chainId"])
        network = self.get_network_config(chain_id)

        spender = dex_approve_address(self.get_chain_data(chain_id), chain_id)

        executor = SwapExecutorFactory.create_approve_executor(
            chain_id, self._config, network, self._client, wallet=self._chain_wallet(chain_id, network)
        )
        outcome = executor.handle_token_approval(
            chain_id,
            values["tokenContractAddress"],
            values["approveAmount"],
            spender_address=spender,
        )
        return ApprovalResult.from_outcome(outcome, network.explorer)

    # ========== Pre / post transaction ==========

    def get_gas_price(self, chain_index: str) -> Dict[str, Any]:
        return self._get(f"{PRE_TRANSACTION}/gas-price", {"chainIndex": chain_index})

    def get_gas_limit(self, params: Union[GasLimitParams, Dict[str, Any]]) -> Dict[str, Any]:
        return self._post(f"{PRE_TRANSACTION}/gas-limit", params)

    def simulate_transaction(self, params: Union[SwapSimulationParams, Dict[str, Any]]) -> SimulationResult:
        """
        Simulate a transaction before sending it

        Returns:
            SimulationResult with gas used, asset changes and risks; debug
            logs only when include_debug is set
        """
        body = body_params(params)
        include_debug = bool(body.get("includeDebug"))
        response = self._client.request("POST", f"{PRE_TRANSACTION}/simulate", body)

        data = response.get("data") or []
        entry = data[0] if isinstance(data, list) and data else (data if isinstance(data, dict) else {})
        return SimulationResult.from_api(entry, include_debug)

    def broadcast_transaction(self, params: Union[BroadcastTransactionParams, Dict[str, Any]]) -> Dict[str, Any]:
        return self._post(f"{PRE_TRANSACTION}/broadcast-transaction", params)

    def get_transaction_orders(self, params: Union[TransactionOrdersParams, Dict[str, Any]]) -> Dict[str, Any]:
        return self._get(f"{POST_TRANSACTION}/orders", params)
