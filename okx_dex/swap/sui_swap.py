"""
Sui swap executor

The aggregator returns base64 BCS TransactionData. The executor replaces the
sender and gas data (reference gas price, fixed budget, and gas coins when
the payload carries none), signs and executes it, then waits for effects.
"""

import base64
import binascii
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from ..config import OKXConfig, get_config
from ..errors import ConfigurationError, InsufficientGasObjects, PayloadError, TransactionError
from ..infra import SuiWallet, create_sui_wallet, execute_with_retry, CorrelationContext
from ..infra.sui_bcs import BcsError, ObjectRef, TransactionData, address_from_hex, decode_transaction_data
from ..types import ChainConfig, SwapParams, SwapResult
from .base import extract_quote_data, require_tx

logger = logging.getLogger(__name__)

# Protocol limit on gas payment objects
MAX_GAS_OBJECTS = 256

_ZERO_ADDRESS = bytes(32)


def select_gas_coins(
    coins: Iterable[Mapping[str, Any]],
    budget: int,
    owner: str,
    exclude: Optional[Set[bytes]] = None,
) -> List[ObjectRef]:
    """
    Pick SUI coins until their balance covers the budget

    Args:
        coins: suix_getCoins entries
        budget: Gas budget in MIST
        owner: Coin owner (for the error message)
        exclude: Object ids already used as transaction inputs

    Raises:
        InsufficientGasObjects: If the coins cannot cover the budget
    """
    exclude = exclude or set()
    selected: List[ObjectRef] = []
    total = 0
    for coin in coins:
        ref = ObjectRef.from_coin(coin)
        if ref.object_id in exclude:
            continue
        selected.append(ref)
        total += int(coin["balance"])
        if total >= budget:
            return selected
        if len(selected) >= MAX_GAS_OBJECTS:
            break
    raise InsufficientGasObjects(owner, budget, total)


def resolve_sui_wallet(config: OKXConfig) -> SuiWallet:
    """
    Raises:
        ConfigurationError: No Sui section
        SignerError: No private key, or it does not control the configured address
    """
    sui = config.sui
    if sui is None:
        raise ConfigurationError.missing("sui", "Sui configuration required for Sui execution.")
    return create_sui_wallet(sui.private_key, sui.rpc_url, sui.wallet_address)


class SuiSwapExecutor:
    """
    Usage:
        executor = SuiSwapExecutor(OKXConfig(sui=SuiConfig(private_key="suiprivkey1...")), network_config)
        result = executor.execute_swap(swap_response)
    """

    def __init__(
        self,
        config: OKXConfig,
        network_config: ChainConfig,
        wallet: Optional[SuiWallet] = None,
    ):
        self._config = config
        self._network = network_config
        self._wallet = wallet or resolve_sui_wallet(config)

    @property
    def gas_budget(self) -> int:
        return get_config().tx.sui_gas_budget

    def execute_swap(
        self,
        swap_data: Mapping[str, Any],
        params: Union[SwapParams, Dict[str, Any], None] = None,
    ) -> SwapResult:
        quote_data, router_result = extract_quote_data(swap_data)
        tx = require_tx(quote_data)

        try:
            tx_data = decode_transaction_data(base64.b64decode(tx["data"]))
        except (binascii.Error, BcsError) as e:
            raise PayloadError.undecodable("Sui transaction data", e)

        with CorrelationContext("sui_swap") as cid:
            logger.info(f"[{cid}] Executing Sui swap from {self._wallet.address}")
            digest = execute_with_retry(
                lambda attempt: self._submit(tx_data),
                "sui_swap",
                max_retries=self._network.retries,
            )
            logger.info(f"[{cid}] Sui swap confirmed: {digest}")

        return SwapResult.from_router_result(digest, router_result, self._network.explorer)

    def build_transaction(self, tx_data: TransactionData, gas_price: int) -> bytes:
        """Serialize with this wallet as sender and fresh gas data"""
        sender = address_from_hex(self._wallet.address)
        payment = tx_data.gas_data.payment
        owner = tx_data.gas_data.owner

        if not payment:
            coins = self._wallet.connection.iter_coins(self._wallet.address)
            payment = select_gas_coins(coins, self.gas_budget, self._wallet.address, tx_data.input_object_ids)
            owner = sender
        elif owner == _ZERO_ADDRESS:
            owner = sender

        return tx_data.with_gas(sender, gas_price, self.gas_budget, payment, owner).to_bytes()

    def _submit(self, tx_data: TransactionData) -> str:
        client = self._wallet.connection
        gas_price = client.get_reference_gas_price()
        tx_bytes = self.build_transaction(tx_data, gas_price)

        signature = self._wallet.sign_transaction(tx_bytes)
        result = client.execute_transaction_block(
            base64.b64encode(tx_bytes).decode("ascii"),
            [signature],
        )
        digest = (result or {}).get("digest")
        if not digest:
            raise TransactionError.send_failed("no digest received")
        logger.info(f"Sui transaction submitted: {digest}")

        confirmation = client.wait_for_transaction(digest, timeout_seconds=self._network.timeout_seconds)
        status = ((confirmation.get("effects") or {}).get("status") or {})
        if status.get("status") != "success":
            raise TransactionError.rejected(
                digest, f"status {status.get('status')}: {status.get('error', 'unknown error')}"
            )
        return digest
