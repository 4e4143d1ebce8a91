"""
EVM swap executor

Signs the aggregator's router call locally and broadcasts it through the
wallet's Web3 connection. Nonce and gas are re-read on every attempt.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

try:
    from web3 import Web3
except ImportError:
    Web3 = None

from ..config import OKXConfig
from ..errors import ConfigurationError, PayloadError, SignerError, TransactionError
from ..infra import EVMWallet, execute_with_retry, CorrelationContext
from ..types import ChainConfig, SwapParams, SwapResult
from .base import extract_quote_data, require_tx

logger = logging.getLogger(__name__)

# Aggregator gas and gas price are scaled by 3/2 before signing
GAS_MULTIPLIER_NUM = 3
GAS_MULTIPLIER_DEN = 2


def to_int(value: Union[str, int, None]) -> int:
    """Decimal or 0x-hex quantity -> int (None / "" -> 0)"""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def scale_gas(value: int) -> int:
    return value * GAS_MULTIPLIER_NUM // GAS_MULTIPLIER_DEN


def checksum(address: str) -> str:
    if Web3 is None:
        raise RuntimeError("web3 is required. Install with: pip install web3")
    return Web3.to_checksum_address(address)


def parse_swap_tx(tx: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Static fields of the aggregator tx: checksummed to, calldata and int quantities

    gas / gasPrice of 0 mean "ask the node" at send time.

    Raises:
        PayloadError: Missing or invalid "to", or a non-numeric quantity
    """
    to = tx.get("to")
    if not to:
        raise PayloadError("Invalid transaction: missing 'to' address")
    try:
        to = checksum(to)
    except ValueError as e:
        raise PayloadError.undecodable("EVM transaction 'to' address", e)

    quantities = {}
    for field in ("value", "gas", "gasPrice"):
        try:
            quantities[field] = to_int(tx.get(field))
        except (TypeError, ValueError) as e:
            raise PayloadError.undecodable(f"EVM transaction '{field}'", e)

    return {"to": to, "data": tx.get("data") or "0x", **quantities}


def resolve_evm_wallet(config: OKXConfig, network_config: ChainConfig) -> EVMWallet:
    """
    Wallet from config.evm: a ready adapter, or one built from the private key

    Raises:
        ConfigurationError: No EVM section or no RPC URL
        SignerError: No wallet and no private key, or the key does not control wallet_address
    """
    evm = config.evm
    if evm is None:
        raise ConfigurationError.missing("evm", "EVM configuration required for EVM execution.")
    if evm.wallet is not None:
        return evm.wallet
    if not evm.private_key:
        raise SignerError.not_configured("EVM")
    if not evm.rpc_url:
        raise ConfigurationError.missing("evm.rpc_url", "Set EVM_RPC_URL or pass rpc_url.")
    wallet = EVMWallet.from_private_key(evm.private_key, rpc_url=evm.rpc_url, chain_id=int(network_config.id))
    if evm.wallet_address and evm.wallet_address.lower() != wallet.address.lower():
        raise SignerError.failed(
            f"private key controls {wallet.address}, not configured address {evm.wallet_address}"
        )
    return wallet


def ensure_receipt_success(receipt: Mapping[str, Any], tx_hash: str) -> None:
    if receipt.get("status") != 1:
        raise TransactionError.rejected(
            tx_hash, f"reverted in block {receipt.get('blockNumber')} (status {receipt.get('status')})"
        )


class EVMSwapExecutor:
    """
    Usage:
        executor = EVMSwapExecutor(OKXConfig(evm=EVMConfig(private_key=..., rpc_url=...)), network_config)
        result = executor.execute_swap(swap_response)
    """

    def __init__(
        self,
        config: OKXConfig,
        network_config: ChainConfig,
        wallet: Optional[EVMWallet] = None,
    ):
        self._config = config
        self._network = network_config
        self._wallet = wallet or resolve_evm_wallet(config, network_config)

    @property
    def wallet(self) -> EVMWallet:
        return self._wallet

    def execute_swap(
        self,
        swap_data: Mapping[str, Any],
        params: Union[SwapParams, Dict[str, Any], None] = None,
    ) -> SwapResult:
        quote_data, router_result = extract_quote_data(swap_data)
        tx = parse_swap_tx(require_tx(quote_data, need_data=False))

        with CorrelationContext(f"evm_{self._network.id}") as cid:
            logger.info(f"[{cid}] Executing EVM swap on chain {self._network.id} to {tx['to']}")
            tx_hash = execute_with_retry(
                lambda attempt: self._send(tx),
                "evm_swap",
                max_retries=self._network.retries,
            )
            logger.info(f"[{cid}] EVM swap confirmed: {tx_hash}")

        return SwapResult.from_router_result(tx_hash, router_result, self._network.explorer)

    def build_transaction(self, tx: Mapping[str, Any], nonce: int) -> Dict[str, Any]:
        """Signable legacy transaction dict with scaled gas (tx as returned by parse_swap_tx)"""
        web3 = self._wallet.web3
        gas_price = tx["gasPrice"] or web3.eth.gas_price

        gas = tx["gas"]
        if not gas:
            gas = web3.eth.estimate_gas({
                "from": self._wallet.address,
                "to": tx["to"],
                "data": tx["data"],
                "value": tx["value"],
            })

        return {
            "to": tx["to"],
            "data": tx["data"],
            "value": tx["value"],
            "gas": scale_gas(gas),
            "gasPrice": scale_gas(gas_price),
            "nonce": nonce,
            "chainId": int(self._network.id),
        }

    def _send(self, tx: Mapping[str, Any]) -> str:
        web3 = self._wallet.web3
        nonce = web3.eth.get_transaction_count(self._wallet.address, "latest")
        signable = self.build_transaction(tx, nonce)

        raw_tx, tx_hash = self._wallet.sign_transaction(signable)
        self._wallet.send_raw_transaction(raw_tx)
        logger.info(f"EVM transaction sent: {tx_hash} (nonce {nonce})")

        receipt = self._wallet.wait_for_receipt(tx_hash, timeout=self._network.timeout_seconds)
        ensure_receipt_success(receipt, tx_hash)
        return tx_hash
