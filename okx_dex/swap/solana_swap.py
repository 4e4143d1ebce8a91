"""
Solana swap executor for serialized aggregator transactions

The aggregator returns a base58 transaction. Versioned transactions are
re-stamped with a fresh blockhash as-is; legacy transactions are decompiled,
get a compute unit limit instruction appended, and are recompiled with the
wallet as fee payer.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import base58

try:
    from solders.compute_budget import set_compute_unit_limit
    from solders.hash import Hash
    from solders.instruction import AccountMeta, Instruction
    from solders.message import Message, MessageV0
    from solders.signature import Signature
    from solders.transaction import Transaction, VersionedTransaction
except ImportError:
    set_compute_unit_limit = None
    Hash = None
    AccountMeta = None
    Instruction = None
    Message = None
    MessageV0 = None
    Signature = None
    Transaction = None
    VersionedTransaction = None

from ..config import OKXConfig, get_config
from ..errors import ConfigurationError, PayloadError
from ..infra import SolanaRpcClient, SolanaWallet, create_solana_wallet, execute_with_retry, CorrelationContext
from ..types import ChainConfig, SwapParams, SwapResult
from .base import extract_quote_data, require_tx

logger = logging.getLogger(__name__)

CONFIRM_COMMITMENT = "confirmed"


def resolve_solana_wallet(config: OKXConfig) -> SolanaWallet:
    """
    Wallet adapter from config.solana, or one built from its base58 key

    Raises:
        ConfigurationError: No Solana section, or no RPC URL for a raw key
        SignerError: Neither wallet nor private key
    """
    solana = config.solana
    if solana is None:
        raise ConfigurationError.missing("solana", "Solana configuration required for Solana execution.")
    if solana.wallet is not None:
        return solana.wallet
    return create_solana_wallet(private_key=solana.private_key, rpc_url=solana.rpc_url)


def unsigned_transaction(message: Union["Message", "MessageV0"]) -> "VersionedTransaction":
    """Transaction with a placeholder signature per required signer"""
    count = message.header.num_required_signatures
    return VersionedTransaction.populate(message, [Signature.default()] * count)


def confirm_signature(
    connection: SolanaRpcClient,
    signature: str,
    last_valid_block_height: int,
) -> None:
    connection.confirm_transaction(
        signature,
        last_valid_block_height,
        commitment=CONFIRM_COMMITMENT,
    )


def _deserialize_versioned(raw: bytes) -> "VersionedTransaction":
    return VersionedTransaction.from_bytes(raw)


def _restamp_versioned(tx: "VersionedTransaction", blockhash: "Hash") -> Union["Message", "MessageV0"]:
    message = tx.message
    if isinstance(message, MessageV0):
        return MessageV0(
            message.header,
            list(message.account_keys),
            blockhash,
            list(message.instructions),
            list(message.address_table_lookups),
        )
    header = message.header
    return Message.new_with_compiled_instructions(
        header.num_required_signatures,
        header.num_readonly_signed_accounts,
        header.num_readonly_unsigned_accounts,
        list(message.account_keys),
        blockhash,
        list(message.instructions),
    )


def decompile_legacy(message: "Message") -> List["Instruction"]:
    """Compiled instructions -> Instruction objects with full account metas"""
    keys = message.account_keys
    header = message.header
    signed = header.num_required_signatures
    writable_signed = signed - header.num_readonly_signed_accounts
    writable_unsigned = len(keys) - signed - header.num_readonly_unsigned_accounts

    def is_writable(index: int) -> bool:
        if index < signed:
            return index < writable_signed
        return index - signed < writable_unsigned

    instructions = []
    for compiled in message.instructions:
        accounts = [
            AccountMeta(keys[index], index < signed, is_writable(index))
            for index in compiled.accounts
        ]
        instructions.append(Instruction(keys[compiled.program_id_index], bytes(compiled.data), accounts))
    return instructions


class SolanaSwapExecutor:
    """
    Usage:
        executor = SolanaSwapExecutor(OKXConfig(solana=SolanaConfig(private_key=..., rpc_url=...)), network)
        result = executor.execute_swap(swap_response)
    """

    def __init__(
        self,
        config: OKXConfig,
        network_config: ChainConfig,
        wallet: Optional[SolanaWallet] = None,
    ):
        self._config = config
        self._network = network_config
        self._wallet = wallet or resolve_solana_wallet(config)

    @property
    def compute_units(self) -> int:
        solana = self._config.solana
        return (
            (solana.compute_units if solana else None)
            or self._network.compute_units
            or get_config().tx.solana_compute_units
        )

    @property
    def send_retries(self) -> int:
        solana = self._config.solana
        if solana is not None and solana.max_retries is not None:
            return solana.max_retries
        return self._network.retries

    def execute_swap(
        self,
        swap_data: Mapping[str, Any],
        params: Union[SwapParams, Dict[str, Any], None] = None,
    ) -> SwapResult:
        quote_data, router_result = extract_quote_data(swap_data)
        tx = require_tx(quote_data)

        try:
            raw = base58.b58decode(tx["data"])
        except ValueError as e:
            raise PayloadError.undecodable("Solana transaction (base58)", e)

        with CorrelationContext("solana_swap") as cid:
            logger.info(
                f"[{cid}] Executing Solana swap "
                f"{router_result['fromToken'].get('tokenSymbol')} -> {router_result['toToken'].get('tokenSymbol')}"
            )
            signature = execute_with_retry(
                lambda attempt: self._submit(raw),
                "solana_swap",
                max_retries=self._network.retries,
            )
            logger.info(f"[{cid}] Solana swap confirmed: {signature}")

        return SwapResult.from_router_result(signature, router_result, self._network.explorer)

    def prepare_transaction(self, raw: bytes, blockhash: "Hash") -> "VersionedTransaction":
        """
        Re-stamp a serialized transaction for signing

        Raises:
            PayloadError: If the bytes are neither a versioned nor a legacy transaction
        """
        try:
            versioned = _deserialize_versioned(raw)
        except Exception as e:
            logger.debug(f"Not a versioned transaction ({e}); trying legacy format")
        else:
            return unsigned_transaction(_restamp_versioned(versioned, blockhash))

        try:
            legacy = Transaction.from_bytes(raw)
        except Exception as e:
            raise PayloadError.undecodable("Solana transaction", e)

        instructions = decompile_legacy(legacy.message)
        instructions.append(set_compute_unit_limit(self.compute_units))
        message = Message.new_with_blockhash(instructions, self._wallet.public_key, blockhash)
        return unsigned_transaction(message)

    def _submit(self, raw: bytes) -> str:
        connection = self._wallet.connection
        latest = connection.get_latest_blockhash(CONFIRM_COMMITMENT)
        blockhash = Hash.from_string(latest["blockhash"])

        unsigned = self.prepare_transaction(raw, blockhash)
        signature = self._wallet.sign_and_send_transaction(
            unsigned,
            skip_preflight=False,
            preflight_commitment=CONFIRM_COMMITMENT,
            max_retries=self.send_retries,
        )
        confirm_signature(connection, signature, latest["lastValidBlockHeight"])
        return signature
