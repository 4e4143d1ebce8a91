"""
Solana swap executor for the instruction-list response form

The swap-instruction endpoint returns the instructions and the address
lookup tables they reference; the v0 message is compiled locally.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Mapping, Optional

try:
    from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
    from solders.hash import Hash
    from solders.instruction import AccountMeta, Instruction
    from solders.message import MessageV0
    from solders.pubkey import Pubkey
except ImportError:
    AddressLookupTable = None
    AddressLookupTableAccount = None
    Hash = None
    AccountMeta = None
    Instruction = None
    MessageV0 = None
    Pubkey = None

from ..config import OKXConfig
from ..errors import PayloadError
from ..infra import SolanaRpcClient, SolanaWallet, execute_with_retry, CorrelationContext
from ..types import ChainConfig, SwapResult
from .base import validate_router_result
from .solana_swap import CONFIRM_COMMITMENT, confirm_signature, resolve_solana_wallet, unsigned_transaction

logger = logging.getLogger(__name__)


def build_instructions(instruction_lists: List[Mapping[str, Any]]) -> List["Instruction"]:
    """
    Rebuild instructions from {programId, accounts: [{pubkey, isSigner, isWritable}], data(base64)}

    Raises:
        PayloadError: On a malformed entry
    """
    instructions = []
    for index, item in enumerate(instruction_lists):
        try:
            accounts = [
                AccountMeta(
                    Pubkey.from_string(account["pubkey"]),
                    bool(account.get("isSigner")),
                    bool(account.get("isWritable")),
                )
                for account in item.get("accounts") or []
            ]
            instructions.append(
                Instruction(
                    Pubkey.from_string(item["programId"]),
                    base64.b64decode(item.get("data") or ""),
                    accounts,
                )
            )
        except (KeyError, ValueError, binascii.Error) as e:
            raise PayloadError.undecodable(f"instruction #{index}", e)
    return instructions


def fetch_lookup_tables(connection: SolanaRpcClient, addresses: List[str]) -> List["AddressLookupTableAccount"]:
    """Load lookup table accounts; tables that no longer exist are skipped"""
    tables = []
    for address in addresses:
        data = connection.get_account_data(address)
        if data is None:
            logger.warning(f"Address lookup table {address} not found, skipping")
            continue
        table = AddressLookupTable.deserialize(data)
        tables.append(AddressLookupTableAccount(Pubkey.from_string(address), list(table.addresses)))
    return tables


def instruction_entry(response: Mapping[str, Any]) -> Dict[str, Any]:
    """The instruction payload, whether the API returned data as a list or an object"""
    data = response.get("data") if "data" in response else response
    if isinstance(data, list):
        data = data[0] if data else None
    if not data or not data.get("instructionLists"):
        raise PayloadError("Invalid swap instruction data: missing instructionLists")
    return data


class SolanaInstructionExecutor:
    """
    Usage:
        executor = SolanaInstructionExecutor(config, network_config)
        result = executor.execute_instructions(dex.get_solana_swap_instruction(params))
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

    def execute_instructions(self, instruction_data: Mapping[str, Any]) -> SwapResult:
        entry = instruction_entry(instruction_data)
        router_result = entry.get("routerResult")
        if not router_result:
            raise PayloadError.missing_router_result()
        validate_router_result(router_result)

        instructions = build_instructions(entry["instructionLists"])
        lookup_addresses = entry.get("addressLookupTableAccount") or []

        with CorrelationContext("solana_ix") as cid:
            logger.info(
                f"[{cid}] Executing {len(instructions)} Solana instructions "
                f"with {len(lookup_addresses)} lookup tables"
            )
            lookup_tables = fetch_lookup_tables(self._wallet.connection, lookup_addresses)
            signature = execute_with_retry(
                lambda attempt: self._submit(instructions, lookup_tables),
                "solana_instruction_swap",
                max_retries=self._network.retries,
            )
            logger.info(f"[{cid}] Solana instruction swap confirmed: {signature}")

        return SwapResult.from_router_result(signature, router_result, self._network.explorer)

    def compile_transaction(
        self,
        instructions: List["Instruction"],
        lookup_tables: List["AddressLookupTableAccount"],
        blockhash: "Hash",
    ):
        message = MessageV0.try_compile(self._wallet.public_key, instructions, lookup_tables, blockhash)
        return unsigned_transaction(message)

    def _submit(self, instructions, lookup_tables) -> str:
        connection = self._wallet.connection
        latest = connection.get_latest_blockhash(CONFIRM_COMMITMENT)
        blockhash = Hash.from_string(latest["blockhash"])

        unsigned = self.compile_transaction(instructions, lookup_tables, blockhash)
        signature = self._wallet.sign_and_send_transaction(
            unsigned,
            skip_preflight=False,
            preflight_commitment=CONFIRM_COMMITMENT,
            max_retries=self._network.retries,
        )
        confirm_signature(connection, signature, latest["lastValidBlockHeight"])
        return signature
