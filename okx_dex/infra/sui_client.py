"""
Sui fullnode JSON-RPC client
"""

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

from ..errors import RpcError, TransactionError
from ..config import get_config
from .rpc import JsonRpcClient

logger = logging.getLogger(__name__)

SUI_COIN_TYPE = "0x2::sui::SUI"
SUI_MAINNET_URL = "https://fullnode.mainnet.sui.io:443"

DEFAULT_RESPONSE_OPTIONS = {"showEffects": True, "showEvents": True}


class SuiClient(JsonRpcClient):
    """
    Sui RPC client

    Usage:
        client = SuiClient("https://fullnode.mainnet.sui.io:443")
        price = client.get_reference_gas_price()
        result = client.execute_transaction_block(tx_b64, [signature])
        client.wait_for_transaction(result["digest"])
    """

    def get_reference_gas_price(self) -> int:
        return int(self.call("suix_getReferenceGasPrice", []))

    def get_coins(
        self,
        owner: str,
        coin_type: str = SUI_COIN_TYPE,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """One page of coins: {data, nextCursor, hasNextPage}"""
        return self.call("suix_getCoins", [owner, coin_type, cursor, limit]) or {}

    def iter_coins(self, owner: str, coin_type: str = SUI_COIN_TYPE) -> Iterator[Dict[str, Any]]:
        """Iterate every coin of a type owned by address, following pagination"""
        cursor = None
        while True:
            page = self.get_coins(owner, coin_type, cursor)
            yield from page.get("data") or []
            if not page.get("hasNextPage"):
                return
            cursor = page.get("nextCursor")

    def execute_transaction_block(
        self,
        tx_bytes_b64: str,
        signatures: List[str],
        options: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        return self.call(
            "sui_executeTransactionBlock",
            [tx_bytes_b64, signatures, options or DEFAULT_RESPONSE_OPTIONS],
        )

    def get_transaction_block(
        self,
        digest: str,
        options: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        return self.call("sui_getTransactionBlock", [digest, options or DEFAULT_RESPONSE_OPTIONS])

    def wait_for_transaction(
        self,
        digest: str,
        timeout_seconds: float = 60.0,
        poll_interval: Optional[float] = None,
        options: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        """
        Poll until the fullnode has indexed the transaction

        Raises:
            TransactionError: confirmation_failed on timeout
        """
        poll_interval = poll_interval if poll_interval is not None else get_config().tx.confirmation_poll_interval
        deadline = time.monotonic() + timeout_seconds

        while True:
            try:
                return self.get_transaction_block(digest, options)
            except RpcError as e:
                # Not indexed yet
                logger.debug(f"Sui transaction {digest} not available yet: {e}")

            if time.monotonic() >= deadline:
                raise TransactionError.confirmation_failed(
                    digest, f"not found after {timeout_seconds}s"
                )
            time.sleep(poll_interval)
