"""
JSON-RPC clients

JsonRpcClient provides the transport shared by the Solana and Sui clients:
- Multiple endpoint fallback
- Retry logic
- Rate limit handling
- Request timeout management

SolanaRpcClient adds the Solana methods the executors need, including
blockhash-bounded confirmation.
"""

from __future__ import annotations

import base64
import logging
import time
import threading
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass

try:
    import httpx
except ImportError:
    httpx = None

from ..errors import RpcError, ConfigurationError, TransactionError
from ..config import get_config

logger = logging.getLogger(__name__)


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Per-client overrides; unset values fall back to the global
    config (okx_dex.config.RpcConfig).

    Usage:
        client = SolanaRpcClient(endpoint, config=RpcClientConfig(timeout_seconds=60))
    """
    timeout_seconds: float = None
    max_retries: int = None
    retry_delay_seconds: float = None
    commitment: str = None

    def __post_init__(self):
        defaults = get_config().rpc
        if self.timeout_seconds is None:
            self.timeout_seconds = defaults.timeout_seconds
        if self.max_retries is None:
            self.max_retries = defaults.max_retries
        if self.retry_delay_seconds is None:
            self.retry_delay_seconds = defaults.retry_delay_seconds
        if self.commitment is None:
            self.commitment = defaults.commitment


class JsonRpcClient:
    """
    JSON-RPC 2.0 over HTTP with endpoint fallback

    Transport failures are retried per endpoint, then the next endpoint is
    tried. A JSON-RPC error object in the response is raised immediately as
    RpcError with the node's code in details["rpc_error_code"].
    """

    def __init__(
        self,
        endpoint: Union[str, List[str]],
        config: Optional[RpcClientConfig] = None,
    ):
        if httpx is None:
            raise RuntimeError("httpx is required for RPC calls. Install with: pip install httpx")

        self._endpoints = [endpoint] if isinstance(endpoint, str) else list(endpoint)
        if not self._endpoints or not all(self._endpoints):
            raise ConfigurationError.missing("RPC endpoint")

        self._config = config or RpcClientConfig()
        self._current_endpoint_idx = 0
        self._request_id = 0
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def commitment(self) -> str:
        return self._config.commitment

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _rotate_endpoint(self):
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override

        Returns:
            The "result" member of the response

        Raises:
            RpcError: On node error or when every endpoint fails
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        timeout_val = timeout or self._config.timeout_seconds

        last_error: Optional[Exception] = None

        for _ in range(len(self._endpoints)):
            for attempt in range(self._config.max_retries):
                try:
                    response = client.post(self.endpoint, json=body, timeout=timeout_val)

                    if response.status_code == 429:
                        last_error = RpcError.rate_limited(self.endpoint)
                        logger.warning(f"Rate limited by {self.endpoint} ({method})")
                    else:
                        response.raise_for_status()
                        result = response.json()

                        if "error" in result:
                            error = result["error"] or {}
                            rpc_error = RpcError(
                                f"RPC error: {error.get('message', error)}",
                                endpoint=self.endpoint,
                            )
                            rpc_error.details["rpc_error_code"] = error.get("code")
                            rpc_error.details["rpc_error_data"] = error.get("data")
                            raise rpc_error

                        return result.get("result")

                except httpx.TimeoutException:
                    last_error = RpcError.timeout(self.endpoint, timeout_val)
                    logger.warning(f"RPC timeout (attempt {attempt + 1}): {self.endpoint} {method}")

                except httpx.HTTPStatusError as e:
                    last_error = RpcError(
                        f"HTTP error {e.response.status_code}",
                        endpoint=self.endpoint,
                        original_error=e,
                    )
                    logger.warning(f"RPC HTTP error (attempt {attempt + 1}): {e}")

                except httpx.RequestError as e:
                    last_error = RpcError.connection_failed(self.endpoint, e)
                    logger.warning(f"RPC connection error (attempt {attempt + 1}): {e}")

                if attempt < self._config.max_retries - 1:
                    time.sleep(self._config.retry_delay_seconds * (attempt + 1))

            self._rotate_endpoint()

        raise last_error or RpcError("All RPC endpoints failed")

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SolanaRpcClient(JsonRpcClient):
    """
    Solana RPC client

    Usage:
        rpc = SolanaRpcClient("https://api.mainnet-beta.solana.com")
        latest = rpc.get_latest_blockhash()
        sig = rpc.send_transaction(signed_bytes, max_retries=3)
        rpc.confirm_transaction(sig, latest["lastValidBlockHeight"])
    """

    def get_account_info(
        self,
        address: str,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Get account info, or None if the account does not exist"""
        params = [
            address,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getAccountInfo", params)
        return result.get("value") if result else None

    def get_account_data(self, address: str, commitment: Optional[str] = None) -> Optional[bytes]:
        """Raw account data bytes, or None if the account does not exist"""
        info = self.get_account_info(address, encoding="base64", commitment=commitment)
        if not info:
            return None
        data = info.get("data")
        # base64 encoding returns [payload, "base64"]
        if isinstance(data, list):
            data = data[0]
        return base64.b64decode(data)

    def get_latest_blockhash(self, commitment: Optional[str] = None) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        result = self.call("getLatestBlockhash", [{"commitment": commitment or self.commitment}])
        return result.get("value", {}) if result else {}

    def get_block_height(self, commitment: Optional[str] = None) -> int:
        """Get current block height"""
        return self.call("getBlockHeight", [{"commitment": commitment or self.commitment}])

    def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        """Status of a single signature, or None if the node has not seen it"""
        result = self.call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        if not result or not result.get("value"):
            return None
        return result["value"][0]

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """
        Send signed transaction

        Args:
            transaction: Signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level
            max_retries: Max rebroadcasts performed by the node

        Returns:
            Transaction signature (base58)
        """
        options: Dict[str, Any] = {
            "skipPreflight": skip_preflight,
            "preflightCommitment": preflight_commitment or self.commitment,
            "encoding": "base64",
        }
        if max_retries is not None:
            options["maxRetries"] = max_retries

        tx_data = base64.b64encode(transaction).decode("ascii")
        return self.call("sendTransaction", [tx_data, options])

    def confirm_transaction(
        self,
        signature: str,
        last_valid_block_height: int,
        commitment: Optional[str] = None,
        poll_interval: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Wait until the signature reaches the commitment level

        Polling stops once the chain passes last_valid_block_height, since
        the blockhash the transaction was signed with can no longer land.

        Returns:
            The final signature status

        Raises:
            TransactionError: rejected if the transaction executed with an
                error, confirmation_failed if the blockhash expired first
        """
        commitment = commitment or self.commitment
        poll_interval = poll_interval if poll_interval is not None else get_config().tx.confirmation_poll_interval
        accepted = ("confirmed", "finalized") if commitment != "finalized" else ("finalized",)

        while True:
            try:
                status = self.get_signature_status(signature)
            except RpcError as e:
                logger.debug(f"Error checking transaction status: {e}")
                status = None

            if status:
                if status.get("err"):
                    logger.warning(f"Transaction {signature} failed on-chain: {status.get('err')}")
                    raise TransactionError.rejected(signature, status.get("err"))
                if status.get("confirmationStatus") in accepted:
                    return status

            block_height = self.get_block_height(commitment)
            if block_height > last_valid_block_height:
                raise TransactionError.confirmation_failed(
                    signature,
                    f"block height exceeded (current {block_height} > last valid {last_valid_block_height})",
                )

            time.sleep(poll_interval)
