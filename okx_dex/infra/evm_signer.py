"""
EVM wallet adapter using web3.py

Local private key signing only (no remote signer). The wallet owns the
Web3 connection for its chain; executors read nonce and gas through it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

try:
    from web3 import Web3, HTTPProvider
    from eth_account import Account
    from eth_account.signers.local import LocalAccount
    from web3.middleware import ExtraDataToPOAMiddleware
    _HAS_WEB3 = True
except ImportError:
    Web3 = None
    HTTPProvider = None
    Account = None
    LocalAccount = None
    ExtraDataToPOAMiddleware = None
    _HAS_WEB3 = False

from ..errors import SignerError, ConfigurationError

logger = logging.getLogger(__name__)

# PoA chains whose blocks carry oversized extraData (BSC mainnet / testnet)
POA_CHAIN_IDS = (56, 97)

# Minimal ERC20 ABI for approvals
ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    },
]


def create_web3(
    rpc_url: str,
    chain_id: Optional[int] = None,
    timeout: int = 30,
) -> "Web3":
    """
    Create Web3 instance for a chain

    Args:
        rpc_url: RPC endpoint URL
        chain_id: Known chain id; PoA middleware is injected for BSC
        timeout: Request timeout in seconds
    """
    if not _HAS_WEB3:
        raise RuntimeError("web3 is required. Install with: pip install web3")
    if not rpc_url:
        raise ConfigurationError.missing("evm.rpc_url", "Set EVM_RPC_URL or pass rpc_url.")

    web3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

    if chain_id in POA_CHAIN_IDS:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    return web3


class EVMWallet:
    """
    EVM wallet adapter

    Usage:
        wallet = EVMWallet.from_private_key("0x...", rpc_url="https://mainnet.base.org", chain_id=8453)
        raw_tx, tx_hash = wallet.sign_transaction(tx_dict)
        wallet.send_raw_transaction(raw_tx)
        receipt = wallet.wait_for_receipt(tx_hash, timeout=60)
    """

    def __init__(self, account: "LocalAccount", web3: "Web3"):
        if not _HAS_WEB3:
            raise RuntimeError(
                "web3 and eth-account are required for EVMWallet. "
                "Install with: pip install web3 eth-account"
            )
        self._account = account
        self._web3 = web3

    @property
    def address(self) -> str:
        """Checksummed wallet address"""
        return self._account.address

    @property
    def web3(self) -> "Web3":
        return self._web3

    def sign_transaction(self, tx_dict: Dict[str, Any]) -> Tuple[bytes, str]:
        """
        Sign a transaction locally

        Returns:
            (raw_tx_bytes, tx_hash_hex)

        Raises:
            SignerError: If eth_account rejects the transaction dict
        """
        try:
            signed = self._account.sign_transaction(tx_dict)
        except (TypeError, ValueError, KeyError) as e:
            raise SignerError.failed(str(e))
        return signed.raw_transaction, _hex(signed.hash)

    def send_raw_transaction(self, raw_tx: bytes) -> str:
        tx_hash = self._web3.eth.send_raw_transaction(raw_tx)
        return _hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout: float = 60) -> Dict[str, Any]:
        return self._web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        rpc_url: Optional[str] = None,
        chain_id: Optional[int] = None,
        web3: Optional["Web3"] = None,
    ) -> "EVMWallet":
        """
        Create wallet from a hex private key (with or without 0x prefix)

        Either an existing Web3 instance or an RPC URL must be given.
        """
        if not _HAS_WEB3:
            raise RuntimeError("web3 and eth-account are required")
        if not private_key:
            raise SignerError.not_configured("EVM")

        if not private_key.startswith("0x"):
            private_key = "0x" + private_key

        account = Account.from_key(private_key)
        if web3 is None:
            web3 = create_web3(rpc_url, chain_id=chain_id)
        return cls(account, web3)

    def __repr__(self) -> str:
        return f"EVMWallet(address={self.address})"


def _hex(value: Any) -> str:
    """HexBytes / bytes -> 0x-prefixed hex string"""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    text = bytes(value).hex()
    return "0x" + text
