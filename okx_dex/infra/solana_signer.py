"""
Solana signing and wallet adapter

LocalSigner signs with a raw keypair. SolanaWallet pairs a signer with an
RPC connection and is the adapter both Solana executors talk to.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Protocol, Tuple, Union, runtime_checkable

try:
    import base58
    from solders.keypair import Keypair
    from solders.message import to_bytes_versioned
    from solders.pubkey import Pubkey
    from solders.signature import Signature
    from solders.transaction import VersionedTransaction
except ImportError:
    base58 = None
    Keypair = None
    to_bytes_versioned = None
    Pubkey = None
    Signature = None
    VersionedTransaction = None

from ..errors import SignerError, ConfigurationError
from .rpc import SolanaRpcClient

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for Solana transaction signers

    Implementations must provide:
    - pubkey: The signer's public key (base58)
    - sign(): Sign raw message bytes
    - sign_transaction(): Fill this signer's slot in a serialized transaction
    """

    @property
    def pubkey(self) -> str:
        ...

    def sign(self, message: bytes) -> bytes:
        ...

    def sign_transaction(self, unsigned_tx: bytes) -> Tuple[bytes, str]:
        """
        Args:
            unsigned_tx: Serialized VersionedTransaction

        Returns:
            (signed_tx_bytes, signature_base58)
        """
        ...


class LocalSigner:
    """
    Local signer using a Solana keypair

    Usage:
        signer = LocalSigner.from_base58(os.environ["SOLANA_PRIVATE_KEY"])
        signed_tx, sig = signer.sign_transaction(unsigned_tx_bytes)
    """

    def __init__(self, keypair: "Keypair"):
        if Keypair is None:
            raise RuntimeError("solders is required for LocalSigner. Install with: pip install solders")
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        return str(self._keypair.pubkey())

    def sign(self, message: bytes) -> bytes:
        return bytes(self._keypair.sign_message(message))

    def sign_transaction(self, unsigned_tx: bytes) -> Tuple[bytes, str]:
        """
        Sign a serialized versioned transaction

        The signature goes into the slot matching this keypair's position
        among the message's required signers; other slots are preserved.
        """
        tx = VersionedTransaction.from_bytes(unsigned_tx)
        message = tx.message
        required = message.header.num_required_signatures
        signers = list(message.account_keys[:required])

        our_pubkey = self._keypair.pubkey()
        if our_pubkey not in signers:
            raise SignerError.failed(
                f"wallet {our_pubkey} is not a required signer "
                f"(expected one of {[str(key) for key in signers]})"
            )

        # to_bytes_versioned adds the 0x80 prefix for v0 messages
        signature = self._keypair.sign_message(to_bytes_versioned(message))

        signatures = list(tx.signatures)[:required]
        signatures += [Signature.default()] * (required - len(signatures))
        signatures[signers.index(our_pubkey)] = signature

        signed_tx = VersionedTransaction.populate(message, signatures)
        return bytes(signed_tx), str(signature)

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from a 64-byte secret key"""
        if Keypair is None:
            raise RuntimeError("solders is required")
        return cls(Keypair.from_bytes(secret_key))

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from a base58 secret key (Phantom / Solflare export format)"""
        if base58 is None:
            raise RuntimeError("base58 and solders are required")
        try:
            secret_bytes = base58.b58decode(secret_key)
        except ValueError as e:
            raise ConfigurationError.invalid("solana.private_key", f"not base58: {e}")
        if len(secret_bytes) != 64:
            raise ConfigurationError.invalid(
                "solana.private_key", f"expected 64 bytes, got {len(secret_bytes)}"
            )
        return cls.from_bytes(secret_bytes)

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        with open(path, "rb") as f:
            content = f.read()

        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {path}")


class SolanaWallet:
    """
    Solana wallet adapter

    Exposes the public key, an RPC connection, and sign / sign-and-send
    over solders VersionedTransaction objects.

    Usage:
        wallet = create_solana_wallet(private_key="...", rpc_url="https://api.mainnet-beta.solana.com")
        signature = wallet.sign_and_send_transaction(tx, max_retries=3)
    """

    def __init__(self, signer: Signer, connection: SolanaRpcClient):
        self._signer = signer
        self._connection = connection

    @property
    def pubkey(self) -> str:
        return self._signer.pubkey

    @property
    def public_key(self) -> "Pubkey":
        return Pubkey.from_string(self._signer.pubkey)

    @property
    def connection(self) -> SolanaRpcClient:
        return self._connection

    def sign_transaction(self, tx: "VersionedTransaction") -> "VersionedTransaction":
        signed_bytes, _ = self._signer.sign_transaction(bytes(tx))
        return VersionedTransaction.from_bytes(signed_bytes)

    def sign_and_send_transaction(
        self,
        tx: "VersionedTransaction",
        skip_preflight: bool = False,
        preflight_commitment: str = "confirmed",
        max_retries: Optional[int] = None,
    ) -> str:
        """Sign, broadcast, and return the base58 signature"""
        signed_bytes, signature = self._signer.sign_transaction(bytes(tx))
        sent = self._connection.send_transaction(
            signed_bytes,
            skip_preflight=skip_preflight,
            preflight_commitment=preflight_commitment,
            max_retries=max_retries,
        )
        logger.info(f"Solana transaction sent: {sent or signature}")
        return sent or signature

    def close(self):
        """Close the RPC connection"""
        self._connection.close()

    def __repr__(self) -> str:
        return f"SolanaWallet(pubkey={self.pubkey})"


def create_solana_wallet(
    private_key: Optional[str] = None,
    rpc_url: Optional[str] = None,
    keypair_path: Optional[str] = None,
    connection: Optional[SolanaRpcClient] = None,
) -> SolanaWallet:
    """
    Build a SolanaWallet from a base58 key or a keypair file

    Args:
        private_key: base58 secret key
        rpc_url: RPC endpoint (ignored when connection is given)
        keypair_path: Solana CLI keypair file, used when no private_key
        connection: Existing RPC client to reuse

    Raises:
        SignerError: If neither key source is given
        ConfigurationError: If no RPC endpoint is available
    """
    signer: Union[LocalSigner, None] = None
    if private_key:
        signer = LocalSigner.from_base58(private_key)
    elif keypair_path:
        signer = LocalSigner.from_file(keypair_path)
    if signer is None:
        raise SignerError.not_configured("Solana")

    if connection is None:
        if not rpc_url:
            raise ConfigurationError.missing("solana.rpc_url", "Set SOLANA_RPC_URL or pass rpc_url.")
        connection = SolanaRpcClient(rpc_url)

    return SolanaWallet(signer, connection)
