"""
Sui Ed25519 signing and wallet adapter

Signatures cover blake2b-256(intent || tx_bytes) where the transaction intent
is [0, 0, 0] (TransactionData, V0, Sui app). The serialized signature is
base64(flag || signature || public_key) with flag 0x00 for Ed25519.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from typing import Optional

try:
    from nacl.signing import SigningKey
except ImportError:
    SigningKey = None

try:
    from bip_utils import Bech32Decoder
except ImportError:
    Bech32Decoder = None

from ..errors import ConfigurationError, SignerError
from .sui_bcs import address_from_hex, address_to_hex
from .sui_client import SuiClient

logger = logging.getLogger(__name__)

ED25519_FLAG = 0x00
TRANSACTION_INTENT = bytes([0, 0, 0])
SUI_PRIVATE_KEY_PREFIX = "suiprivkey"


def _blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def parse_sui_private_key(private_key: str) -> bytes:
    """
    Decode a Sui private key into a 32-byte Ed25519 seed

    Accepted forms:
    - bech32 "suiprivkey1..." (flag byte + 32-byte seed)
    - hex, with or without 0x (32 bytes)
    - base64 of 32 bytes, or 33 bytes with a leading scheme flag
    """
    key = private_key.strip()
    if not key:
        raise SignerError.not_configured("Sui")

    if key.startswith(SUI_PRIVATE_KEY_PREFIX):
        if Bech32Decoder is None:
            raise RuntimeError("bip_utils is required for suiprivkey keys. Install with: pip install bip_utils")
        try:
            raw = bytes(Bech32Decoder.Decode(SUI_PRIVATE_KEY_PREFIX, key))
        except Exception as e:
            raise ConfigurationError.invalid("sui.private_key", f"bad bech32 key: {e}")
        return _strip_flag(raw)

    hex_text = key[2:] if key.startswith("0x") else key
    if len(hex_text) == 64:
        try:
            return bytes.fromhex(hex_text)
        except ValueError:
            pass

    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError.invalid("sui.private_key", "expected suiprivkey, hex or base64 encoding")
    return _strip_flag(raw)


def _strip_flag(raw: bytes) -> bytes:
    if len(raw) == 33:
        if raw[0] != ED25519_FLAG:
            raise ConfigurationError.invalid(
                "sui.private_key", f"only Ed25519 keys are supported (flag {raw[0]:#x})"
            )
        return raw[1:]
    if len(raw) == 32:
        return raw
    raise ConfigurationError.invalid("sui.private_key", f"expected 32 or 33 bytes, got {len(raw)}")


class SuiSigner:
    """
    Ed25519 keypair for Sui

    Usage:
        signer = SuiSigner.from_private_key("suiprivkey1...")
        signature = signer.sign_transaction(tx_bytes)
    """

    def __init__(self, seed: bytes):
        if SigningKey is None:
            raise RuntimeError("PyNaCl is required for Sui signing. Install with: pip install pynacl")
        self._signing_key = SigningKey(seed)

    @classmethod
    def from_private_key(cls, private_key: str) -> "SuiSigner":
        return cls(parse_sui_private_key(private_key))

    @property
    def public_key(self) -> bytes:
        return bytes(self._signing_key.verify_key)

    @property
    def address(self) -> str:
        """0x + blake2b-256(flag || public_key)"""
        return "0x" + _blake2b_256(bytes([ED25519_FLAG]) + self.public_key).hex()

    def sign_transaction(self, tx_bytes: bytes) -> str:
        """Serialized base64 signature for TransactionData bytes"""
        digest = _blake2b_256(TRANSACTION_INTENT + tx_bytes)
        signature = self._signing_key.sign(digest).signature
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self.public_key).decode("ascii")


class SuiWallet:
    """
    Sui wallet adapter: a signer plus the fullnode client it executes through

    When a wallet address is configured it must match the key.
    """

    def __init__(self, signer: SuiSigner, client: SuiClient):
        self._signer = signer
        self._client = client

    @property
    def address(self) -> str:
        return self._signer.address

    @property
    def connection(self) -> SuiClient:
        return self._client

    def sign_transaction(self, tx_bytes: bytes) -> str:
        return self._signer.sign_transaction(tx_bytes)

    def close(self):
        self._client.close()

    def __repr__(self) -> str:
        return f"SuiWallet(address={self.address})"


def create_sui_wallet(
    private_key: str,
    rpc_url: str,
    wallet_address: Optional[str] = None,
    client: Optional[SuiClient] = None,
) -> SuiWallet:
    """
    Raises:
        SignerError: No key, or the key does not control wallet_address
    """
    if not private_key:
        raise SignerError.not_configured("Sui")

    signer = SuiSigner.from_private_key(private_key)
    if wallet_address and address_to_hex(address_from_hex(wallet_address.lower())) != signer.address:
        raise SignerError.failed(
            f"private key controls {signer.address}, not configured address {wallet_address}"
        )

    return SuiWallet(signer, client or SuiClient(rpc_url))
