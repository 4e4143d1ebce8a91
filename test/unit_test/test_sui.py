"""
Sui Unit Tests

Tests the BCS codec, Ed25519 signer, fullnode client helpers and the Sui
swap executor without network access.
"""

import base64
import hashlib
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import base58
from bip_utils import Bech32Encoder
from nacl.signing import SigningKey, VerifyKey

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from okx_dex.config import OKXConfig, SuiConfig, config as global_config
from okx_dex.errors import (
    ConfigurationError,
    InsufficientGasObjects,
    PayloadError,
    RpcError,
    SignerError,
    TransactionError,
)
from okx_dex.infra import SuiClient, SuiSigner, create_sui_wallet, parse_sui_private_key
from okx_dex.infra.sui_bcs import (
    BcsError,
    BcsReader,
    BcsWriter,
    ObjectRef,
    address_from_hex,
    decode_transaction_data,
)
from okx_dex.swap.sui_swap import SuiSwapExecutor, select_gas_coins
from okx_dex.types import DEFAULT_NETWORK_CONFIGS

SEED = bytes(range(32))
OWNED_ID = b"\x05" * 32
SHARED_ID = b"\x06" * 32
PACKAGE_ID = b"\x0a" * 32
SUI_FRAMEWORK = bytes(31) + b"\x02"

ROUTER_RESULT = {
    "fromTokenAmount": "1000000000",
    "toTokenAmount": "3500000",
    "fromToken": {"tokenSymbol": "SUI", "decimal": "9"},
    "toToken": {"tokenSymbol": "USDC", "decimal": "6"},
}


def _tx_bytes(payment=(), owner=bytes(32)) -> bytes:
    """Programmable transaction: split gas coin, then call router::swap"""
    w = BcsWriter()
    w.uleb128(0)  # TransactionData::V1
    w.uleb128(0)  # ProgrammableTransaction

    w.uleb128(3)
    w.uleb128(0).bytes_vec((1000).to_bytes(8, "little"))
    w.uleb128(1).uleb128(0)
    ObjectRef(OWNED_ID, 3, b"\x07" * 32).encode(w)
    w.uleb128(1).uleb128(1).address(SHARED_ID).u64(5).bool(True)

    w.uleb128(2)
    # SplitCoins(GasCoin, [Input(0)])
    w.uleb128(2).uleb128(0).uleb128(1).uleb128(1).u16(0)
    # MoveCall router::swap<0x2::sui::SUI>(Input(1), Input(2), NestedResult(0, 0))
    w.uleb128(0).address(PACKAGE_ID).string("router").string("swap")
    w.uleb128(1).uleb128(7).address(SUI_FRAMEWORK).string("sui").string("SUI").uleb128(0)
    w.uleb128(3).uleb128(1).u16(1).uleb128(1).u16(2).uleb128(3).u16(0).u16(0)

    w.address(bytes(32))  # sender
    w.uleb128(len(payment))
    for ref in payment:
        ref.encode(w)
    w.address(owner).u64(1).u64(2)
    w.uleb128(0)  # TransactionExpiration::None
    return w.to_bytes()


def _coin(object_byte: int, balance: int, object_id: bytes = None):
    object_id = object_id or bytes([object_byte]) * 32
    return {
        "coinObjectId": "0x" + object_id.hex(),
        "version": "10",
        "digest": base58.b58encode(bytes([object_byte]) * 32).decode(),
        "balance": str(balance),
    }


def _expected_address(seed: bytes) -> str:
    public_key = bytes(SigningKey(seed).verify_key)
    return "0x" + hashlib.blake2b(b"\x00" + public_key, digest_size=32).hexdigest()


class TestBcs(unittest.TestCase):

    def test_uleb128(self):
        for value in (0, 1, 127, 128, 300, 2 ** 32):
            data = BcsWriter().uleb128(value).to_bytes()
            self.assertEqual(BcsReader(data).uleb128(), value)
        self.assertEqual(BcsWriter().uleb128(300).to_bytes(), b"\xac\x02")

    def test_address_from_hex(self):
        self.assertEqual(address_from_hex("0x2"), SUI_FRAMEWORK)
        with self.assertRaises(BcsError):
            address_from_hex("0x" + "1" * 65)

    def test_decode_transaction_data(self):
        raw = _tx_bytes()

        tx_data = decode_transaction_data(raw)

        self.assertEqual(tx_data.sender, bytes(32))
        self.assertEqual(tx_data.gas_data.payment, [])
        self.assertEqual(tx_data.gas_data.price, 1)
        # Shared objects are not owned inputs
        self.assertEqual(tx_data.input_object_ids, {OWNED_ID})
        self.assertEqual(tx_data.to_bytes(), raw)

    def test_with_gas(self):
        tx_data = decode_transaction_data(_tx_bytes())
        sender = b"\x01" * 32
        payment = [ObjectRef(b"\x09" * 32, 4, b"\x08" * 32)]

        updated = decode_transaction_data(tx_data.with_gas(sender, 750, 50_000_000, payment, sender).to_bytes())

        self.assertEqual(updated.sender, sender)
        self.assertEqual(updated.gas_data.owner, sender)
        self.assertEqual(updated.gas_data.price, 750)
        self.assertEqual(updated.gas_data.budget, 50_000_000)
        self.assertEqual(updated.gas_data.payment, payment)
        self.assertEqual(updated.kind_bytes, tx_data.kind_bytes)

    def test_truncated_input(self):
        with self.assertRaises(BcsError):
            decode_transaction_data(_tx_bytes()[:40])

    def test_unsupported_version(self):
        with self.assertRaises(BcsError):
            decode_transaction_data(b"\x01" + _tx_bytes()[1:])


class TestGasCoinSelection(unittest.TestCase):

    def test_selects_until_budget_covered(self):
        coins = [_coin(0x11, 30_000_000), _coin(0x12, 30_000_000), _coin(0x13, 30_000_000)]

        selected = select_gas_coins(coins, 50_000_000, "0xowner")

        self.assertEqual([ref.object_id for ref in selected], [b"\x11" * 32, b"\x12" * 32])
        self.assertEqual(selected[0].version, 10)
        self.assertEqual(selected[0].digest, b"\x11" * 32)

    def test_input_objects_excluded(self):
        coins = [_coin(0x05, 90_000_000, OWNED_ID), _coin(0x12, 60_000_000)]

        selected = select_gas_coins(coins, 50_000_000, "0xowner", exclude={OWNED_ID})

        self.assertEqual([ref.object_id for ref in selected], [b"\x12" * 32])

    def test_insufficient_gas_objects(self):
        with self.assertRaises(InsufficientGasObjects) as ctx:
            select_gas_coins([_coin(0x11, 1_000)], 50_000_000, "0xowner")

        self.assertIn("not enough SUI objects", ctx.exception.message)
        self.assertEqual(ctx.exception.available, 1_000)


class TestSuiSigner(unittest.TestCase):

    def test_key_formats(self):
        flagged = b"\x00" + SEED
        self.assertEqual(parse_sui_private_key("0x" + SEED.hex()), SEED)
        self.assertEqual(parse_sui_private_key(SEED.hex()), SEED)
        self.assertEqual(parse_sui_private_key(base64.b64encode(SEED).decode()), SEED)
        self.assertEqual(parse_sui_private_key(base64.b64encode(flagged).decode()), SEED)
        self.assertEqual(parse_sui_private_key(Bech32Encoder.Encode("suiprivkey", flagged)), SEED)

    def test_rejects_non_ed25519(self):
        with self.assertRaises(ConfigurationError):
            parse_sui_private_key(base64.b64encode(b"\x01" + SEED).decode())

    def test_rejects_garbage(self):
        with self.assertRaises(ConfigurationError):
            parse_sui_private_key("not a key!")
        with self.assertRaises(SignerError):
            parse_sui_private_key("   ")

    def test_address(self):
        signer = SuiSigner(SEED)
        self.assertEqual(signer.address, _expected_address(SEED))
        self.assertEqual(len(signer.address), 66)

    def test_signature_layout(self):
        signer = SuiSigner(SEED)
        tx_bytes = _tx_bytes()

        serialized = base64.b64decode(signer.sign_transaction(tx_bytes))

        self.assertEqual(len(serialized), 1 + 64 + 32)
        self.assertEqual(serialized[0], 0)
        self.assertEqual(serialized[65:], signer.public_key)
        digest = hashlib.blake2b(b"\x00\x00\x00" + tx_bytes, digest_size=32).digest()
        VerifyKey(signer.public_key).verify(digest, serialized[1:65])

    def test_wallet_address_must_match(self):
        client = MagicMock()
        wallet = create_sui_wallet(SEED.hex(), "https://fullnode.mainnet.sui.io:443", _expected_address(SEED), client)
        self.assertIs(wallet.connection, client)

        with self.assertRaises(SignerError):
            create_sui_wallet(SEED.hex(), "https://fullnode.mainnet.sui.io:443", "0x" + "12" * 32, client)


class TestSuiClient(unittest.TestCase):

    def setUp(self):
        self.client = SuiClient("https://fullnode.mainnet.sui.io:443")
        self.client.call = MagicMock()

    def test_iter_coins_follows_pages(self):
        self.client.call.side_effect = [
            {"data": [_coin(0x11, 1)], "hasNextPage": True, "nextCursor": "c1"},
            {"data": [_coin(0x12, 2)], "hasNextPage": False, "nextCursor": None},
        ]

        coins = list(self.client.iter_coins("0xowner"))

        self.assertEqual(len(coins), 2)
        second_params = self.client.call.call_args_list[1].args[1]
        self.assertEqual(second_params, ["0xowner", "0x2::sui::SUI", "c1", None])

    def test_wait_for_transaction_polls(self):
        self.client.call.side_effect = [RpcError("Could not find the referenced transaction"), {"digest": "Dig"}]

        result = self.client.wait_for_transaction("Dig", timeout_seconds=5, poll_interval=0)

        self.assertEqual(result["digest"], "Dig")
        self.assertEqual(self.client.call.call_count, 2)

    def test_wait_for_transaction_timeout(self):
        self.client.call.side_effect = RpcError("not found")

        with self.assertRaises(TransactionError):
            self.client.wait_for_transaction("Dig", timeout_seconds=0, poll_interval=0)


class TestSuiSwapExecutor(unittest.TestCase):

    def setUp(self):
        self.signer = SuiSigner(SEED)
        self.wallet = MagicMock()
        self.wallet.address = self.signer.address
        self.wallet.sign_transaction.return_value = "c2lnbmF0dXJl"
        self.connection = self.wallet.connection
        self.connection.get_reference_gas_price.return_value = 750
        self.connection.iter_coins.return_value = [_coin(0x11, 30_000_000), _coin(0x12, 30_000_000)]
        self.connection.execute_transaction_block.return_value = {"digest": "SuiDigest"}
        self.connection.wait_for_transaction.return_value = {"effects": {"status": {"status": "success"}}}
        self.config = OKXConfig(api_key="k", secret_key="s", api_passphrase="p", sui=SuiConfig())
        self.executor = SuiSwapExecutor(self.config, DEFAULT_NETWORK_CONFIGS["784"], wallet=self.wallet)

    def _swap_data(self, raw: bytes):
        return {"data": [{"routerResult": ROUTER_RESULT, "tx": {"data": base64.b64encode(raw).decode()}}]}

    def test_execute_swap_selects_gas(self):
        result = self.executor.execute_swap(self._swap_data(_tx_bytes()))

        self.assertEqual(result.transaction_id, "SuiDigest")
        self.assertTrue(result.explorer_url.endswith("/sui/tx/SuiDigest"))

        tx_b64, signatures = self.connection.execute_transaction_block.call_args.args
        self.assertEqual(signatures, ["c2lnbmF0dXJl"])
        sent = decode_transaction_data(base64.b64decode(tx_b64))
        sender = address_from_hex(self.signer.address)
        self.assertEqual(sent.sender, sender)
        self.assertEqual(sent.gas_data.owner, sender)
        self.assertEqual(sent.gas_data.price, 750)
        self.assertEqual(sent.gas_data.budget, self.executor.gas_budget)
        self.assertEqual([ref.object_id for ref in sent.gas_data.payment], [b"\x11" * 32, b"\x12" * 32])
        self.wallet.sign_transaction.assert_called_once_with(base64.b64decode(tx_b64))

    def test_existing_payment_kept(self):
        payment = [ObjectRef(b"\x44" * 32, 9, b"\x45" * 32)]

        self.executor.execute_swap(self._swap_data(_tx_bytes(payment=payment)))

        self.connection.iter_coins.assert_not_called()
        tx_b64 = self.connection.execute_transaction_block.call_args.args[0]
        sent = decode_transaction_data(base64.b64decode(tx_b64))
        self.assertEqual(sent.gas_data.payment, payment)
        # Zero owner is replaced by the sender
        self.assertEqual(sent.gas_data.owner, address_from_hex(self.signer.address))

    def test_undecodable_payload(self):
        with self.assertRaises(PayloadError):
            self.executor.execute_swap(self._swap_data(b"\x00\x01"))

        self.wallet.sign_transaction.assert_not_called()

    def test_missing_tx(self):
        with self.assertRaises(PayloadError):
            self.executor.execute_swap({"data": [{"routerResult": ROUTER_RESULT}]})

    def test_missing_decimals_fails_before_execution(self):
        router_result = dict(ROUTER_RESULT, fromToken={"tokenSymbol": "SUI", "decimal": ""})
        swap_data = self._swap_data(_tx_bytes())
        swap_data["data"][0]["routerResult"] = router_result

        with self.assertRaises(PayloadError) as ctx:
            self.executor.execute_swap(swap_data)

        self.assertEqual(ctx.exception.message, "Missing decimal information for tokens: SUI -> USDC")
        self.wallet.sign_transaction.assert_not_called()
        self.connection.execute_transaction_block.assert_not_called()

    @patch("okx_dex.infra.retry.time.sleep")
    def test_failed_effects_retried_by_default(self, mock_sleep):
        self.connection.wait_for_transaction.side_effect = [
            {"effects": {"status": {"status": "failure", "error": "MoveAbort(..., 3)"}}},
            {"effects": {"status": {"status": "success"}}},
        ]

        with patch.object(global_config.tx, "retry_onchain_rejections", True):
            result = self.executor.execute_swap(self._swap_data(_tx_bytes()))

        self.assertEqual(result.transaction_id, "SuiDigest")
        self.assertEqual(self.connection.execute_transaction_block.call_count, 2)
        self.assertEqual(mock_sleep.call_count, 1)

    @patch("okx_dex.infra.retry.time.sleep")
    def test_failed_effects_not_retried_when_disabled(self, mock_sleep):
        self.connection.wait_for_transaction.return_value = {
            "effects": {"status": {"status": "failure", "error": "MoveAbort(..., 3)"}},
        }

        with patch.object(global_config.tx, "retry_onchain_rejections", False):
            with self.assertRaises(TransactionError) as ctx:
                self.executor.execute_swap(self._swap_data(_tx_bytes()))

        self.assertIn("MoveAbort", ctx.exception.message)
        self.assertEqual(self.connection.execute_transaction_block.call_count, 1)

    @patch("okx_dex.infra.retry.time.sleep")
    def test_missing_digest_retried(self, mock_sleep):
        self.connection.execute_transaction_block.side_effect = [{}, {"digest": "SuiDigest"}]

        result = self.executor.execute_swap(self._swap_data(_tx_bytes()))

        self.assertEqual(result.transaction_id, "SuiDigest")
        self.assertEqual(mock_sleep.call_count, 1)


if __name__ == "__main__":
    unittest.main()
