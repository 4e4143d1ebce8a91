"""
DexAPI Unit Tests

Tests the aggregator facade with a mocked HTTP client: parameter validation,
endpoint routing and execution dispatch.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from okx_dex.api import DexAPI, validate_swap_params
from okx_dex.config import OKXConfig, SolanaConfig
from okx_dex.errors import APIError, ConfigurationError, ErrorCode, ValidationError
from okx_dex.types import (
    ApprovalOutcome,
    ApproveTokenParams,
    GasLimitParams,
    SwapParams,
    SwapSimulationParams,
    TransactionOrdersParams,
)

SPENDER = "0x" + "22" * 20


def _config(**overrides):
    return OKXConfig(
        api_key="k",
        secret_key="s",
        api_passphrase="p",
        project_id="proj",
        **overrides,
    )


def _swap_params(**overrides):
    values = dict(
        chain_id="8453",
        from_token_address="0xA",
        to_token_address="0xB",
        amount="1000000",
        user_wallet_address="0xW",
    )
    values.update(overrides)
    return SwapParams(**values)


class TestSlippageValidation(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.dex = DexAPI(self.client, _config())

    def test_missing_slippage(self):
        with self.assertRaises(ValidationError) as ctx:
            self.dex.get_swap_data(_swap_params())

        self.assertEqual(ctx.exception.message, "Either slippage or autoSlippage must be provided")
        self.client.request.assert_not_called()

    def test_slippage_out_of_range(self):
        for value in ("1.5", "-0.1", "abc", "nan"):
            with self.assertRaises(ValidationError):
                self.dex.get_swap_data(_swap_params(slippage=value))

        self.client.request.assert_not_called()

    def test_auto_slippage_requires_max(self):
        with self.assertRaises(ValidationError) as ctx:
            self.dex.get_swap_data(_swap_params(auto_slippage=True))

        self.assertIn("maxAutoSlippageBps", ctx.exception.message)
        self.client.request.assert_not_called()

    def test_boundaries_accepted(self):
        validate_swap_params({"slippage": "0"})
        validate_swap_params({"slippage": "1"})
        validate_swap_params({"autoSlippage": True, "maxAutoSlippage": "0.05"})

    def test_valid_request_sent(self):
        self.client.request.return_value = {"code": "0", "data": []}

        self.dex.get_swap_data(_swap_params(slippage="0.005"))

        method, path, params = self.client.request.call_args.args
        self.assertEqual(method, "GET")
        self.assertEqual(path, "/api/v5/dex/aggregator/swap")
        self.assertEqual(params["slippage"], "0.005")
        self.assertEqual(params["chainId"], "8453")
        self.assertNotIn("autoSlippage", params)

    def test_solana_instruction_validated(self):
        with self.assertRaises(ValidationError):
            self.dex.get_solana_swap_instruction(_swap_params(chain_id="501"))
        self.client.request.assert_not_called()


class TestReadEndpoints(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.request.return_value = {"code": "0", "data": []}
        self.dex = DexAPI(self.client, _config())

    def test_quote(self):
        self.dex.get_quote({"chainId": "1", "fromTokenAddress": "0xA", "toTokenAddress": "0xB", "amount": 10})

        self.client.request.assert_called_once_with(
            "GET",
            "/api/v5/dex/aggregator/quote",
            {"chainId": "1", "fromTokenAddress": "0xA", "toTokenAddress": "0xB", "amount": "10"},
        )

    def test_chain_tokens_and_liquidity(self):
        self.dex.get_tokens("1")
        self.dex.get_liquidity("1")
        self.dex.get_supported_chains("1")

        paths = [c.args[1] for c in self.client.request.call_args_list]
        self.assertEqual(paths, [
            "/api/v5/dex/aggregator/all-tokens",
            "/api/v5/dex/aggregator/get-liquidity",
            "/api/v5/dex/aggregator/supported/chain",
        ])

    def test_unknown_chain_data_propagates_api_error(self):
        self.client.request.side_effect = APIError.envelope("51000", "Parameter chainId error")

        with self.assertRaises(APIError) as ctx:
            self.dex.get_chain_data("999999")

        self.assertEqual(ctx.exception.api_code, "51000")

    def test_gas_price_and_orders(self):
        self.dex.get_gas_price("1")
        self.dex.get_transaction_orders(TransactionOrdersParams(address="0xW", chain_index="1", tx_status="2"))

        first, second = self.client.request.call_args_list
        self.assertEqual(first.args, ("GET", "/api/v5/dex/pre-transaction/gas-price", {"chainIndex": "1"}))
        self.assertEqual(second.args, (
            "GET",
            "/api/v5/dex/post-transaction/orders",
            {"address": "0xW", "chainIndex": "1", "txStatus": "2"},
        ))

    def test_gas_limit_posts_body(self):
        self.dex.get_gas_limit(GasLimitParams(
            chain_index="1",
            from_address="0xF",
            to_address="0xT",
            ext_json={"inputData": "0xabcd"},
        ))

        self.client.request.assert_called_once_with(
            "POST",
            "/api/v5/dex/pre-transaction/gas-limit",
            {"chainIndex": "1", "fromAddress": "0xF", "toAddress": "0xT", "extJson": {"inputData": "0xabcd"}},
        )

    def test_simulate_transaction(self):
        self.client.request.return_value = {
            "code": "0",
            "data": [{
                "gasUsed": "150000",
                "failReason": "",
                "assetChange": [{"direction": "SEND", "symbol": "ETH", "amount": "0.1"}],
                "risks": [{"address": "0xbad", "addressType": "contract"}],
                "debug": {"calls": []},
            }],
        }
        params = SwapSimulationParams(from_address="0xF", to_address="0xT", chain_index="1", tx_amount="0")

        result = self.dex.simulate_transaction(params)

        self.assertTrue(result.success)
        self.assertEqual(result.gas_used, "150000")
        self.assertEqual(len(result.asset_changes), 1)
        self.assertEqual(result.risks[0]["addressType"], "contract")
        self.assertIsNone(result.logs)

        _, path, body = self.client.request.call_args.args
        self.assertEqual(path, "/api/v5/dex/pre-transaction/simulate")
        self.assertEqual(body["includeDebug"], False)


class TestNetworks(unittest.TestCase):

    def test_unknown_network(self):
        dex = DexAPI(MagicMock(), _config())

        with self.assertRaises(ConfigurationError) as ctx:
            dex.get_network_config("12345")

        self.assertEqual(ctx.exception.code, ErrorCode.NETWORK_NOT_FOUND)

    def test_overrides_applied(self):
        dex = DexAPI(MagicMock(), _config(networks={"8453": {"maxRetries": 7}}))

        self.assertEqual(dex.get_network_config("8453").max_retries, 7)
        self.assertEqual(dex.networks["1"].id, "1")


class TestExecution(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.config = _config()
        self.dex = DexAPI(self.client, self.config)

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_execute_swap_dispatches_by_chain(self, mock_factory):
        swap_response = {"code": "0", "data": [{"routerResult": {}, "tx": {}}]}
        self.client.request.return_value = swap_response
        executor = mock_factory.create_executor.return_value
        params = _swap_params(slippage="0.01")

        result = self.dex.execute_swap(params)

        self.assertIs(result, executor.execute_swap.return_value)
        chain_id, config, network = mock_factory.create_executor.call_args.args
        self.assertEqual(chain_id, "8453")
        self.assertIs(config, self.config)
        self.assertEqual(network.id, "8453")
        executor.execute_swap.assert_called_once_with(swap_response, params)

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_execute_swap_validates_first(self, mock_factory):
        with self.assertRaises(ValidationError):
            self.dex.execute_swap(_swap_params())

        mock_factory.create_executor.assert_not_called()
        self.client.request.assert_not_called()

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_wallet_resolved_once_per_chain(self, mock_factory):
        self.client.request.return_value = {"code": "0", "data": [{"routerResult": {}, "tx": {}}]}
        wallet = mock_factory.resolve_wallet.return_value

        self.dex.execute_swap(_swap_params(chain_id="501", slippage="0.01"))
        self.dex.execute_swap(_swap_params(chain_id="501", slippage="0.01"))

        mock_factory.resolve_wallet.assert_called_once()
        self.assertEqual(mock_factory.resolve_wallet.call_args.args[0], "501")
        for call in mock_factory.create_executor.call_args_list:
            self.assertIs(call.kwargs["wallet"], wallet)

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_close_releases_built_wallets(self, mock_factory):
        self.client.request.return_value = {"code": "0", "data": [{"routerResult": {}, "tx": {}}]}
        wallet = mock_factory.resolve_wallet.return_value

        self.dex.execute_swap(_swap_params(chain_id="784", slippage="0.01"))
        self.dex.close()

        wallet.close.assert_called_once_with()

        # The next execution builds a fresh wallet
        self.dex.execute_swap(_swap_params(chain_id="784", slippage="0.01"))
        self.assertEqual(mock_factory.resolve_wallet.call_count, 2)

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_close_leaves_supplied_wallet_open(self, mock_factory):
        supplied = MagicMock()
        mock_factory.resolve_wallet.return_value = supplied
        dex = DexAPI(self.client, _config(solana=SolanaConfig(wallet=supplied)))
        self.client.request.return_value = {"code": "0", "data": [{"routerResult": {}, "tx": {}}]}

        dex.execute_swap(_swap_params(chain_id="501", slippage="0.01"))
        dex.close()

        supplied.close.assert_not_called()

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_execute_approval_already_approved(self, mock_factory):
        self.client.request.return_value = {"code": "0", "data": [{"dexTokenApproveAddress": SPENDER}]}
        executor = mock_factory.create_approve_executor.return_value
        executor.handle_token_approval.return_value = ApprovalOutcome.approved(5_000_000)

        result = self.dex.execute_approval(ApproveTokenParams(
            chain_id="8453",
            token_contract_address="0xToken",
            approve_amount="1000000",
        ))

        self.assertTrue(result.already_approved)
        self.assertEqual(result.transaction_hash, "")
        executor.handle_token_approval.assert_called_once_with(
            "8453", "0xToken", "1000000", spender_address=SPENDER,
        )
        self.assertIs(mock_factory.create_approve_executor.call_args.args[3], self.client)

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_execute_approval_submitted(self, mock_factory):
        self.client.request.return_value = {"code": "0", "data": [{"dexTokenApproveAddress": SPENDER}]}
        executor = mock_factory.create_approve_executor.return_value
        executor.handle_token_approval.return_value = ApprovalOutcome.submitted("0xapprove")

        result = self.dex.execute_approval({
            "chainId": "8453",
            "tokenContractAddress": "0xToken",
            "approveAmount": "1000000",
        })

        self.assertEqual(result.transaction_hash, "0xapprove")
        self.assertTrue(result.explorer_url.endswith("/base/tx/0xapprove"))

    @patch("okx_dex.api.dex.SwapExecutorFactory")
    def test_execute_approval_missing_spender(self, mock_factory):
        self.client.request.return_value = {"code": "0", "data": [{}]}

        with self.assertRaises(APIError) as ctx:
            self.dex.execute_approval(ApproveTokenParams("8453", "0xToken", "1"))

        self.assertEqual(ctx.exception.message, "No dex contract address found for chain 8453")
        mock_factory.create_approve_executor.assert_not_called()


if __name__ == "__main__":
    unittest.main()
