"""
Test RPC Client with Mocks

Tests for JSON-RPC transport behavior with mocked responses.
"""

import base64
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import httpx

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from okx_dex.errors import ConfigurationError, RpcError
from okx_dex.infra.rpc import JsonRpcClient, RpcClientConfig, SolanaRpcClient


def _ok(result):
    response = Mock()
    response.status_code = 200
    response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": result}
    response.raise_for_status = Mock()
    return response


def test_rpc_client_init():
    """Test JsonRpcClient initialization"""
    print("Testing JsonRpcClient init...")

    client = JsonRpcClient("https://api.mainnet-beta.solana.com")
    assert client.endpoint == "https://api.mainnet-beta.solana.com"

    client = JsonRpcClient(["https://primary.example.com", "https://backup.example.com"])
    assert client.endpoint == "https://primary.example.com"

    try:
        JsonRpcClient([])
        assert False, "Should raise for empty endpoints"
    except ConfigurationError:
        pass

    print("  JsonRpcClient init: PASSED")


def test_rpc_call_success():
    """Test successful RPC call"""
    print("Testing RPC call success...")

    with patch.object(httpx.Client, "post", return_value=_ok({"blockhash": "abc", "lastValidBlockHeight": 12345})) as post:
        client = JsonRpcClient("https://api.mainnet-beta.solana.com")
        result = client.call("getLatestBlockhash", [{"commitment": "confirmed"}])

        assert result["blockhash"] == "abc"
        body = post.call_args.kwargs["json"]
        assert body["method"] == "getLatestBlockhash"
        assert body["jsonrpc"] == "2.0"

    print("  RPC call success: PASSED")


def test_rpc_call_error():
    """JSON-RPC error objects are raised with the node's code"""
    print("Testing RPC error handling...")

    response = Mock()
    response.status_code = 200
    response.json.return_value = {
        "jsonrpc": "2.0",
        "id": 1,
        "error": {"code": -32002, "message": "Transaction simulation failed", "data": {"logs": []}},
    }
    response.raise_for_status = Mock()

    with patch.object(httpx.Client, "post", return_value=response) as post:
        client = JsonRpcClient("https://api.mainnet-beta.solana.com")

        try:
            client.call("sendTransaction", [])
            assert False, "Should raise RpcError"
        except RpcError as e:
            assert "Transaction simulation failed" in str(e)
            assert e.details["rpc_error_code"] == -32002
            assert e.details["rpc_error_data"] == {"logs": []}

        # Node errors are not retried at the transport level
        assert post.call_count == 1

    print("  RPC error handling: PASSED")


def test_rpc_rate_limit():
    """429 responses are retried"""
    print("Testing rate limit handling...")

    rate_limited = Mock()
    rate_limited.status_code = 429

    with patch.object(httpx.Client, "post", side_effect=[rate_limited, _ok(12345)]):
        client = JsonRpcClient("https://api.mainnet-beta.solana.com", RpcClientConfig(retry_delay_seconds=0.01))
        assert client.call("getSlot", []) == 12345

    print("  Rate limit handling: PASSED")


def test_rpc_timeout():
    """Timeouts surface as recoverable RpcError"""
    print("Testing timeout handling...")

    with patch.object(httpx.Client, "post", side_effect=httpx.TimeoutException("Timeout")):
        config = RpcClientConfig(timeout_seconds=1.0, max_retries=1, retry_delay_seconds=0.01)
        client = JsonRpcClient("https://api.mainnet-beta.solana.com", config)

        try:
            client.call("getSlot", [])
            assert False, "Should raise RpcError for timeout"
        except RpcError as e:
            assert e.recoverable
            assert "timed out" in str(e).lower()

    print("  Timeout handling: PASSED")


def test_rpc_endpoint_rotation():
    """Test endpoint rotation on failure"""
    print("Testing endpoint rotation...")

    fail_response = Mock()
    fail_response.status_code = 500
    fail_response.raise_for_status = Mock(
        side_effect=httpx.HTTPStatusError("Server Error", request=Mock(), response=fail_response)
    )

    # Endpoint 1: two failures -> rotate; endpoint 2: failure then success
    with patch.object(httpx.Client, "post", side_effect=[fail_response, fail_response, fail_response, _ok(12345)]):
        config = RpcClientConfig(max_retries=2, retry_delay_seconds=0.01)
        client = JsonRpcClient(["https://failing.example.com", "https://working.example.com"], config)

        assert client.call("getSlot", []) == 12345
        assert client.endpoint == "https://working.example.com"

    print("  Endpoint rotation: PASSED")


def test_get_account_data():
    """Account data is base64 decoded; missing accounts return None"""
    print("Testing get_account_data...")

    payload = base64.b64encode(b"\x01\x02\x03").decode()
    responses = [
        _ok({"context": {"slot": 1}, "value": {"data": [payload, "base64"], "lamports": 1}}),
        _ok({"context": {"slot": 1}, "value": None}),
    ]

    with patch.object(httpx.Client, "post", side_effect=responses):
        client = SolanaRpcClient("https://api.mainnet-beta.solana.com")

        assert client.get_account_data("Table111") == b"\x01\x02\x03"
        assert client.get_account_data("Missing111") is None

    print("  get_account_data: PASSED")


def test_send_transaction_options():
    """sendTransaction carries base64 bytes and preflight options"""
    print("Testing send_transaction...")

    with patch.object(httpx.Client, "post", return_value=_ok("5igSig")) as post:
        client = SolanaRpcClient("https://api.mainnet-beta.solana.com")
        signature = client.send_transaction(b"\xde\xad", preflight_commitment="confirmed", max_retries=3)

        assert signature == "5igSig"
        tx_data, options = post.call_args.kwargs["json"]["params"]
        assert tx_data == base64.b64encode(b"\xde\xad").decode()
        assert options == {
            "skipPreflight": False,
            "preflightCommitment": "confirmed",
            "encoding": "base64",
            "maxRetries": 3,
        }

    print("  send_transaction: PASSED")


def run_all_tests():
    print("=" * 60)
    print("RPC Client Mock Tests")
    print("=" * 60)

    test_rpc_client_init()
    test_rpc_call_success()
    test_rpc_call_error()
    test_rpc_rate_limit()
    test_rpc_timeout()
    test_rpc_endpoint_rotation()
    test_get_account_data()
    test_send_transaction_options()

    print("=" * 60)
    print("All tests PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    run_all_tests()
