"""
Executor interfaces and payload helpers

Executors are structural: anything with execute_swap() is a SwapExecutor,
anything with handle_token_approval() is an ApprovalExecutor. There is no
shared base class; the helpers below hold the common payload checks.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from ..errors import PayloadError
from ..types import ApprovalOutcome, SwapParams, SwapResult


@runtime_checkable
class SwapExecutor(Protocol):
    def execute_swap(
        self,
        swap_data: Mapping[str, Any],
        params: Union[SwapParams, Dict[str, Any], None] = None,
    ) -> SwapResult:
        """
        Sign, broadcast and confirm the transaction in an aggregator swap response

        Raises:
            PayloadError: Router result or transaction body missing (before signing)
            TransactionError: Rejected on-chain, or broadcast/confirm retries exhausted
        """
        ...


@runtime_checkable
class ApprovalExecutor(Protocol):
    def handle_token_approval(
        self,
        chain_id: str,
        token_address: str,
        amount: Union[str, int],
        spender_address: Optional[str] = None,
    ) -> ApprovalOutcome:
        ...


def extract_quote_data(swap_data: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    First entry of the response data and its validated router result

    Raises:
        PayloadError: If data is empty, has no routerResult, or the router
            result cannot be formatted into a SwapResult
    """
    data = (swap_data or {}).get("data")
    if isinstance(data, list):
        quote_data = data[0] if data else None
    else:
        quote_data = data
    if not quote_data or not quote_data.get("routerResult"):
        raise PayloadError.missing_router_result()
    router_result = quote_data["routerResult"]
    validate_router_result(router_result)
    return quote_data, router_result


def require_tx(quote_data: Mapping[str, Any], need_data: bool = True) -> Dict[str, Any]:
    """
    Transaction body of a quote entry

    Args:
        need_data: Also require tx["data"] (serialized transaction / calldata)

    Raises:
        PayloadError: missing_tx()
    """
    tx = quote_data.get("tx")
    if not tx or (need_data and not tx.get("data")):
        raise PayloadError.missing_tx()
    return tx


def require_token_decimals(router_result: Mapping[str, Any]) -> None:
    """Both tokens must carry integer decimals for result formatting"""
    from_token = router_result.get("fromToken") or {}
    to_token = router_result.get("toToken") or {}
    for token in (from_token, to_token):
        try:
            int(token.get("decimal"))
        except (TypeError, ValueError):
            raise PayloadError(
                f"Missing decimal information for tokens: "
                f"{from_token.get('tokenSymbol')} -> {to_token.get('tokenSymbol')}"
            )


def validate_router_result(router_result: Mapping[str, Any]) -> None:
    """
    Checks everything SwapResult.from_router_result reads, before anything is signed

    Raises:
        PayloadError: Missing decimals or a missing / non-numeric token amount
    """
    require_token_decimals(router_result)
    for field in ("fromTokenAmount", "toTokenAmount"):
        value = router_result.get(field)
        try:
            amount = Decimal(str(value)) if value is not None else None
        except InvalidOperation:
            amount = None
        if amount is None or not amount.is_finite():
            raise PayloadError(f"Invalid swap data: {field} is {value!r}")
