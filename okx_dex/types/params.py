"""
Request parameter types for the aggregator API

Field names are snake_case; to_api_params() renders the camelCase query
parameters the API expects. Plain dicts with camelCase keys are accepted
everywhere a params object is.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, Optional, Union


def to_camel(name: str) -> str:
    """chain_id -> chainId"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def params_to_dict(params: Union["BaseParams", Dict[str, Any], Any]) -> Dict[str, Any]:
    """
    Normalize a params object or dict into a camelCase dict

    None values are kept here; serialize_params() drops them.
    """
    if is_dataclass(params):
        return {to_camel(f.name): getattr(params, f.name) for f in fields(params)}
    if isinstance(params, dict):
        return {to_camel(key) if "_" in key else key: value for key, value in params.items()}
    raise TypeError(f"Unsupported params type: {type(params).__name__}")


def serialize_params(params: Union["BaseParams", Dict[str, Any]]) -> Dict[str, str]:
    """
    Flatten params into API query strings

    None values are skipped; booleans become "true"/"false"; everything else
    goes through str().
    """
    api_params: Dict[str, str] = {}
    for key, value in params_to_dict(params).items():
        if value is None:
            continue
        if isinstance(value, bool):
            api_params[key] = "true" if value else "false"
        else:
            api_params[key] = str(value)
    return api_params


@dataclass
class BaseParams:
    chain_id: str
    from_token_address: str
    to_token_address: str
    amount: str
    chain_index: Optional[str] = None
    user_wallet_address: Optional[str] = None
    dex_ids: Optional[str] = None
    direct_route: Optional[bool] = None
    price_impact_protection_percentage: Optional[str] = None
    fee_percent: Optional[str] = None

    def to_api_params(self) -> Dict[str, str]:
        return serialize_params(self)


@dataclass
class QuoteParams(BaseParams):
    slippage: Optional[str] = None


@dataclass
class SwapParams(BaseParams):
    """
    Parameters for /dex/aggregator/swap

    Slippage is a fraction in [0, 1]. Either slippage, or auto_slippage
    together with max_auto_slippage, must be set.
    """
    slippage: Optional[str] = None
    auto_slippage: Optional[bool] = None
    max_auto_slippage: Optional[str] = None
    swap_receiver_address: Optional[str] = None
    from_token_referrer_wallet_address: Optional[str] = None
    to_token_referrer_wallet_address: Optional[str] = None
    positive_slippage_percent: Optional[str] = None
    gas_limit: Optional[str] = None
    gas_level: Optional[str] = None
    compute_unit_price: Optional[str] = None
    compute_unit_limit: Optional[str] = None
    call_data_memo: Optional[str] = None


@dataclass
class ApproveTokenParams:
    chain_id: str
    token_contract_address: str
    approve_amount: str


@dataclass
class GasLimitParams:
    chain_index: str
    from_address: str
    to_address: str
    tx_amount: Optional[str] = None
    ext_json: Optional[Dict[str, Any]] = None


@dataclass
class SwapSimulationParams:
    from_address: str
    to_address: str
    chain_index: str
    tx_amount: str
    ext_json: Dict[str, Any] = field(default_factory=dict)
    gas_price: Optional[str] = None
    include_debug: bool = False


@dataclass
class BroadcastTransactionParams:
    signed_tx: str
    chain_index: str
    address: str
    extra_data: Optional[str] = None
    enable_mev_protection: Optional[bool] = None
    # Solana only
    jito_signed_tx: Optional[str] = None


@dataclass
class TransactionOrdersParams:
    address: str
    chain_index: str
    # 1: pending, 2: success, 3: failed
    tx_status: Optional[str] = None
    order_id: Optional[str] = None
    cursor: Optional[str] = None
    limit: Optional[str] = None


def body_params(params: Union[Any, Dict[str, Any]]) -> Dict[str, Any]:
    """camelCase JSON body for POST endpoints, None values dropped, nested values kept"""
    body = {}
    for key, value in params_to_dict(params).items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = {to_camel(k) if "_" in k else k: v for k, v in value.items()}
        body[key] = value
    return body
