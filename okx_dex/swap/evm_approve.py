"""
EVM token approval executor

Grants the aggregator's approve contract an ERC20 allowance. An allowance
already covering the amount is reported as ApprovalOutcome.approved and no
transaction is sent.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from ..config import OKXConfig
from ..errors import APIError, ConfigurationError, ErrorCode, OperationNotSupported
from ..infra import ERC20_ABI, EVMWallet, HTTPClient, execute_with_retry, CorrelationContext
from ..types import ApprovalOutcome, ChainConfig, SwapParams, SwapResult
from .evm_swap import checksum, ensure_receipt_success, resolve_evm_wallet, scale_gas

logger = logging.getLogger(__name__)

SUPPORTED_CHAIN_PATH = "/api/v5/dex/aggregator/supported/chain"

# Gas estimate for approve() is doubled
APPROVE_GAS_ESTIMATE_MULTIPLIER = 2


def dex_approve_address(chain_data: Mapping[str, Any], chain_id: str) -> str:
    """
    dexTokenApproveAddress from a supported/chain response

    Raises:
        APIError: If the response has no approve address for the chain
    """
    data = chain_data.get("data") or []
    entry = data[0] if isinstance(data, list) and data else (data if isinstance(data, dict) else {})
    address = entry.get("dexTokenApproveAddress")
    if not address:
        raise APIError(
            f"No dex contract address found for chain {chain_id}",
            ErrorCode.API_INVALID_RESPONSE,
        )
    return address


class EVMApproveExecutor:
    """
    Usage:
        executor = EVMApproveExecutor(config, network_config, http_client)
        outcome = executor.handle_token_approval("8453", usdc_address, "1000000")
        if outcome.already_approved:
            ...
    """

    def __init__(
        self,
        config: OKXConfig,
        network_config: ChainConfig,
        http_client: Optional[HTTPClient] = None,
        wallet: Optional[EVMWallet] = None,
    ):
        self._config = config
        self._network = network_config
        self._http = http_client
        self._wallet = wallet or resolve_evm_wallet(config, network_config)

    def execute_swap(
        self,
        swap_data: Mapping[str, Any],
        params: Union[SwapParams, Dict[str, Any], None] = None,
    ) -> SwapResult:
        raise OperationNotSupported.not_implemented("execute_swap", type(self).__name__)

    def get_dex_contract_address(self, chain_id: str) -> str:
        """Spender for approvals, looked up on every call"""
        if self._http is None:
            raise ConfigurationError.missing("http_client", "Needed to look up the approve contract address.")
        response = self._http.request("GET", SUPPORTED_CHAIN_PATH, {"chainId": str(chain_id)})
        return dex_approve_address(response, chain_id)

    def get_allowance(self, token_address: str, owner: str, spender: str) -> int:
        contract = self._wallet.web3.eth.contract(address=checksum(token_address), abi=ERC20_ABI)
        return int(contract.functions.allowance(checksum(owner), checksum(spender)).call())

    def handle_token_approval(
        self,
        chain_id: str,
        token_address: str,
        amount: Union[str, int],
        spender_address: Optional[str] = None,
    ) -> ApprovalOutcome:
        """
        Ensure spender may move at least amount of token_address

        Args:
            chain_id: Chain the token lives on
            token_address: ERC20 contract
            amount: Raw token amount
            spender_address: Approve contract, when the caller already fetched it

        Returns:
            ApprovalOutcome.approved(allowance) or ApprovalOutcome.submitted(tx_hash)
        """
        amount = int(amount)
        spender = spender_address or self.get_dex_contract_address(chain_id)
        owner = self._wallet.address

        allowance = self.get_allowance(token_address, owner, spender)
        if allowance >= amount:
            logger.info(f"Token {token_address} already approved for {spender} (allowance: {allowance})")
            return ApprovalOutcome.approved(allowance)

        with CorrelationContext(f"approve_{chain_id}") as cid:
            logger.info(f"[{cid}] Approving {amount} of {token_address} for {spender}")
            tx_hash = execute_with_retry(
                lambda attempt: self._approve(chain_id, token_address, spender, amount),
                "evm_approve",
                max_retries=self._network.retries,
            )
            logger.info(f"[{cid}] Approval confirmed: {tx_hash}")

        return ApprovalOutcome.submitted(tx_hash)

    def _approve(self, chain_id: str, token_address: str, spender: str, amount: int) -> str:
        web3 = self._wallet.web3
        owner = self._wallet.address

        nonce = web3.eth.get_transaction_count(owner, "latest")
        gas_price = web3.eth.gas_price

        contract = web3.eth.contract(address=checksum(token_address), abi=ERC20_ABI)
        approve_fn = contract.functions.approve(checksum(spender), amount)
        estimate = approve_fn.estimate_gas({"from": owner})

        tx = approve_fn.build_transaction({
            "from": owner,
            "gas": estimate * APPROVE_GAS_ESTIMATE_MULTIPLIER,
            "gasPrice": scale_gas(gas_price),
            "nonce": nonce,
            "chainId": int(chain_id),
            "value": 0,
        })

        raw_tx, tx_hash = self._wallet.sign_transaction(tx)
        self._wallet.send_raw_transaction(raw_tx)
        logger.info(f"Approval transaction sent: {tx_hash}")

        receipt = self._wallet.wait_for_receipt(tx_hash, timeout=self._network.timeout_seconds)
        ensure_receipt_success(receipt, tx_hash)
        return tx_hash
