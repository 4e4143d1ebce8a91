"""
Executor factory: chain id -> executor
"""

import logging
from typing import Any, Optional

from ..config import OKXConfig
from ..errors import ConfigurationError
from ..infra import HTTPClient
from ..types import ChainConfig, SOLANA_CHAIN_ID, SUI_CHAIN_ID, is_evm_chain
from .base import ApprovalExecutor, SwapExecutor
from .evm_approve import EVMApproveExecutor
from .evm_swap import EVMSwapExecutor, resolve_evm_wallet
from .solana_instruction import SolanaInstructionExecutor
from .solana_swap import SolanaSwapExecutor, resolve_solana_wallet
from .sui_swap import SuiSwapExecutor, resolve_sui_wallet

logger = logging.getLogger(__name__)


class SwapExecutorFactory:
    """
    Usage:
        executor = SwapExecutorFactory.create_executor("8453", config, network_config)
        result = executor.execute_swap(swap_data)

        # Reusing one wallet (and its RPC connection) across executors
        wallet = SwapExecutorFactory.resolve_wallet("501", config, network_config)
        executor = SwapExecutorFactory.create_executor("501", config, network_config, wallet=wallet)
    """

    @staticmethod
    def resolve_wallet(chain_id: str, config: OKXConfig, network_config: ChainConfig) -> Any:
        """
        Wallet adapter for a chain, built from the chain's config section

        Raises:
            ConfigurationError: Unsupported chain or missing config section
            SignerError: No wallet and no private key
        """
        chain_id = str(chain_id)
        if chain_id == SOLANA_CHAIN_ID:
            return resolve_solana_wallet(config)
        if chain_id == SUI_CHAIN_ID:
            return resolve_sui_wallet(config)
        if is_evm_chain(chain_id):
            return resolve_evm_wallet(config, network_config)
        raise ConfigurationError.chain_not_supported(chain_id)

    @staticmethod
    def create_executor(
        chain_id: str,
        config: OKXConfig,
        network_config: ChainConfig,
        wallet: Optional[Any] = None,
    ) -> SwapExecutor:
        """
        Args:
            wallet: Wallet adapter for the chain (resolved from config when None)

        Raises:
            ConfigurationError: Chain {id} not supported for swap execution
        """
        chain_id = str(chain_id)
        if chain_id == SOLANA_CHAIN_ID:
            executor = SolanaSwapExecutor(config, network_config, wallet=wallet)
        elif chain_id == SUI_CHAIN_ID:
            executor = SuiSwapExecutor(config, network_config, wallet=wallet)
        elif is_evm_chain(chain_id):
            executor = EVMSwapExecutor(config, network_config, wallet=wallet)
        else:
            raise ConfigurationError.chain_not_supported(chain_id)

        logger.debug(f"Created {type(executor).__name__} for chain {chain_id}")
        return executor

    @staticmethod
    def create_approve_executor(
        chain_id: str,
        config: OKXConfig,
        network_config: ChainConfig,
        http_client: Optional[HTTPClient] = None,
        wallet: Optional[Any] = None,
    ) -> ApprovalExecutor:
        chain_id = str(chain_id)
        if not is_evm_chain(chain_id):
            raise ConfigurationError.chain_not_supported(chain_id, "token approval")
        return EVMApproveExecutor(config, network_config, http_client, wallet=wallet)

    @staticmethod
    def create_instruction_executor(
        chain_id: str,
        config: OKXConfig,
        network_config: ChainConfig,
        wallet: Optional[Any] = None,
    ) -> SolanaInstructionExecutor:
        chain_id = str(chain_id)
        if chain_id != SOLANA_CHAIN_ID:
            raise ConfigurationError.chain_not_supported(chain_id, "instruction execution")
        return SolanaInstructionExecutor(config, network_config, wallet=wallet)
