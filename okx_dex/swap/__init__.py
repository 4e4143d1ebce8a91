"""
Swap and approval executors
"""

from .base import SwapExecutor, ApprovalExecutor, extract_quote_data
from .evm_swap import EVMSwapExecutor
from .evm_approve import EVMApproveExecutor
from .solana_swap import SolanaSwapExecutor
from .solana_instruction import SolanaInstructionExecutor
from .sui_swap import SuiSwapExecutor
from .factory import SwapExecutorFactory

__all__ = [
    "SwapExecutor",
    "ApprovalExecutor",
    "extract_quote_data",
    "EVMSwapExecutor",
    "EVMApproveExecutor",
    "SolanaSwapExecutor",
    "SolanaInstructionExecutor",
    "SuiSwapExecutor",
    "SwapExecutorFactory",
]
