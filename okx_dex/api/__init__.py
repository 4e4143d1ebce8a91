"""
Aggregator API facade
"""

from .dex import DexAPI, validate_swap_params

__all__ = ["DexAPI", "validate_swap_params"]
