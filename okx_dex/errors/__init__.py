"""
Error definitions for the OKX DEX client
"""

from .exceptions import (
    ErrorCode,
    OKXDexError,
    RpcError,
    TransactionError,
    InsufficientGasObjects,
    SignerError,
    ConfigurationError,
    OperationNotSupported,
    ValidationError,
    PayloadError,
    APIError,
)

__all__ = [
    "ErrorCode",
    "OKXDexError",
    "RpcError",
    "TransactionError",
    "InsufficientGasObjects",
    "SignerError",
    "ConfigurationError",
    "OperationNotSupported",
    "ValidationError",
    "PayloadError",
    "APIError",
]
