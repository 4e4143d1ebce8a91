"""
Exception definitions for the OKX DEX client
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """
    Unified error codes

    1xxx - RPC errors
    2xxx - Transaction errors
    3xxx - Slippage/Price errors
    6xxx - Signer errors
    7xxx - Operation / input errors
    8xxx - Aggregator API errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"

    # Transaction errors
    TX_SIMULATION_FAILED = "2001"
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"
    TX_INSUFFICIENT_FUNDS = "2004"
    TX_INVALID_BLOCKHASH = "2005"
    TX_REJECTED = "2006"
    TX_INSUFFICIENT_GAS_OBJECTS = "2007"

    # Slippage/Price errors
    SLIPPAGE_EXCEEDED = "3001"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Operation errors
    OPERATION_NOT_SUPPORTED = "7001"
    OPERATION_FAILED = "7002"
    INVALID_PARAMS = "7003"
    INVALID_PAYLOAD = "7004"

    # Aggregator API errors
    API_REQUEST_FAILED = "8001"
    API_RATE_LIMITED = "8002"
    API_INVALID_RESPONSE = "8003"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"
    CHAIN_NOT_SUPPORTED = "9003"
    NETWORK_NOT_FOUND = "9004"


class OKXDexError(Exception):
    """
    Base exception for all client errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class RpcError(OKXDexError):
    """
    Chain RPC errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - Node returns a JSON-RPC error object
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )


class TransactionError(OKXDexError):
    """
    Transaction execution errors

    Raised when:
    - Transaction send fails
    - Confirmation fails or expires
    - The chain rejects the transaction
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
        recoverable: bool = False,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            details={"signature": signature, "logs": logs},
        )
        self.signature = signature
        self.logs = logs or []

    @classmethod
    def send_failed(cls, error: str) -> "TransactionError":
        # Send failures are transient from the executor's point of view
        return cls(
            f"Failed to send transaction: {error}",
            ErrorCode.TX_SEND_FAILED,
            recoverable=True,
        )

    @classmethod
    def confirmation_failed(cls, signature: str, error: str) -> "TransactionError":
        return cls(
            f"Transaction confirmation failed: {error}",
            ErrorCode.TX_CONFIRMATION_FAILED,
            signature=signature,
            recoverable=True,
        )

    @classmethod
    def rejected(cls, signature: Optional[str], error: Any) -> "TransactionError":
        from ..config import get_config
        return cls(
            f"Transaction failed: {error}",
            ErrorCode.TX_REJECTED,
            signature=signature,
            recoverable=get_config().tx.retry_onchain_rejections,
        )


class InsufficientGasObjects(TransactionError):
    """
    Sui wallet has too few SUI coin objects to cover the gas budget

    The message keeps the "not enough SUI objects" wording so callers that
    match on text keep working.
    """

    def __init__(self, owner: str, required: int, available: int):
        super().__init__(
            f"Insufficient gas: not enough SUI objects owned by {owner} "
            f"to cover gas budget {required} (available {available})",
            ErrorCode.TX_INSUFFICIENT_GAS_OBJECTS,
            recoverable=False,
        )
        self.owner = owner
        self.required = required
        self.available = available
        self.details.update({"owner": owner, "required": required, "available": available})


class SignerError(OKXDexError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - Signing operation fails
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        recoverable: bool = False,
    ):
        super().__init__(message, code, recoverable=recoverable)

    @classmethod
    def not_configured(cls, chain: str = "") -> "SignerError":
        suffix = f" for {chain}" if chain else ""
        return cls(
            f"No signer configured{suffix}. Provide a wallet or private key.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ConfigurationError(OKXDexError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    - A chain has no network config or executor
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str, hint: str = "") -> "ConfigurationError":
        message = f"Missing required configuration: {param}"
        if hint:
            message = f"{message}. {hint}"
        return cls(message, ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)

    @classmethod
    def network_not_found(cls, chain_id: str) -> "ConfigurationError":
        return cls(
            f"Network configuration not found for chain {chain_id}",
            ErrorCode.NETWORK_NOT_FOUND,
        )

    @classmethod
    def chain_not_supported(cls, chain_id: str, operation: str = "swap execution") -> "ConfigurationError":
        return cls(
            f"Chain {chain_id} not supported for {operation}",
            ErrorCode.CHAIN_NOT_SUPPORTED,
        )


class OperationNotSupported(OKXDexError):
    """
    Operation not supported by an executor

    Raised when:
    - A method is called on an executor variant that does not implement it
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        executor: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.OPERATION_NOT_SUPPORTED,
            recoverable=False,
            details={"operation": operation, "executor": executor},
        )
        self.operation = operation
        self.executor = executor

    @classmethod
    def not_implemented(cls, operation: str, executor: str) -> "OperationNotSupported":
        return cls(
            f"Operation '{operation}' is not supported by {executor}",
            operation=operation,
            executor=executor,
        )


class ValidationError(OKXDexError):
    """Invalid request parameters, detected before any network call"""

    def __init__(self, message: str, param: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_PARAMS,
            recoverable=False,
            details={"param": param} if param else None,
        )
        self.param = param


class PayloadError(OKXDexError):
    """
    Aggregator response cannot be executed

    Raised when:
    - routerResult or tx body is missing
    - Token decimals are missing
    - Transaction bytes cannot be decoded
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_PAYLOAD,
            recoverable=False,
            original_error=original_error,
        )

    @classmethod
    def missing_router_result(cls) -> "PayloadError":
        return cls("Invalid swap data: missing router result")

    @classmethod
    def missing_tx(cls) -> "PayloadError":
        return cls("Missing transaction data")

    @classmethod
    def undecodable(cls, what: str, error: Exception) -> "PayloadError":
        return cls(f"Cannot decode {what}: {error}", original_error=error)


class APIError(OKXDexError):
    """
    Aggregator REST API errors

    Attributes:
        status: HTTP status code (None for envelope errors on HTTP 200)
        api_code: The envelope "code" field returned by the API
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.API_REQUEST_FAILED,
        status: Optional[int] = None,
        api_code: Optional[str] = None,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"status": status, "api_code": api_code},
        )
        self.status = status
        self.api_code = api_code

    @classmethod
    def http_error(cls, status: int, message: str) -> "APIError":
        if status == 429:
            return cls(
                f"API rate limit exceeded: {message}",
                ErrorCode.API_RATE_LIMITED,
                status=status,
                recoverable=True,
            )
        return cls(
            f"HTTP error {status}: {message}",
            status=status,
            recoverable=status >= 500,
        )

    @classmethod
    def envelope(cls, api_code: str, message: str) -> "APIError":
        return cls(
            f"API error {api_code}: {message}",
            status=200,
            api_code=api_code,
        )
