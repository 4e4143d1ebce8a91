"""
Retry Logic Helper Module

Provides the broadcast/confirm retry loop shared by every swap and approval
executor. Includes structured logging with correlation IDs for transaction
tracing.
"""

import logging
import time
import uuid
import contextvars
from typing import Callable, Optional, Tuple, TypeVar

from ..errors import ErrorCode, OKXDexError
from ..config import get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for transaction tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("swap_8453") as cid:
            logger.info(f"[{cid}] Starting swap")
            tx_hash = execute_with_retry(send, "evm_swap")
    """

    def __init__(self, prefix: Optional[str] = None):
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def _log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_retries: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_retries: Maximum number of retries
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_retries is not None:
        parts.append(f"[{attempt}/{max_retries}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_retries": max_retries,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


# Error keywords for classification of foreign (SDK / node) exceptions
RECOVERABLE_KEYWORDS = [
    "timeout", "connection", "network", "rate limit",
    "blockhash", "too many requests", "503", "502", "504",
    "temporarily unavailable", "service unavailable",
    "econnreset", "enotfound", "etimedout",
    "socket hang up", "request failed", "nonce too low",
    "replacement transaction underpriced",
]

SLIPPAGE_KEYWORDS = [
    "slippage", "price moved", "insufficient output",
    "price impact", "amount out less than minimum",
    "exceeds slippage", "min return not reached",
]


def classify_error(error: Exception) -> Tuple[bool, bool, Optional[ErrorCode]]:
    """
    Classify an error to determine if it's recoverable or slippage-related.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (is_recoverable, is_slippage, error_code)
    """
    if isinstance(error, OKXDexError):
        return error.recoverable, error.code == ErrorCode.SLIPPAGE_EXCEEDED, error.code

    error_str = str(error).lower()

    is_slippage = any(keyword in error_str for keyword in SLIPPAGE_KEYWORDS)
    if is_slippage:
        return True, True, ErrorCode.SLIPPAGE_EXCEEDED

    is_recoverable = any(keyword in error_str for keyword in RECOVERABLE_KEYWORDS)

    error_code = None
    if is_recoverable:
        if "timeout" in error_str:
            error_code = ErrorCode.RPC_TIMEOUT
        elif any(kw in error_str for kw in ["connection", "network", "socket"]):
            error_code = ErrorCode.RPC_CONNECTION_FAILED
        elif "rate limit" in error_str or "too many requests" in error_str:
            error_code = ErrorCode.RPC_RATE_LIMITED
        else:
            error_code = ErrorCode.RPC_INVALID_RESPONSE

    return is_recoverable, False, error_code


def execute_with_retry(
    operation: Callable[[int], T],
    operation_name: str,
    max_retries: int = 3,
    retry_delay: Optional[float] = None,
) -> T:
    """
    Run one executor attempt repeatedly until it succeeds or the budget is spent.

    Attempt n (1-indexed) that fails waits n * retry_delay before the next one
    (2s, 4s, ... with the default delay).

    Client errors that are not recoverable (payload, signing, configuration,
    on-chain rejection) are raised immediately. Any other exception raised
    by the chain SDK or node is treated as transient, since broadcast and
    confirmation failures are indistinguishable from network flakes there.
    The last error is re-raised once retries are exhausted.

    Args:
        operation: Callable receiving the 0-indexed attempt number
        operation_name: Name for logging purposes
        max_retries: Total number of attempts
        retry_delay: Base delay in seconds (defaults to config.tx.retry_delay)

    Returns:
        Whatever the operation returns
    """
    retry_delay = retry_delay if retry_delay is not None else get_config().tx.retry_delay
    max_retries = max(1, max_retries)

    for attempt in range(max_retries):
        try:
            result = operation(attempt)
            if attempt > 0:
                _log_with_correlation(
                    logging.INFO,
                    f"Succeeded after {attempt + 1} attempts",
                    operation_name,
                    attempt + 1,
                    max_retries,
                )
            return result

        except OKXDexError as e:
            if not e.recoverable:
                _log_with_correlation(
                    logging.ERROR,
                    f"Failed: {e}",
                    operation_name,
                    attempt + 1,
                    max_retries,
                    error_type="fatal",
                    error_code=e.code.value,
                )
                raise
            last_error: Exception = e
            error_type = "recoverable"

        except Exception as e:
            last_error = e
            is_recoverable, is_slippage, error_code = classify_error(e)
            if is_slippage:
                error_type = "slippage"
            elif is_recoverable:
                error_type = "recoverable"
            else:
                error_type = "unclassified"

        if attempt >= max_retries - 1:
            _log_with_correlation(
                logging.ERROR,
                f"Max retries ({max_retries}) exceeded. Last error: {last_error}",
                operation_name,
                attempt + 1,
                max_retries,
                error_type=error_type,
            )
            raise last_error

        delay = retry_delay * (attempt + 1)
        _log_with_correlation(
            logging.WARNING,
            f"Attempt failed ({error_type}): {last_error}; retrying in {delay:.1f}s",
            operation_name,
            attempt + 1,
            max_retries,
            error_type=error_type,
        )
        time.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{operation_name}: retry loop exited without result")
