"""
Exchange Connectors - Error Handling and Mapping.

============================================================
PURPOSE
============================================================
Unified error taxonomy for every connector:
- One exception hierarchy shared by all exchanges
- Table-driven mapping of exchange codes and messages
- HTTP status fallback when the body says nothing useful
- Retry eligibility hint on every error (no retries are performed)

============================================================
HIERARCHY
============================================================
BaseError
├── ExchangeError
│   ├── AuthenticationError
│   │   └── PermissionDenied
│   ├── ArgumentsRequired
│   ├── BadRequest
│   │   └── BadSymbol
│   ├── InsufficientFunds
│   ├── InvalidAddress
│   │   └── AddressPending
│   ├── InvalidOrder
│   │   └── OrderNotFound
│   ├── NotSupported
│   └── InvalidNonce
└── NetworkError
    ├── DDoSProtection
    ├── ExchangeNotAvailable
    │   └── OnMaintenance
    └── RequestTimeout

============================================================
"""

import json
import logging
from enum import Enum
from typing import Optional, Dict, Any, Tuple, Type, Mapping, Union


logger = logging.getLogger(__name__)


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorCategory(Enum):
    """Standardized error categories."""

    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    PERMISSION = "PERMISSION"
    BAD_REQUEST = "BAD_REQUEST"
    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    INVALID_ORDER = "INVALID_ORDER"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_NONCE = "INVALID_NONCE"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    EXCHANGE_UNAVAILABLE = "EXCHANGE_UNAVAILABLE"
    MAINTENANCE = "MAINTENANCE"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class RetryEligibility(Enum):
    """Whether error is eligible for retry."""

    RETRY = "RETRY"           # Safe to retry
    NO_RETRY = "NO_RETRY"     # Should not retry
    BACKOFF = "BACKOFF"       # Retry with exponential backoff


# ============================================================
# EXCEPTIONS
# ============================================================

class BaseError(Exception):
    """
    Root of every connector error.

    Carries the context needed to diagnose a failure without
    re-running the request.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    retry_eligible: RetryEligibility = RetryEligibility.NO_RETRY

    def __init__(
        self,
        message: str = "",
        exchange_id: Optional[str] = None,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
        code: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.exchange_id = exchange_id
        self.http_status = http_status
        self.body = body
        self.code = code
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "retry_eligible": self.retry_eligible.value,
            "code": self.code,
            "http_status": self.http_status,
            "exchange_id": self.exchange_id,
            "operation": self.operation,
        }

    def is_retryable(self) -> bool:
        """Check if error is retryable."""
        return self.retry_eligible in (RetryEligibility.RETRY, RetryEligibility.BACKOFF)


class ExchangeError(BaseError):
    """The exchange answered, and the answer is a failure."""

    category = ErrorCategory.EXCHANGE_ERROR


class AuthenticationError(ExchangeError):
    category = ErrorCategory.AUTHENTICATION


class PermissionDenied(AuthenticationError):
    category = ErrorCategory.PERMISSION


class ArgumentsRequired(ExchangeError):
    category = ErrorCategory.BAD_REQUEST


class BadRequest(ExchangeError):
    category = ErrorCategory.BAD_REQUEST


class BadSymbol(BadRequest):
    category = ErrorCategory.SYMBOL_NOT_FOUND


class InsufficientFunds(ExchangeError):
    category = ErrorCategory.INSUFFICIENT_FUNDS


class InvalidAddress(ExchangeError):
    category = ErrorCategory.INVALID_ADDRESS


class AddressPending(InvalidAddress):
    pass


class InvalidOrder(ExchangeError):
    category = ErrorCategory.INVALID_ORDER


class OrderNotFound(InvalidOrder):
    category = ErrorCategory.ORDER_NOT_FOUND


class NotSupported(ExchangeError):
    category = ErrorCategory.NOT_SUPPORTED


class InvalidNonce(ExchangeError):
    category = ErrorCategory.INVALID_NONCE
    retry_eligible = RetryEligibility.RETRY


class NetworkError(BaseError):
    """The request did not produce a usable answer."""

    category = ErrorCategory.NETWORK
    retry_eligible = RetryEligibility.RETRY


class DDoSProtection(NetworkError):
    category = ErrorCategory.RATE_LIMIT
    retry_eligible = RetryEligibility.BACKOFF


class ExchangeNotAvailable(NetworkError):
    category = ErrorCategory.EXCHANGE_UNAVAILABLE


class OnMaintenance(ExchangeNotAvailable):
    category = ErrorCategory.MAINTENANCE
    retry_eligible = RetryEligibility.BACKOFF


class RequestTimeout(NetworkError):
    category = ErrorCategory.TIMEOUT


ErrorTable = Mapping[str, Type[BaseError]]


# ============================================================
# ERROR MAPPER
# ============================================================

class ErrorMapper:
    """
    Two-stage lookup from exchange tokens to error classes.

    The exact table is consulted first (codes and full messages,
    compared as strings), then the broad table (substrings). An exact
    hit always wins over a broad one.
    """

    def __init__(
        self,
        exchange_id: str,
        exact: Optional[Mapping[Any, Type[BaseError]]] = None,
        broad: Optional[Mapping[str, Type[BaseError]]] = None,
    ):
        self.exchange_id = exchange_id
        self.exact: Dict[str, Type[BaseError]] = {str(k): v for k, v in (exact or {}).items()}
        self.broad: Dict[str, Type[BaseError]] = dict(broad or {})

    def match_exact(self, token: Any) -> Optional[Type[BaseError]]:
        if token is None:
            return None
        return self.exact.get(str(token))

    def match_broad(self, token: Any) -> Optional[Type[BaseError]]:
        if token is None:
            return None
        text = str(token)
        for needle, error_cls in self.broad.items():
            if needle in text:
                return error_cls
        return None

    def match(self, token: Any) -> Optional[Type[BaseError]]:
        """
        Resolve a token to an error class.

        Args:
            token: Error code or message

        Returns:
            Matching error class, or None
        """
        return self.match_exact(token) or self.match_broad(token)

    def _raise(
        self,
        error_cls: Type[BaseError],
        feedback: str,
        token: Any,
        http_status: Optional[int],
        body: Optional[str],
    ) -> None:
        raise error_cls(
            feedback,
            exchange_id=self.exchange_id,
            http_status=http_status,
            body=body,
            code=None if token is None else str(token),
        )

    def throw_exactly_matched(
        self,
        token: Any,
        feedback: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        """Raise when the token is in the exact table; otherwise return."""
        error_cls = self.match_exact(token)
        if error_cls is not None:
            self._raise(error_cls, feedback, token, http_status, body)

    def throw_broadly_matched(
        self,
        token: Any,
        feedback: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        """Raise when a broad-table needle occurs in the token; otherwise return."""
        error_cls = self.match_broad(token)
        if error_cls is not None:
            self._raise(error_cls, feedback, token, http_status, body)

    def throw(
        self,
        token: Any,
        feedback: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
        default: Optional[Type[BaseError]] = None,
    ) -> None:
        """
        Raise the matched error class.

        When nothing matches and a default class is given it is raised
        instead; with no default the call returns.
        """
        error_cls = self.match(token) or default
        if error_cls is not None:
            self._raise(error_cls, feedback, token, http_status, body)

    def generic(
        self,
        feedback: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> ExchangeError:
        """Build the catch-all error for an unrecognized failure."""
        return ExchangeError(
            feedback,
            exchange_id=self.exchange_id,
            http_status=http_status,
            body=body,
        )


def extract_nested_message(message: Any) -> Tuple[Any, Any]:
    """
    Unwrap a message that is itself a JSON-encoded error object.

    Args:
        message: Outer message value

    Returns:
        (inner_message, inner_code); inner_message falls back to the
        original value and inner_code to None.
    """
    if isinstance(message, str) and message.startswith("{"):
        try:
            inner = json.loads(message)
        except ValueError:
            return message, None
        if isinstance(inner, dict):
            return inner.get("msg", message), inner.get("code")
    return message, None


# ============================================================
# HTTP STATUS FALLBACK
# ============================================================

HTTP_STATUS_ERRORS: Dict[int, Type[BaseError]] = {
    401: AuthenticationError,
    403: PermissionDenied,
    404: ExchangeNotAvailable,
    407: AuthenticationError,
    409: ExchangeNotAvailable,
    410: ExchangeNotAvailable,
    418: DDoSProtection,
    429: DDoSProtection,
    500: ExchangeNotAvailable,
    501: ExchangeNotAvailable,
    502: ExchangeNotAvailable,
    503: OnMaintenance,
    504: RequestTimeout,
    511: AuthenticationError,
    520: ExchangeNotAvailable,
    521: ExchangeNotAvailable,
    522: ExchangeNotAvailable,
    525: ExchangeNotAvailable,
}

RATE_LIMIT_STATUSES = frozenset({418, 429})


def error_for_http_status(status: int) -> Optional[Type[BaseError]]:
    """
    Map an HTTP status to an error class.

    Args:
        status: HTTP status code

    Returns:
        Error class, or None for non-error statuses
    """
    if status in HTTP_STATUS_ERRORS:
        return HTTP_STATUS_ERRORS[status]
    if status >= 500:
        return ExchangeNotAvailable
    if status >= 400:
        return ExchangeError
    return None


# ============================================================
# NETWORK ERROR HELPERS
# ============================================================

def create_network_error(
    exchange_id: str,
    message: str,
    operation: Optional[str] = None,
) -> NetworkError:
    """Create network error."""
    return NetworkError(
        message,
        exchange_id=exchange_id,
        code=f"{exchange_id.upper()}_NETWORK_ERROR",
        operation=operation,
    )


def create_timeout_error(
    exchange_id: str,
    timeout_ms: Union[int, float],
    operation: Optional[str] = None,
) -> RequestTimeout:
    """Create timeout error."""
    return RequestTimeout(
        f"Request timed out after {int(timeout_ms)}ms",
        exchange_id=exchange_id,
        code=f"{exchange_id.upper()}_TIMEOUT",
        operation=operation,
    )
