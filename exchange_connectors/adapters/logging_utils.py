"""
Exchange Connectors - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Structured, credential-safe logging for connector traffic:
- Masking of keys, secrets and signatures in headers, params, URLs
- One JSON line per request, response and order action
- Request ids "<exchange>-<n>" for request/response correlation

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys or secrets
2. Mask auth headers of every supported exchange
3. Log a hash of the request body, not the body
4. Truncate response previews

============================================================
"""

import hashlib
import json
import logging
import re
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


# ============================================================
# SENSITIVE DATA PATTERNS
# ============================================================

# Header names that should be masked (compared lower-cased)
SENSITIVE_HEADERS = {
    "authorization",
    "key",
    "sign",
    "access-key",
    "access-sign",
    "x-bcio-apikey",
    "api-key",
    "secret",
    "signature",
}

# Parameter names that should be masked (compared lower-cased)
SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "accesskey",
    "secret",
    "secretkey",
    "secret_key",
    "password",
    "tradepwd",
    "signature",
    "signdata",
    "sign",
    "token",
}

# Regex patterns for sensitive data embedded in free text
SENSITIVE_PATTERNS = [
    (re.compile(r"\b[a-f0-9]{64,128}\b", re.IGNORECASE), "***HMAC***"),  # hex signatures
    (re.compile(r"\b[A-Za-z0-9]{32,}\b"), "***KEY***"),  # API keys (32+ chars)
]


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_text(value: str) -> str:
    """Redact key- and signature-shaped substrings."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def mask_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Mask sensitive headers.

    Args:
        headers: Request headers

    Returns:
        Headers with sensitive values masked
    """
    if not headers:
        return {}
    return {
        key: mask_value(str(value)) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Mask sensitive parameters, recursing into nested dicts.

    Args:
        params: Request parameters

    Returns:
        Parameters with sensitive values masked
    """
    if not params:
        return {}

    masked: Dict[str, Any] = {}
    for key, value in params.items():
        if str(key).lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        elif isinstance(value, str):
            masked[key] = mask_text(value)
        else:
            masked[key] = value
    return masked


def mask_url(url: str) -> str:
    """
    Mask sensitive query params in a URL.

    Args:
        url: URL string

    Returns:
        URL with sensitive params masked
    """
    if not url:
        return url
    for param in SENSITIVE_PARAMS:
        pattern = re.compile(rf"([?&]{param}=)([^&]+)", re.IGNORECASE)
        url = pattern.sub(lambda m: f"{m.group(1)}***", url)
    return url


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _LogEntry:
    """Shared serialization for log entries."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class RequestLogEntry(_LogEntry):
    """Structured log entry for requests."""

    timestamp: str
    exchange_id: str
    operation: str
    method: str
    url: str
    request_id: str

    headers: Optional[Dict[str, str]] = None
    body_hash: Optional[str] = None  # Hash of body instead of full body


@dataclass
class ResponseLogEntry(_LogEntry):
    """Structured log entry for responses."""

    timestamp: str
    exchange_id: str
    operation: str
    request_id: str

    status_code: Optional[int]
    latency_ms: float
    success: bool

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    response_preview: Optional[str] = None


@dataclass
class OrderLogEntry(_LogEntry):
    """Structured log entry for order actions."""

    timestamp: str
    exchange_id: str
    operation: str  # create, cancel, fetch

    order_id: Optional[str] = None
    symbol: Optional[str] = None
    side: Optional[str] = None
    order_type: Optional[str] = None
    amount: Optional[str] = None
    price: Optional[str] = None
    status: Optional[str] = None
    error_message: Optional[str] = None


# ============================================================
# CONNECTOR LOGGER
# ============================================================

class ConnectorLogger:
    """
    Secure logger for one connector instance.

    Writes under "exchange_connectors.<exchange_id>".
    """

    PREVIEW_CHARS = 200

    def __init__(self, exchange_id: str, logger_name: Optional[str] = None):
        self._exchange_id = exchange_id
        self._logger = logging.getLogger(logger_name or f"exchange_connectors.{exchange_id}")
        self._request_counter = 0

    @property
    def name(self) -> str:
        return self._logger.name

    def _generate_request_id(self) -> str:
        self._request_counter += 1
        return f"{self._exchange_id}-{self._request_counter}"

    @staticmethod
    def _hash_body(body: Any) -> Optional[str]:
        if not body:
            return None
        if isinstance(body, (dict, list)):
            body_str = json.dumps(body, sort_keys=True, default=str)
        else:
            body_str = str(body)
        return hashlib.sha256(body_str.encode()).hexdigest()[:16]

    def log_request(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> str:
        """
        Log outgoing request.

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()
        entry = RequestLogEntry(
            timestamp=_now(),
            exchange_id=self._exchange_id,
            operation=operation,
            method=method,
            url=mask_url(url),
            request_id=request_id,
            headers=mask_headers(headers) or None,
            body_hash=self._hash_body(body),
        )
        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        operation: str,
        request_id: str,
        status_code: Optional[int],
        latency_ms: float,
        success: bool,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
        response_body: Any = None,
    ) -> None:
        """Log incoming response; failures go out at WARNING."""
        preview = None
        if response_body:
            preview = mask_text(str(response_body))[: self.PREVIEW_CHARS]

        entry = ResponseLogEntry(
            timestamp=_now(),
            exchange_id=self._exchange_id,
            operation=operation,
            request_id=request_id,
            status_code=status_code,
            latency_ms=round(latency_ms, 3),
            success=success,
            error_type=error_type,
            error_message=error_message[: self.PREVIEW_CHARS] if error_message else None,
            response_preview=preview,
        )
        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

    def log_order(
        self,
        operation: str,
        order_id: Optional[str] = None,
        symbol: Optional[str] = None,
        side: Optional[str] = None,
        order_type: Optional[str] = None,
        amount: Any = None,
        price: Any = None,
        status: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Log an order action at INFO, or WARNING when it failed."""
        entry = OrderLogEntry(
            timestamp=_now(),
            exchange_id=self._exchange_id,
            operation=operation,
            order_id=order_id,
            symbol=symbol,
            side=side,
            order_type=order_type,
            amount=None if amount is None else str(amount),
            price=None if price is None else str(price),
            status=status,
            error_message=error_message,
        )
        if error_message:
            self._logger.warning(f"ORDER_ERROR: {entry.to_json()}")
        else:
            self._logger.info(f"ORDER: {entry.to_json()}")

    def info(self, message: str) -> None:
        self._logger.info(f"[{self._exchange_id}] {message}")

    def warning(self, message: str) -> None:
        self._logger.warning(f"[{self._exchange_id}] {message}")

    def error(self, message: str, exc_info: bool = False) -> None:
        self._logger.error(f"[{self._exchange_id}] {message}", exc_info=exc_info)

    def debug(self, message: str) -> None:
        self._logger.debug(f"[{self._exchange_id}] {message}")
