"""
Bit-Z Protocol.

============================================================
PURPOSE
============================================================
Conventions shared by every Bit-Z API family (spot, contract).

Connectors hold a BitzProtocol instance rather than inheriting
from a Bit-Z base class.

ENVELOPE:
    {"status": 200, "msg": "", "data": ..., "time": 1533035297,
     "microtime": "0.41892000 1533035297", "source": "api"}

AUTH (form body):
    body = keysort(apiKey, timeStamp, nonce, params) as k=v&k=v
    sign = md5(body + secret)

============================================================
"""

import logging
import threading
import time
from typing import Any, Mapping, Optional

from exchange_connectors.adapters.accessors import safe_string
from exchange_connectors.adapters.errors import (
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidOrder,
    OnMaintenance,
    OrderNotFound,
    PermissionDenied,
)
from exchange_connectors.adapters.signing import keysort, md5_hex, raw_query


logger = logging.getLogger(__name__)


SUCCESS_STATUS = "200"
NONCE_FLOOR = 100000

STATUS_ERRORS = {
    "-102": ExchangeError,  # Invalid parameter
    "-103": AuthenticationError,  # Verification failed
    "-104": ExchangeNotAvailable,  # Network Error-1
    "-105": AuthenticationError,  # Invalid api signature
    "-106": ExchangeNotAvailable,  # Network Error-2
    "-109": AuthenticationError,  # Invalid secretKey
    "-110": DDoSProtection,  # The number of access requests exceeded
    "-111": PermissionDenied,  # Current IP is not in the range of trusted IP
    "-112": OnMaintenance,  # Service is under maintenance
    "-114": DDoSProtection,  # The number of daily requests has reached the limit
    "-117": AuthenticationError,  # The apikey expires
    "-100015": AuthenticationError,  # Trade password error
    "-100044": ExchangeError,  # Fail to request data
    "-100101": ExchangeError,  # Invalid symbol
    "-100201": ExchangeError,  # Invalid symbol
    "-100301": ExchangeError,  # Invalid symbol
    "-100401": ExchangeError,  # Invalid symbol
    "-100302": ExchangeError,  # Type of K-line error
    "-100303": ExchangeError,  # Size of K-line error
    "-200003": AuthenticationError,  # Please set trade password
    "-200005": PermissionDenied,  # This account can not trade
    "-200025": ExchangeNotAvailable,  # Temporary trading halt
    "-200027": InvalidOrder,  # Price Error
    "-200028": InvalidOrder,  # Amount must be greater than 0
    "-200029": InvalidOrder,  # Number must be between %s and %d
    "-200030": InvalidOrder,  # Over price range
    "-200031": InsufficientFunds,  # Insufficient assets
    "-200032": ExchangeError,  # System error. Please contact customer service
    "-200033": ExchangeError,  # Fail to trade
    "-200034": OrderNotFound,  # The order does not exist
    "-200035": OrderNotFound,  # Cancellation error, order filled
    "-200037": InvalidOrder,  # Trade direction error
    "-200038": ExchangeError,  # Trading Market Error
    "-200055": OrderNotFound,  # Order record does not exist
    "-300069": AuthenticationError,  # api_key is illegal
    "-300101": ExchangeError,  # Transaction type error
    "-300102": InvalidOrder,  # Price or number cannot be less than 0
    "-300103": AuthenticationError,  # Trade password error
    "-301001": ExchangeNotAvailable,  # Network Error-3
}


def parse_microtime(microtime: Optional[str]) -> Optional[int]:
    """
    Parse the envelope clock into ms.

    "0.41892000 1533035297" → 1533035297418
    """
    if not microtime:
        return None
    parts = microtime.split(" ")
    if len(parts) != 2:
        return None
    try:
        fraction = float(parts[0])
        seconds = int(parts[1])
    except ValueError:
        return None
    return seconds * 1000 + int(fraction * 1000)


class BitzProtocol:
    """
    Bit-Z envelope, nonce and signature handling.

    Nonces are per-second counters starting above NONCE_FLOOR; the
    counter resets whenever the second advances.
    """

    HOSTNAME = "apiv2.bitz.com"
    STATUS_ERRORS = STATUS_ERRORS

    def __init__(self):
        self._last_second = 0
        self._last_nonce = NONCE_FLOOR
        self._lock = threading.Lock()

    def nonce(self, now_seconds: Optional[int] = None) -> int:
        with self._lock:
            current = int(time.time()) if now_seconds is None else now_seconds
            if current > self._last_second:
                self._last_second = current
                self._last_nonce = NONCE_FLOOR
            self._last_nonce += 1
            return self._last_nonce

    def sign_body(
        self,
        params: Mapping[str, Any],
        api_key: str,
        secret: str,
        timestamp_seconds: int,
    ) -> str:
        """
        Build the signed form body.

        Args:
            params: Request params
            api_key: Account key
            secret: Account secret
            timestamp_seconds: Exchange-aligned seconds

        Returns:
            "k=v&...&sign=<md5>"
        """
        body = raw_query(keysort({
            "apiKey": api_key,
            "timeStamp": timestamp_seconds,
            "nonce": self.nonce(timestamp_seconds),
            **params,
        }))
        return f"{body}&sign={md5_hex(body + secret)}"

    @staticmethod
    def error_status(body: Any) -> Optional[str]:
        """The failing envelope status, or None for success and non-envelopes."""
        if not isinstance(body, dict) or "status" not in body:
            return None
        status = safe_string(body, "status")
        return None if status == SUCCESS_STATUS else status

    @staticmethod
    def timestamp(body: Any) -> Optional[int]:
        return parse_microtime(safe_string(body, "microtime"))

    @staticmethod
    def data(body: Any, default: Any = None) -> Any:
        if not isinstance(body, dict):
            return default
        value = body.get("data")
        return default if value is None else value
