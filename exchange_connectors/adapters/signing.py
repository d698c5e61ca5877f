"""
Exchange Connectors - Signing Primitives.

============================================================
PURPOSE
============================================================
Building blocks for request authentication:
- HMAC over str or bytes, hex or base64 output
- MD5 digests for md5-signed APIs
- HTTP Basic credentials
- Strictly increasing millisecond nonces
- Query string encoding with optional key sorting

============================================================
"""

import base64
import hashlib
import hmac
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode as _urlencode


# ============================================================
# SIGNED REQUEST
# ============================================================

@dataclass
class SignedRequest:
    """Everything the transport needs to send one request."""

    url: str
    method: str = "GET"
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


# ============================================================
# DIGESTS
# ============================================================

def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def hmac_sign(
    secret: Any,
    payload: Any,
    digest: str = "sha256",
    encoding: str = "hex",
) -> str:
    """
    HMAC signature.

    Args:
        secret: Key (str or bytes)
        payload: Message (str or bytes)
        digest: hashlib algorithm name
        encoding: "hex" or "base64"

    Returns:
        Encoded signature
    """
    mac = hmac.new(_to_bytes(secret), _to_bytes(payload), getattr(hashlib, digest))
    if encoding == "base64":
        return base64.b64encode(mac.digest()).decode("ascii")
    return mac.hexdigest()


def md5_hex(payload: Any) -> str:
    return hashlib.md5(_to_bytes(payload)).hexdigest()


def basic_auth(username: str, password: str) -> str:
    """Authorization header value for HTTP Basic auth."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


# ============================================================
# QUERY ENCODING
# ============================================================

def keysort(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy with keys in ascending order."""
    return {key: params[key] for key in sorted(params)}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def urlencode(params: Mapping[str, Any]) -> str:
    """Form-encode params in insertion order; None values are dropped."""
    return _urlencode([(key, _stringify(value)) for key, value in params.items() if value is not None])


def raw_query(params: Mapping[str, Any]) -> str:
    """k=v&k=v without percent-encoding (md5 signature payloads)."""
    return "&".join(f"{key}={_stringify(value)}" for key, value in params.items() if value is not None)


# ============================================================
# NONCE
# ============================================================

class NonceSource:
    """
    Millisecond nonces corrected for clock skew.

    Each value is local ms minus the calibrated offset, bumped by one
    when the clock has not advanced so values strictly increase.
    """

    def __init__(self, time_difference_ms: int = 0):
        self.time_difference_ms = time_difference_ms
        self._last = 0
        self._lock = threading.Lock()

    def milliseconds(self) -> int:
        """Exchange-aligned current time."""
        return int(time.time() * 1000) - self.time_difference_ms

    def next(self) -> int:
        with self._lock:
            value = self.milliseconds()
            if value <= self._last:
                value = self._last + 1
            self._last = value
            return value
