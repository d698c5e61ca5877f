"""
Exchange Connectors - HTTP Transport.

============================================================
PURPOSE
============================================================
Thin aiohttp wrapper that sends a SignedRequest and returns the raw
status, headers and body text. No error interpretation happens here;
aiohttp exceptions propagate to the connector's request pipeline.

JSON bodies are parsed with Decimal floats so prices keep their
exact textual value.

============================================================
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

import aiohttp

from exchange_connectors.config import TimeoutConfig
from exchange_connectors.adapters.signing import SignedRequest


logger = logging.getLogger(__name__)


# ============================================================
# RESPONSE
# ============================================================

@dataclass
class HttpResponse:
    """Raw HTTP answer."""

    status: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    method: Optional[str] = None

    @property
    def json(self) -> Any:
        """Parsed body, or None when the body is not JSON."""
        return parse_json(self.text)


def parse_json(text: Optional[str]) -> Any:
    """
    Parse JSON with Decimal floats.

    Returns:
        Parsed value, or None for empty / non-JSON text
    """
    if not text:
        return None
    stripped = text.lstrip()
    if not stripped or stripped[0] not in "{[":
        return None
    try:
        return json.loads(text, parse_float=Decimal)
    except ValueError:
        return None


def dump_json(value: Any) -> str:
    """Serialize a request body; Decimals are written as strings."""
    return json.dumps(value, separators=(",", ":"), default=str)


# ============================================================
# TRANSPORT
# ============================================================

class HttpTransport:
    """
    Owns one aiohttp.ClientSession.

    The session is created on first use or by open(), and closed by
    close().
    """

    def __init__(
        self,
        timeout: Optional[TimeoutConfig] = None,
        user_agent: Optional[str] = None,
    ):
        self._timeout = timeout or TimeoutConfig()
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    @property
    def timeout(self) -> TimeoutConfig:
        return self._timeout

    async def open(self) -> None:
        if not self.is_open:
            headers = {"User-Agent": self._user_agent} if self._user_agent else None
            self._session = aiohttp.ClientSession(
                timeout=self._timeout.to_client_timeout(),
                headers=headers,
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, request: SignedRequest) -> HttpResponse:
        """
        Send one request.

        Raises:
            aiohttp.ClientError: Transport failure
            asyncio.TimeoutError: Timeout exceeded
        """
        await self.open()
        async with self._session.request(
            request.method,
            request.url,
            data=request.body,
            headers=request.headers or None,
        ) as resp:
            text = await resp.text()
            return HttpResponse(
                status=resp.status,
                text=text,
                headers=dict(resp.headers),
                url=request.url,
                method=request.method,
            )
