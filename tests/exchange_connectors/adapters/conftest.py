"""
Shared fixtures for connector tests.

Connectors are built on a StubTransport that records every
SignedRequest and answers from canned routes, so no test touches
the network.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from exchange_connectors.config import ConnectorConfig
from exchange_connectors.adapters.signing import SignedRequest
from exchange_connectors.adapters.transport import HttpResponse


class StubTransport:
    """
    In-memory transport.

    Routes are (url fragment, status, body) triples; the most recently
    added route whose fragment occurs in the request URL answers.
    """

    def __init__(self):
        self.requests: List[SignedRequest] = []
        self._routes: List[Tuple[str, int, str]] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self._open = True

    async def close(self) -> None:
        self._open = False

    def route(self, fragment: str, payload: Any, status: int = 200) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self._routes.append((fragment, status, text))

    @property
    def last(self) -> SignedRequest:
        return self.requests[-1]

    def find(self, fragment: str) -> Optional[SignedRequest]:
        for request in reversed(self.requests):
            if fragment in request.url:
                return request
        return None

    async def fetch(self, request: SignedRequest) -> HttpResponse:
        self.requests.append(request)
        for fragment, status, text in reversed(self._routes):
            if fragment in request.url:
                return HttpResponse(status=status, text=text, url=request.url, method=request.method)
        raise AssertionError(f"No stub route for {request.method} {request.url}")


@pytest.fixture
def stub_transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def make_connector(stub_transport):
    """Build a connector with test credentials on the stub transport."""

    def factory(connector_class, options: Optional[Dict[str, Any]] = None, **config_fields):
        config_fields.setdefault("api_key", "test_key")
        config_fields.setdefault("secret", "test_secret")
        config = ConnectorConfig(options=dict(options or {}), **config_fields)
        return connector_class(config, stub_transport)

    return factory
