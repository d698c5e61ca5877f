"""
Base Adapter Pipeline Tests.

============================================================
PURPOSE
============================================================
The shared request pipeline and market cache, exercised through a
minimal connector on the stub transport:
- 418/429 → DDoSProtection regardless of body
- handle_errors runs before the HTTP status fallback
- aiohttp failures become NetworkError / RequestTimeout
- load_markets caches and shares one fetch
- Clock calibration returns an offset the caller applies
- Order actions are counted and logged

============================================================
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import aiohttp
import pytest

from exchange_connectors.config import ConnectorConfig
from exchange_connectors.types import Market, Order
from exchange_connectors.adapters.base import ExchangeAdapter, order_action, parse_timeframe
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import (
    AuthenticationError,
    BadRequest,
    BadSymbol,
    DDoSProtection,
    ExchangeError,
    InsufficientFunds,
    NetworkError,
    NotSupported,
    OnMaintenance,
    RequestTimeout,
)
from exchange_connectors.adapters.metrics import MetricType


class SampleAdapter(ExchangeAdapter):
    """Smallest useful connector."""

    EXCHANGE_ID = "sample"
    URLS = {"api": "https://{hostname}/api"}
    HOSTNAME = "api.sample.test"
    ENDPOINTS = {
        "markets": Endpoint.public("GET", "markets"),
        "time": Endpoint.public("GET", "time"),
        "ticker": Endpoint.public("GET", "ticker/{pair}"),
    }
    TIMEFRAMES = {"1m": "60"}
    DEFAULT_OPTIONS = {"flag": False}
    EXACT_ERRORS = {"E100": InsufficientFunds}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.market_fetches = 0

    async def fetch_markets(self):
        self.market_fetches += 1
        response = await self.api["markets"]()
        return [
            Market(id=raw["id"], base=raw["base"], quote=raw["quote"], taker=Decimal("0.002"))
            for raw in response
        ]

    async def fetch_time(self):
        response = await self.api["time"]()
        return response["serverTime"]

    @order_action("create")
    async def create_order(self, symbol, type, side, amount, price=None, params=None):
        if amount <= 0:
            raise ExchangeError("rejected", exchange_id=self.EXCHANGE_ID)
        return Order(id="1", symbol=symbol, type=type, side=side, amount=amount, status="open")

    def handle_errors(self, status, text, body, response):
        if isinstance(body, dict) and "error" in body:
            self.errors.throw_exactly_matched(body["error"], f"sample {text}", status, text)
            self.raise_generic(f"sample {text}", status, text)


MARKETS = [
    {"id": "btcusdt", "base": "BTC", "quote": "USDT"},
    {"id": "ethbtc", "base": "ETH", "quote": "BTC"},
]


@pytest.fixture
def adapter(make_connector, stub_transport):
    stub_transport.route("/markets", MARKETS)
    return make_connector(SampleAdapter)


# ============================================================
# REQUEST PIPELINE TESTS
# ============================================================

class TestRequestPipeline:
    """Tests for sign → send → classify."""

    @pytest.mark.asyncio
    async def test_url_templating(self, adapter, stub_transport):
        """Hostname and path placeholders are resolved; the rest is query."""
        stub_transport.route("/ticker/", {"last": "1"})

        body = await adapter.api["ticker"]({"pair": "btcusdt", "depth": 5})

        assert body == {"last": "1"}
        assert stub_transport.last.url == "https://api.sample.test/api/ticker/btcusdt?depth=5"

    @pytest.mark.asyncio
    async def test_hostname_override(self, make_connector, stub_transport):
        stub_transport.route("/markets", MARKETS)
        adapter = make_connector(SampleAdapter, hostname="mirror.sample.test")

        await adapter.api["markets"]()

        assert stub_transport.last.url.startswith("https://mirror.sample.test/api/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [418, 429])
    async def test_rate_limit_status(self, adapter, stub_transport, status):
        """418/429 raise DDoSProtection whatever the body says."""
        stub_transport.route("/time", {"serverTime": 1}, status=status)

        with pytest.raises(DDoSProtection) as exc_info:
            await adapter.api["time"]()

        assert exc_info.value.http_status == status
        assert adapter.metrics.count(MetricType.RATE_LIMIT_HIT) == 1

    @pytest.mark.asyncio
    async def test_body_error_before_status(self, adapter, stub_transport):
        """Exchange error codes win over the HTTP status."""
        stub_transport.route("/time", {"error": "E100"}, status=400)

        with pytest.raises(InsufficientFunds):
            await adapter.api["time"]()

    @pytest.mark.asyncio
    async def test_unknown_body_error_is_generic(self, adapter, stub_transport):
        stub_transport.route("/time", {"error": "E999"})

        with pytest.raises(ExchangeError) as exc_info:
            await adapter.api["time"]()

        assert type(exc_info.value) is ExchangeError

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_cls",
        [(401, AuthenticationError), (503, OnMaintenance), (504, RequestTimeout), (404, NetworkError)],
    )
    async def test_status_fallback(self, adapter, stub_transport, status, error_cls):
        """Silent bodies fall back to the HTTP status table."""
        stub_transport.route("/time", "<html>down</html>", status=status)

        with pytest.raises(error_cls):
            await adapter.api["time"]()

    @pytest.mark.asyncio
    async def test_non_json_body_returned_as_text(self, adapter, stub_transport):
        stub_transport.route("/time", "pong")
        assert await adapter.api["time"]() == "pong"

    @pytest.mark.asyncio
    async def test_transport_errors(self, adapter, stub_transport):
        """aiohttp failures and timeouts become network errors."""
        stub_transport.fetch = AsyncMock(side_effect=aiohttp.ClientConnectionError("reset"))
        with pytest.raises(NetworkError) as exc_info:
            await adapter.api["time"]()
        assert exc_info.value.code == "SAMPLE_NETWORK_ERROR"

        stub_transport.fetch = AsyncMock(side_effect=asyncio.TimeoutError())
        with pytest.raises(RequestTimeout):
            await adapter.api["time"]()

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, adapter, stub_transport):
        await adapter.api["markets"]()

        summary = adapter.metrics.get_summary()
        assert summary["requests"]["success"] == 1
        assert "markets" in adapter.metrics.get_latency_by_endpoint()

    def test_private_sign_not_supported(self, adapter):
        """The default signer only handles public calls."""
        with pytest.raises(NotSupported):
            adapter.sign("account", "private", "GET", {})


# ============================================================
# MARKET CACHE TESTS
# ============================================================

class TestMarketCache:
    """Tests for load_markets and lookups."""

    @pytest.mark.asyncio
    async def test_load_once(self, adapter):
        """Markets are fetched once and reused."""
        await adapter.load_markets()
        await adapter.load_markets()

        assert adapter.market_fetches == 1
        assert adapter.symbols == ["BTC/USDT", "ETH/BTC"]

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_fetch(self, adapter):
        await asyncio.gather(adapter.load_markets(), adapter.load_markets(), adapter.load_markets())
        assert adapter.market_fetches == 1

    @pytest.mark.asyncio
    async def test_reload(self, adapter):
        await adapter.load_markets()
        await adapter.load_markets(reload=True)
        assert adapter.market_fetches == 2

    @pytest.mark.asyncio
    async def test_lookups(self, adapter):
        await adapter.load_markets()

        assert adapter.market("ETH/BTC").id == "ethbtc"
        assert adapter.market_by_id("btcusdt").symbol == "BTC/USDT"
        assert adapter.market_by_id("unknown") is None
        assert adapter.safe_market("unknown") is None
        with pytest.raises(BadSymbol):
            adapter.market("DOGE/USD")

    @pytest.mark.asyncio
    async def test_calculate_fee_uses_market_rate(self, adapter):
        await adapter.load_markets()

        fee = adapter.calculate_fee("BTC/USDT", "limit", "sell", Decimal("1"), Decimal("100"))

        assert fee.cost == Decimal("0.2")
        assert fee.currency == "USDT"


# ============================================================
# CONFIGURATION, CLOCK AND CAPABILITIES
# ============================================================

class TestAdapterState:
    """Tests for options, clock and capability flags."""

    def test_options_merged_and_read_only(self, make_connector):
        adapter = make_connector(SampleAdapter, options={"flag": True})

        assert adapter.options["flag"] is True
        with pytest.raises(TypeError):
            adapter.options["flag"] = False

    def test_defaults_untouched(self, make_connector):
        make_connector(SampleAdapter, options={"flag": True})
        assert SampleAdapter.DEFAULT_OPTIONS == {"flag": False}

    @pytest.mark.asyncio
    async def test_calibrate_clock(self, adapter, stub_transport):
        """The offset is returned, and only applied on request."""
        local_ms = adapter.milliseconds()
        stub_transport.route("/time", {"serverTime": local_ms - 5000})

        offset = await adapter.calibrate_clock()

        assert 4000 <= offset <= 6000
        assert adapter.time_difference_ms == 0

        adapter.apply_time_difference(offset)
        assert adapter.time_difference_ms == offset

    def test_config_time_difference(self):
        adapter = SampleAdapter(ConnectorConfig(time_difference_ms=250), transport=None)
        assert adapter.time_difference_ms == 250

    def test_missing_credentials(self, make_connector):
        adapter = make_connector(SampleAdapter, api_key=None)
        with pytest.raises(AuthenticationError, match="api_key"):
            adapter.check_required_credentials()

    def test_has(self, adapter):
        """Only overridden capabilities are reported."""
        assert adapter.has("create_order")
        assert adapter.has("fetch_time")
        assert not adapter.has("fetch_ticker")

    @pytest.mark.asyncio
    async def test_unsupported_capability(self, adapter):
        with pytest.raises(NotSupported, match="fetch_ticker"):
            await adapter.fetch_ticker("BTC/USDT")

    def test_timeframes(self, adapter):
        assert adapter.timeframe_id("1m") == "60"
        with pytest.raises(BadRequest):
            adapter.timeframe_id("7m")
        assert parse_timeframe("15m") == 900
        assert parse_timeframe("1d") == 86400

    @pytest.mark.asyncio
    async def test_order_action_tracking(self, adapter):
        """Created and rejected orders are counted."""
        await adapter.create_order("BTC/USDT", "limit", "buy", Decimal("1"), Decimal("100"))
        with pytest.raises(ExchangeError):
            await adapter.create_order("BTC/USDT", "limit", "buy", Decimal("0"), Decimal("100"))

        assert adapter.metrics.count(MetricType.ORDER_CREATED) == 1
        assert adapter.metrics.count(MetricType.ORDER_REJECTED) == 1

    @pytest.mark.asyncio
    async def test_context_manager(self, adapter, stub_transport):
        async with adapter:
            assert adapter.is_connected
        assert not adapter.is_connected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
