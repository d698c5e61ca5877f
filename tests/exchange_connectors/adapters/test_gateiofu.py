"""
Gate.io Futures Connector Tests.
"""

from decimal import Decimal
from urllib.parse import parse_qs

import pytest

from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    AuthenticationError,
    ExchangeError,
    InvalidOrder,
)
from exchange_connectors.adapters.gateiofu import GateioFuturesAdapter
from exchange_connectors.adapters.signing import hmac_sign


BTC_CONTRACTS = [
    {"name": "BTC_USD", "type": "inverse", "order_size_min": 1, "order_size_max": 1000000,
     "order_price_round": "0.5", "maker_fee_rate": "-0.00025", "taker_fee_rate": "0.00075"},
]
USDT_CONTRACTS = [
    {"name": "BTC_USDT", "type": "direct", "order_size_min": 1, "order_size_max": 500000,
     "order_price_round": "0.1", "maker_fee_rate": "-0.00025", "taker_fee_rate": "0.00075"},
    {"name": "BOE_ETH_ETH", "type": "direct", "order_size_min": 10, "order_price_round": "0.00001"},
]


def query_of(url):
    return parse_qs(url.split("?", 1)[1]) if "?" in url else {}


@pytest.fixture
def gateiofu(make_connector, stub_transport):
    stub_transport.route("/futures/btc/contracts", BTC_CONTRACTS)
    stub_transport.route("/futures/usdt/contracts", USDT_CONTRACTS)
    return make_connector(GateioFuturesAdapter)


class TestMarkets:
    """Tests for per-settle contracts."""

    @pytest.mark.asyncio
    async def test_markets_per_settle(self, gateiofu, stub_transport):
        markets = await gateiofu.load_markets()

        assert sorted(markets) == ["BOE_ETH/ETH", "BTC/USD", "BTC/USDT"]
        assert stub_transport.requests[0].url == "https://fx-api.gateio.ws/api/v4/futures/btc/contracts"

    @pytest.mark.asyncio
    async def test_inverse_is_swap(self, gateiofu):
        markets = await gateiofu.load_markets()

        inverse = markets["BTC/USD"]
        assert inverse.swap
        assert inverse.settle == "BTC"
        assert inverse.settle_id == "btc"
        assert inverse.precision.price == Decimal("0.5")
        assert inverse.limits.cost.min == Decimal("0.5")
        assert inverse.maker == Decimal("-0.00025")
        assert markets["BTC/USDT"].future

    @pytest.mark.asyncio
    async def test_settle_option(self, make_connector, stub_transport):
        stub_transport.route("/futures/usdt/contracts", USDT_CONTRACTS)
        gateiofu = make_connector(GateioFuturesAdapter, options={"settle_currency_ids": ["usdt"]})

        markets = await gateiofu.load_markets()

        assert "BTC/USD" not in markets
        assert len(stub_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_unrecognized_response(self, gateiofu, stub_transport):
        stub_transport.route("/futures/btc/contracts", {"unexpected": True})

        with pytest.raises(ExchangeError):
            await gateiofu.load_markets()


class TestMarketData:
    """Tests for tickers, book, trades and candles."""

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, gateiofu, stub_transport):
        stub_transport.route("/futures/btc/tickers", [
            {"contract": "BTC_USD", "last": "6432", "change_percentage": "0.5",
             "high_24h": "6500", "low_24h": "6300", "volume_24h_base": "1500",
             "volume_24h_quote": "9600000"},
        ])

        ticker = await gateiofu.fetch_ticker("BTC/USD")

        assert ticker.symbol == "BTC/USD"
        assert ticker.percentage == Decimal("0.5")
        assert ticker.open == Decimal("6432") / Decimal("1.005")
        assert ticker.vwap == Decimal("6400")
        assert query_of(stub_transport.last.url) == {"contract": ["BTC_USD"]}

    @pytest.mark.asyncio
    async def test_fetch_order_book(self, gateiofu, stub_transport):
        stub_transport.route("/futures/usdt/order_book", {
            "current": 1546569968.123,
            "asks": [{"p": "3765.1", "s": 100}],
            "bids": [{"p": "3765", "s": 40}],
        })

        book = await gateiofu.fetch_order_book("BTC/USDT", limit=10)

        assert book.timestamp == 1546569968123
        assert book.asks == [[Decimal("3765.1"), Decimal("100")]]
        assert query_of(stub_transport.last.url) == {"contract": ["BTC_USDT"], "limit": ["10"]}

    @pytest.mark.asyncio
    async def test_trade_side_from_size(self, gateiofu, stub_transport):
        stub_transport.route("/futures/btc/trades", [
            {"id": 121234231, "create_time": 1514764800.123, "contract": "BTC_USD", "size": -100, "price": "100.5"},
        ])

        trades = await gateiofu.fetch_trades("BTC/USD")

        assert trades[0].side == "sell"
        assert trades[0].amount == Decimal("100")
        assert trades[0].timestamp == 1514764800123

    @pytest.mark.asyncio
    async def test_ohlcv_window(self, gateiofu, stub_transport):
        """since + limit becomes a from/to window in seconds."""
        stub_transport.route("/futures/btc/candlesticks", [
            {"t": 1539852480, "v": 97151, "c": "1.032", "h": "1.04", "l": "1.03", "o": "1.035"},
        ])

        candles = await gateiofu.fetch_ohlcv("BTC/USD", "1m", since=1539852480000, limit=10)

        assert candles == [[1539852480000, Decimal("1.035"), Decimal("1.04"), Decimal("1.03"),
                            Decimal("1.032"), Decimal("97151")]]
        query = query_of(stub_transport.last.url)
        assert query["from"] == ["1539852480"]
        assert query["to"] == [str(1539852480 + 600)]
        assert "limit" not in query


class TestOrders:
    """Tests for private order endpoints."""

    @pytest.mark.asyncio
    async def test_create_sell_order(self, gateiofu, stub_transport):
        stub_transport.route("/private/futures/usdt/orders", {
            "id": 15675394, "contract": "BTC_USDT", "create_time": 1546569968,
            "size": -10, "left": -10, "price": "3765", "status": "open",
        })

        order = await gateiofu.create_order("BTC/USDT", "limit", "sell", Decimal("10"), Decimal("3765"))

        request = stub_transport.last
        assert request.method == "POST"
        assert request.url == "https://fx-api.gateio.ws/api/v4/private/futures/usdt/orders"
        body = parse_qs(request.body)
        assert body["contract"] == ["BTC_USDT"]
        assert body["size"] == ["-10"]
        assert body["price"] == ["3765"]
        assert request.headers["Sign"] == hmac_sign("test_secret", request.body, "sha512")
        assert order.side == "sell"
        assert order.amount == Decimal("10")
        assert order.status == "open"
        assert order.type == "limit"

    @pytest.mark.asyncio
    async def test_limit_requires_price(self, gateiofu):
        with pytest.raises(InvalidOrder):
            await gateiofu.create_order("BTC/USDT", "limit", "buy", Decimal("1"))

    @pytest.mark.asyncio
    async def test_finished_order_closed(self, gateiofu, stub_transport):
        stub_transport.route("/private/futures/btc/orders/15675394", {
            "id": 15675394, "contract": "BTC_USD", "create_time": 1546569968,
            "size": 6024, "left": 0, "price": "3765", "fill_price": "3765",
            "status": "finished", "finish_as": "filled",
        })

        order = await gateiofu.fetch_order("15675394", "BTC/USD")

        assert order.status == "closed"
        assert order.filled == Decimal("6024")
        assert order.remaining == Decimal("0")
        assert order.cost == Decimal("3765") * 6024

    @pytest.mark.asyncio
    async def test_cancelled_when_not_filled(self, gateiofu, stub_transport):
        stub_transport.route("/private/futures/btc/orders/1", {
            "id": 1, "contract": "BTC_USD", "size": 10, "left": 4, "price": "3765",
            "status": "finished", "finish_as": "cancelled",
        })

        order = await gateiofu.cancel_order("1", "BTC/USD")

        assert order.status == "canceled"
        assert stub_transport.last.method == "DELETE"

    @pytest.mark.asyncio
    async def test_symbol_required(self, gateiofu):
        with pytest.raises(ArgumentsRequired):
            await gateiofu.fetch_order("1")


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_invalid_sign(self, gateiofu, stub_transport):
        stub_transport.route("/private/futures/btc/accounts", {
            "result": "false", "code": 5, "message": "Error: invalid key or sign",
        })

        with pytest.raises(AuthenticationError):
            await gateiofu.fetch_balance()

    @pytest.mark.asyncio
    async def test_unmapped_code_uses_name(self, gateiofu, stub_transport):
        stub_transport.route("/private/futures/btc/accounts", {"result": "false", "code": 18, "message": "x"})

        with pytest.raises(ExchangeError, match="Invalid amount"):
            await gateiofu.fetch_balance()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
