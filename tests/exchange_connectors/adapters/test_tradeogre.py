"""
TradeOgre Connector Tests.
"""

from decimal import Decimal
from urllib.parse import parse_qs

import pytest

from exchange_connectors.adapters.errors import AuthenticationError, InvalidOrder, OrderNotFound
from exchange_connectors.adapters.signing import basic_auth
from exchange_connectors.adapters.tradeogre import TradeOgreAdapter


MARKETS = [
    {"BTC-LTC": {"initialprice": "0.02502002", "price": "0.02500000", "high": "0.03102001",
                 "low": "0.02500000", "volume": "0.15549958", "bid": "0.02420000", "ask": "0.02625000"}},
    {"BTC-XMR": {"initialprice": "0.01", "price": "0.011", "volume": "1"}},
]


@pytest.fixture
def tradeogre(make_connector, stub_transport):
    stub_transport.route("/api/v1/markets", MARKETS)
    return make_connector(TradeOgreAdapter)


class TestMarkets:
    """Tests for QUOTE-BASE market ids."""

    @pytest.mark.asyncio
    async def test_quote_first_ids(self, tradeogre):
        markets = await tradeogre.load_markets()

        assert sorted(markets) == ["LTC/BTC", "XMR/BTC"]
        market = markets["LTC/BTC"]
        assert market.id == "BTC-LTC"
        assert (market.base_id, market.quote_id) == ("LTC", "BTC")


class TestMarketData:
    """Tests for ticker, order book and trades."""

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, tradeogre, stub_transport):
        stub_transport.route("/ticker/BTC-LTC", {
            "success": True, "initialprice": "0.02502002", "price": "0.02500000",
            "high": "0.03102001", "low": "0.02500000", "volume": "0.15549958",
            "bid": "0.02420000", "ask": "0.02625000",
        })

        ticker = await tradeogre.fetch_ticker("LTC/BTC")

        assert ticker.symbol == "LTC/BTC"
        assert ticker.last == Decimal("0.02500000")
        assert ticker.previous_close == Decimal("0.02502002")
        assert ticker.base_volume == Decimal("0.15549958")

    @pytest.mark.asyncio
    async def test_price_keyed_order_book(self, tradeogre, stub_transport):
        """{price: amount} sides become arrays."""
        stub_transport.route("/orders/BTC-LTC", {
            "success": "true",
            "buy": {"0.02425501": "36.46986607", "0.02425502": "93.64201137"},
            "sell": {"0.02427176": "1.48571637"},
        })

        book = await tradeogre.fetch_order_book("LTC/BTC")

        assert book.bids == [
            [Decimal("0.02425501"), Decimal("36.46986607")],
            [Decimal("0.02425502"), Decimal("93.64201137")],
        ]
        assert book.asks == [[Decimal("0.02427176"), Decimal("1.48571637")]]

    @pytest.mark.asyncio
    async def test_fetch_trades(self, tradeogre, stub_transport):
        stub_transport.route("/history/BTC-LTC", [
            {"date": 1515128240, "type": "buy", "price": "0.02", "quantity": "2"},
            {"date": 1515128233, "type": "sell", "price": "0.02454320", "quantity": "0.17614230"},
        ])

        trades = await tradeogre.fetch_trades("LTC/BTC")

        assert [t.timestamp for t in trades] == [1515128233000, 1515128240000]
        assert trades[0].side == "sell"
        assert trades[1].cost == Decimal("0.04")


class TestAccount:
    """Tests for private endpoints."""

    @pytest.mark.asyncio
    async def test_fetch_balance(self, tradeogre, stub_transport):
        stub_transport.route("/account/balances", {"success": True, "balances": {"BTC": "0.5", "LTC": "0"}})

        balances = await tradeogre.fetch_balance()

        assert balances["BTC"].total == Decimal("0.5")
        assert balances["BTC"].free is None

    @pytest.mark.asyncio
    async def test_create_limit_order(self, tradeogre, stub_transport):
        stub_transport.route("/order/buy", {"success": True, "uuid": "235ee1ad", "bnewbalavail": "0.1"})

        order = await tradeogre.create_order("LTC/BTC", "limit", "buy", Decimal("2"), Decimal("0.02"))

        assert order.id == "235ee1ad"
        assert order.status == "open"
        assert order.remaining is None
        request = stub_transport.last
        assert request.method == "POST"
        assert parse_qs(request.body) == {"market": ["BTC-LTC"], "quantity": ["2"], "price": ["0.02"]}
        assert request.headers["Authorization"] == basic_auth("test_key", "test_secret")

    @pytest.mark.asyncio
    async def test_market_orders_rejected(self, tradeogre):
        with pytest.raises(InvalidOrder):
            await tradeogre.create_order("LTC/BTC", "market", "buy", Decimal("1"))

    @pytest.mark.asyncio
    async def test_fetch_order_filled(self, tradeogre, stub_transport):
        """A fully filled order is closed."""
        stub_transport.route("/account/order/abc", {
            "success": True, "date": 1515128233, "type": "sell", "price": "0.02",
            "quantity": "1.5", "market": "BTC-LTC", "fulfilled": "1.5",
        })

        order = await tradeogre.fetch_order("abc")

        assert order.id == "abc"
        assert order.symbol == "LTC/BTC"
        assert order.remaining == Decimal("0")
        assert order.status == "closed"

    @pytest.mark.asyncio
    async def test_fetch_open_orders(self, tradeogre, stub_transport):
        stub_transport.route("/account/orders", [
            {"uuid": "a", "date": 2, "type": "buy", "price": "1", "quantity": "3", "market": "BTC-LTC", "fulfilled": "1"},
            {"uuid": "b", "date": 1, "type": "sell", "price": "1", "quantity": "1", "market": "BTC-XMR", "fulfilled": "0"},
        ])

        orders = await tradeogre.fetch_open_orders()

        assert [o.id for o in orders] == ["b", "a"]
        assert orders[1].remaining == Decimal("2")
        assert orders[0].symbol == "XMR/BTC"


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_must_be_authorized(self, tradeogre, stub_transport):
        stub_transport.route("/account/balances", {"success": False, "error": "Must be authorized"})

        with pytest.raises(AuthenticationError):
            await tradeogre.fetch_balance()

    @pytest.mark.asyncio
    async def test_order_not_found(self, tradeogre, stub_transport):
        stub_transport.route("/order/cancel", {"success": False, "error": "Order not found"})

        with pytest.raises(OrderNotFound):
            await tradeogre.cancel_order("missing")

    @pytest.mark.asyncio
    async def test_insufficient_is_broad(self, tradeogre, stub_transport):
        stub_transport.route("/order/sell", {"success": False, "error": "Insufficient LTC balance"})

        with pytest.raises(InvalidOrder):
            await tradeogre.create_order("LTC/BTC", "limit", "sell", Decimal("1"), Decimal("0.02"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
