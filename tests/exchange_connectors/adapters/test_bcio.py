"""
Blockchain.io Connector Tests.

============================================================
PURPOSE
============================================================
- exchangeInfo filters drive precision and limits
- Fees are rounded to the charged currency's precision
- Order validation per order type
- Signed query strings and the temporary-ban rule

============================================================
"""

from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from exchange_connectors.adapters.bcio import BcioAdapter
from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
)
from exchange_connectors.adapters.signing import hmac_sign


EXCHANGE_INFO = {
    "timezone": "UTC",
    "serverTime": 1533035297418,
    "symbols": [
        {
            "symbol": "ETHBTC", "status": "TRADING", "baseAsset": "ETH",
            "baseAssetPrecision": 8, "quoteAsset": "BTC", "quotePrecision": 8,
            "filters": [
                {"filterType": "PRICE_FILTER", "minPrice": "0.00000100",
                 "maxPrice": "100000.00000000", "tickSize": "0.00000100"},
                {"filterType": "LOT_SIZE", "minQty": "0.00100000",
                 "maxQty": "100000.00000000", "stepSize": "0.00100000"},
                {"filterType": "MIN_NOTIONAL", "minNotional": "0.00100000"},
            ],
        },
        {
            "symbol": "LTCBTC", "status": "BREAK", "baseAsset": "LTC",
            "baseAssetPrecision": 8, "quoteAsset": "BTC", "quotePrecision": 8,
            "filters": [
                {"filterType": "PRICE_FILTER", "minPrice": "0.00000100",
                 "maxPrice": "0.00000000", "tickSize": "0.00000100"},
            ],
        },
        {"symbol": "123456", "status": "TRADING", "baseAsset": "TST", "quoteAsset": "BTC"},
    ],
}

LIMIT_ORDER = {
    "symbol": "ETHBTC", "orderId": 28, "clientOrderId": "6gCrw2kRUAF9CvJDGP16IP",
    "transactTime": 1507725176595, "price": "0.07", "origQty": "10.0",
    "executedQty": "4.0", "cummulativeQuoteQty": "0.28", "status": "PARTIALLY_FILLED",
    "timeInForce": "GTC", "type": "LIMIT", "side": "BUY",
}


def signed_query(request):
    """Split a GET/DELETE URL into (query params, payload, signature)."""
    query = urlparse(request.url).query
    payload, signature = query.rsplit("&signature=", 1)
    return parse_qs(payload), payload, signature


@pytest.fixture
def bcio(make_connector, stub_transport):
    stub_transport.route("/v1/exchangeInfo", EXCHANGE_INFO)
    return make_connector(BcioAdapter)


# ============================================================
# MARKETS
# ============================================================

class TestMarkets:
    """Tests for exchangeInfo parsing."""

    @pytest.mark.asyncio
    async def test_placeholder_skipped(self, bcio):
        markets = await bcio.load_markets()
        assert sorted(markets) == ["ETH/BTC", "LTC/BTC"]

    @pytest.mark.asyncio
    async def test_filters(self, bcio):
        market = (await bcio.load_markets())["ETH/BTC"]

        assert market.active
        assert market.precision.price == Decimal("6")
        assert market.precision.amount == Decimal("3")
        assert market.limits.price.min == Decimal("0.000001")
        assert market.limits.price.max == Decimal("100000")
        assert market.limits.amount.min == Decimal("0.001")
        assert market.limits.amount.max == Decimal("100000")
        assert market.limits.cost.min == Decimal("0.001")

    @pytest.mark.asyncio
    async def test_missing_filters(self, bcio):
        """Without LOT_SIZE the base precision sets the minimum; zero max price is unbounded."""
        market = (await bcio.load_markets())["LTC/BTC"]

        assert not market.active
        assert market.limits.amount.min == Decimal("0.00000001")
        assert market.limits.price.max is None
        assert market.limits.cost.min is None

    @pytest.mark.asyncio
    async def test_clock_adjustment_option(self, make_connector, stub_transport):
        stub_transport.route("/v1/exchangeInfo", EXCHANGE_INFO)
        bcio = make_connector(BcioAdapter, options={"adjust_for_time_difference": True})
        stub_transport.route("/v1/time", {"serverTime": bcio.milliseconds() - 60000})

        await bcio.load_markets()

        assert bcio.time_difference_ms >= 59000


class TestFees:
    """Tests for fee rounding."""

    @pytest.mark.asyncio
    async def test_sell_rounded_to_price_places(self, bcio):
        await bcio.load_markets()

        fee = bcio.calculate_fee("ETH/BTC", "limit", "sell", Decimal("1.2345"), Decimal("0.0712345"))

        assert fee.currency == "BTC"
        assert fee.cost == Decimal("0.000879")

    @pytest.mark.asyncio
    async def test_buy_rounded_half_up(self, bcio):
        await bcio.load_markets()

        fee = bcio.calculate_fee("ETH/BTC", "limit", "buy", Decimal("1.25"), Decimal("0.07"))

        assert fee.currency == "ETH"
        assert fee.cost == Decimal("0.013")


# ============================================================
# MARKET DATA
# ============================================================

class TestMarketData:
    """Tests for public endpoints."""

    @pytest.mark.asyncio
    async def test_order_book_nonce(self, bcio, stub_transport):
        stub_transport.route("/v1/depth", {
            "lastUpdateId": 1027024,
            "bids": [["4.00000000", "431.00000000", []]],
            "asks": [["4.00000200", "12.00000000", []]],
        })

        book = await bcio.fetch_order_book("ETH/BTC", limit=5)

        assert book.nonce == 1027024
        assert book.bids == [[Decimal("4.00000000"), Decimal("431.00000000")]]
        assert stub_transport.last.url == "https://api.blockchain.io/v1/depth?symbol=ETHBTC&limit=5"

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, bcio, stub_transport):
        stub_transport.route("/v1/ticker/24hr", {
            "symbol": "ETHBTC", "priceChange": "-94.99999800", "priceChangePercent": "-95.960",
            "weightedAvgPrice": "0.29628482", "prevClosePrice": "0.10002000",
            "lastPrice": "4.00000200", "bidPrice": "4.00000000", "bidQty": "100",
            "askPrice": "4.00000200", "askQty": "10", "openPrice": "99.00000000",
            "highPrice": "100.00000000", "lowPrice": "0.10000000", "volume": "8913.30000000",
            "quoteVolume": "15.30000000", "closeTime": 1499869899040,
        })

        ticker = await bcio.fetch_ticker("ETH/BTC")

        assert ticker.symbol == "ETH/BTC"
        assert ticker.percentage == Decimal("-95.960")
        assert ticker.change == Decimal("-94.99999800")
        assert ticker.vwap == Decimal("0.29628482")
        assert ticker.bid_volume == Decimal("100")
        assert ticker.timestamp == 1499869899040

    @pytest.mark.asyncio
    async def test_fetch_bids_asks(self, bcio, stub_transport):
        stub_transport.route("/v1/ticker/bookTicker", [
            {"symbol": "ETHBTC", "bidPrice": "4.0", "bidQty": "431", "askPrice": "4.1", "askQty": "9"},
            {"symbol": "LTCBTC", "bidPrice": "0.01", "bidQty": "1", "askPrice": "0.02", "askQty": "2"},
        ])

        tickers = await bcio.fetch_bids_asks(["ETH/BTC"])

        assert list(tickers) == ["ETH/BTC"]
        assert tickers["ETH/BTC"].ask == Decimal("4.1")

    @pytest.mark.asyncio
    async def test_agg_trades_window(self, bcio, stub_transport):
        """since opens a one-hour aggTrades window."""
        stub_transport.route("/v1/aggTrades", [
            {"a": 26129, "p": "0.01633102", "q": "4.70443515", "T": 1498793709153, "m": True},
        ])

        trades = await bcio.fetch_trades("ETH/BTC", since=1498793700000)

        assert trades[0].id == "26129"
        assert trades[0].side == "sell"
        query = parse_qs(urlparse(stub_transport.last.url).query)
        assert query["startTime"] == ["1498793700000"]
        assert query["endTime"] == ["1498797300000"]

    @pytest.mark.asyncio
    async def test_fetch_ohlcv(self, bcio, stub_transport):
        stub_transport.route("/v1/klines", [
            [1499040000000, "0.01634790", "0.80000000", "0.01575800", "0.01577100", "148976.11427815",
             1499644799999, "2434.19055334", 308, "1756.87402397", "28.46694368", "0"],
        ])

        candles = await bcio.fetch_ohlcv("ETH/BTC", "1h", since=1499040000000, limit=1)

        assert candles[0][0] == 1499040000000
        assert candles[0][5] == Decimal("148976.11427815")
        query = parse_qs(urlparse(stub_transport.last.url).query)
        assert query == {"symbol": ["ETHBTC"], "interval": ["1h"], "startTime": ["1499040000000"], "limit": ["1"]}


# ============================================================
# ACCOUNT AND ORDERS
# ============================================================

class TestAccount:
    """Tests for balances and trades."""

    @pytest.mark.asyncio
    async def test_fetch_balance(self, bcio, stub_transport):
        stub_transport.route("/v1/account", {"balances": [
            {"asset": "BTC", "free": "4723846.89208129", "locked": "0.00000000"},
            {"asset": "ETH", "free": "1.5", "locked": "0.5"},
        ]})

        balances = await bcio.fetch_balance()

        assert balances["ETH"].total == Decimal("2.0")
        assert balances["BTC"].used == Decimal("0")
        request = stub_transport.last
        assert request.headers["X-BCIO-APIKEY"] == "test_key"
        params, payload, signature = signed_query(request)
        assert signature == hmac_sign("test_secret", payload)
        assert params["recvWindow"] == ["5000"]

    @pytest.mark.asyncio
    async def test_fetch_my_trades(self, bcio, stub_transport):
        stub_transport.route("/v1/myTrades", [
            {"id": 28457, "orderId": 100234, "price": "4.00000100", "qty": "12.00000000",
             "commission": "10.10000000", "commissionAsset": "BNB", "time": 1499865549590,
             "isBuyer": True, "isMaker": False},
        ])

        trades = await bcio.fetch_my_trades("ETH/BTC")

        trade = trades[0]
        assert trade.side == "buy"
        assert trade.order == "100234"
        assert trade.taker_or_maker == "taker"
        assert trade.fee.cost == Decimal("10.1")
        assert trade.fee.currency == "BNB"

    @pytest.mark.asyncio
    async def test_my_trades_require_symbol(self, bcio):
        with pytest.raises(ArgumentsRequired):
            await bcio.fetch_my_trades()


class TestOrders:
    """Tests for order placement and queries."""

    @pytest.mark.asyncio
    async def test_create_limit_order(self, bcio, stub_transport):
        stub_transport.route("/v1/order", LIMIT_ORDER)

        order = await bcio.create_order("ETH/BTC", "limit", "buy", Decimal("10"), Decimal("0.07"))

        request = stub_transport.last
        assert request.method == "POST"
        assert request.url == "https://api.blockchain.io/v1/order"
        payload, signature = request.body.rsplit("&signature=", 1)
        assert signature == hmac_sign("test_secret", payload)
        form = parse_qs(payload)
        assert form["type"] == ["LIMIT"]
        assert form["side"] == ["BUY"]
        assert form["timeInForce"] == ["GTC"]
        assert form["newOrderRespType"] == ["RESULT"]
        assert form["price"] == ["0.07"]

        assert order.id == "28"
        assert order.status == "open"
        assert order.remaining == Decimal("6.0")
        assert order.average == Decimal("0.07")
        assert order.timestamp == 1507725176595

    @pytest.mark.asyncio
    async def test_market_order_fills(self, bcio, stub_transport):
        """FULL responses aggregate their fills."""
        stub_transport.route("/v1/order", {
            "symbol": "ETHBTC", "orderId": 29, "transactTime": 1507725176595,
            "price": "0.0", "origQty": "3.0", "executedQty": "3.0", "status": "FILLED",
            "type": "MARKET", "side": "SELL",
            "fills": [
                {"price": "0.070", "qty": "1.0", "commission": "0.0007", "commissionAsset": "BTC"},
                {"price": "0.068", "qty": "2.0", "commission": "0.00136", "commissionAsset": "BTC"},
            ],
        })

        order = await bcio.create_order("ETH/BTC", "market", "sell", Decimal("3"))

        assert parse_qs(stub_transport.last.body)["newOrderRespType"] == ["FULL"]
        assert "price" not in parse_qs(stub_transport.last.body)
        assert order.status == "closed"
        assert order.cost == Decimal("0.206")
        assert order.average == Decimal("0.206") / Decimal("3.0")
        assert order.price == order.average
        assert order.fee.cost == Decimal("0.00206")
        assert order.fee.currency == "BTC"
        assert len(order.trades) == 2

    @pytest.mark.asyncio
    async def test_fee_currency_from_first_charged_fill(self, bcio, stub_transport):
        """Fills without a commission do not decide the fee currency."""
        stub_transport.route("/v1/order", {
            "symbol": "ETHBTC", "orderId": 30, "transactTime": 1507725176595,
            "price": "0.0", "origQty": "3.0", "executedQty": "3.0", "status": "FILLED",
            "type": "MARKET", "side": "SELL",
            "fills": [
                {"price": "0.070", "qty": "1.0"},
                {"price": "0.068", "qty": "2.0", "commission": "0.00136", "commissionAsset": "BTC"},
            ],
        })

        order = await bcio.create_order("ETH/BTC", "market", "sell", Decimal("3"))

        assert order.trades[0].fee is None
        assert order.fee.cost == Decimal("0.00136")
        assert order.fee.currency == "BTC"

    @pytest.mark.asyncio
    async def test_test_order_endpoint(self, bcio, stub_transport):
        stub_transport.route("/v1/order/test", {})

        await bcio.create_order("ETH/BTC", "market", "buy", Decimal("1"), params={"test": True})

        assert stub_transport.last.url == "https://api.blockchain.io/v1/order/test"
        assert "test" not in parse_qs(stub_transport.last.body)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order_type,price,params", [
        ("iceberg", Decimal("1"), None),
        ("limit", None, None),
        ("stop_loss", None, None),
        ("stop_loss_limit", Decimal("1"), None),
    ])
    async def test_order_validation(self, bcio, order_type, price, params):
        with pytest.raises(InvalidOrder):
            await bcio.create_order("ETH/BTC", order_type, "buy", Decimal("1"), price, params)

    @pytest.mark.asyncio
    async def test_stop_price_forwarded(self, bcio, stub_transport):
        stub_transport.route("/v1/order", dict(LIMIT_ORDER, type="STOP_LOSS_LIMIT", status="NEW"))

        await bcio.create_order(
            "ETH/BTC", "stop_loss_limit", "sell", Decimal("1"), Decimal("0.06"), {"stopPrice": Decimal("0.065")}
        )

        form = parse_qs(stub_transport.last.body)
        assert form["stopPrice"] == ["0.065"]
        assert form["timeInForce"] == ["GTC"]

    @pytest.mark.asyncio
    async def test_fetch_order(self, bcio, stub_transport):
        stub_transport.route("/v1/order?", dict(LIMIT_ORDER, status="FILLED", executedQty="10.0",
                                                cummulativeQuoteQty="0.7", time=1507725176595))

        order = await bcio.fetch_order("28", "ETH/BTC")

        params, _, _ = signed_query(stub_transport.last)
        assert params["orderId"] == ["28"]
        assert params["symbol"] == ["ETHBTC"]
        assert order.status == "closed"
        assert order.remaining == Decimal("0")

    @pytest.mark.asyncio
    async def test_cancel_order(self, bcio, stub_transport):
        stub_transport.route("/v1/order?", dict(LIMIT_ORDER, status="CANCELED"))

        order = await bcio.cancel_order("28", "ETH/BTC")

        assert stub_transport.last.method == "DELETE"
        assert order.status == "canceled"

    @pytest.mark.asyncio
    async def test_open_orders_without_symbol(self, bcio):
        """Guarded by an option because the call is expensive."""
        with pytest.raises(ExchangeError, match="warn_on_fetch_open_orders_without_symbol"):
            await bcio.fetch_open_orders()

    @pytest.mark.asyncio
    async def test_open_orders_without_symbol_allowed(self, make_connector, stub_transport):
        stub_transport.route("/v1/exchangeInfo", EXCHANGE_INFO)
        stub_transport.route("/v1/openOrders", [LIMIT_ORDER])
        bcio = make_connector(BcioAdapter, options={"warn_on_fetch_open_orders_without_symbol": False})

        orders = await bcio.fetch_open_orders()

        assert [o.symbol for o in orders] == ["ETH/BTC"]

    @pytest.mark.asyncio
    async def test_closed_orders(self, bcio, stub_transport):
        stub_transport.route("/v1/allOrders", [
            dict(LIMIT_ORDER, orderId=1, status="FILLED", time=2),
            dict(LIMIT_ORDER, orderId=2, status="NEW", time=1),
        ])

        orders = await bcio.fetch_closed_orders("ETH/BTC")

        assert [o.id for o in orders] == ["1"]


# ============================================================
# ERRORS
# ============================================================

class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_lot_size_filter(self, bcio, stub_transport):
        stub_transport.route("/v1/order", {"code": -1013, "msg": "Filter failure: LOT_SIZE"}, status=400)

        with pytest.raises(InvalidOrder, match="lot size"):
            await bcio.create_order("ETH/BTC", "limit", "buy", Decimal("1.0001"), Decimal("0.07"))

    @pytest.mark.asyncio
    async def test_exact_message(self, bcio, stub_transport):
        stub_transport.route("/v1/order", {
            "code": -2010, "msg": "Account has insufficient balance for requested action.",
        }, status=400)

        with pytest.raises(InsufficientFunds):
            await bcio.create_order("ETH/BTC", "limit", "buy", Decimal("1"), Decimal("0.07"))

    @pytest.mark.asyncio
    async def test_exact_code(self, bcio, stub_transport):
        stub_transport.route("/v1/order?", {"code": -2013, "msg": "Order does not exist."}, status=400)

        with pytest.raises(OrderNotFound):
            await bcio.fetch_order("1", "ETH/BTC")

    @pytest.mark.asyncio
    async def test_nested_message(self, bcio, stub_transport):
        """success=false wraps the real error as JSON text."""
        stub_transport.route("/v1/account", {
            "success": False, "msg": '{"code":-2014,"msg":"API-key format invalid."}',
        })

        with pytest.raises(AuthenticationError):
            await bcio.fetch_balance()

    @pytest.mark.asyncio
    async def test_unsuccessful_without_code(self, bcio, stub_transport):
        stub_transport.route("/v1/account", {"success": False, "msg": "unexpected"})

        with pytest.raises(ExchangeError):
            await bcio.fetch_balance()

    @pytest.mark.asyncio
    async def test_invalid_key_before_any_success(self, bcio, stub_transport):
        stub_transport.route("/v1/account", {"code": -2015, "msg": "Invalid API-key, IP, or permissions."}, status=401)

        with pytest.raises(AuthenticationError):
            await bcio.fetch_balance()

    @pytest.mark.asyncio
    async def test_temporary_ban_after_success(self, bcio, stub_transport):
        """-2015 on a key that already worked is a ban."""
        stub_transport.route("/v1/account", {"balances": []})
        await bcio.fetch_balance()
        stub_transport.route("/v1/account", {"code": -2015, "msg": "Invalid API-key, IP, or permissions."}, status=401)

        with pytest.raises(DDoSProtection, match="temporary banned"):
            await bcio.fetch_balance()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
