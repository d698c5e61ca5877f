"""
Blockchain.io Connector.

============================================================
PURPOSE
============================================================
Spot trading on Blockchain.io (api.blockchain.io/v1).

The REST surface follows the Binance v1 layout: exchangeInfo filters,
24hr tickers, aggTrades, allOrders, signed query strings.

AUTH:
    query = urlencode(timestamp, recvWindow, params)
    signature = HMAC-SHA256(query, secret) hex
    Header: X-BCIO-APIKEY
    GET/DELETE carry the query in the URL, POST in a form body.

RATE LIMITS:
    418/429 → DDoSProtection
    -2015 after a successful private call means a temporary ban.

============================================================
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import (
    Balance,
    Balances,
    Fee,
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    OHLCV,
    Order,
    OrderBook,
    OrderStatus,
    Ticker,
    Trade,
    TradingFees,
)
from exchange_connectors.adapters.accessors import (
    index_by,
    iso8601,
    safe_integer,
    safe_number,
    safe_string,
    safe_string_lower,
    safe_value,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidNonce,
    InvalidOrder,
    OrderNotFound,
    extract_nested_message,
)
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    derive_order_fields,
    map_order_status,
    parse_order_book,
    precision_from_tick,
    side_from_flags,
    tick_from_precision,
    trade_cost,
)
from exchange_connectors.adapters.signing import SignedRequest, hmac_sign, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

# exchangeInfo lists a test instrument under this id
PLACEHOLDER_MARKET_ID = "123456"
AGG_TRADES_WINDOW_MS = 3600000
TEMPORARY_BAN_CODE = "-2015"

ORDER_STATUSES = {
    "NEW": OrderStatus.OPEN.value,
    "PARTIALLY_FILLED": OrderStatus.OPEN.value,
    "FILLED": OrderStatus.CLOSED.value,
    "CANCELED": OrderStatus.CANCELED.value,
    "PENDING_CANCEL": OrderStatus.CANCELING.value,
    "REJECTED": OrderStatus.REJECTED.value,
    "EXPIRED": OrderStatus.EXPIRED.value,
}

# order type → (price required, stopPrice required, timeInForce required)
ORDER_TYPE_RULES = {
    "LIMIT": (True, False, True),
    "MARKET": (False, False, False),
    "STOP_LOSS": (False, True, False),
    "TAKE_PROFIT": (False, True, False),
    "STOP_LOSS_LIMIT": (True, True, True),
    "TAKE_PROFIT_LIMIT": (True, True, True),
    "LIMIT_MAKER": (True, False, False),
}

FILTER_ERRORS = (
    ("Price * QTY is zero or less", "order cost = amount * price is zero or less"),
    ("LOT_SIZE", "order amount should be evenly divisible by lot size"),
    ("PRICE_FILTER", "order price exceeds the allowed precision or price limits"),
)


class BcioAdapter(ExchangeAdapter):
    """
    Blockchain.io spot connector.
    """

    EXCHANGE_ID = "bcio"
    NAME = "Blockchain.io"
    COUNTRIES = ("FR",)
    URLS = {
        "api": {
            "public": "https://api.blockchain.io/v1",
            "private": "https://api.blockchain.io/v1",
        },
        "www": "https://www.blockchain.io",
        "doc": "https://github.com/bcio/api-documentation/blob/master/README.md",
        "fees": "https://www.blockchain.io/fees",
    }
    ENDPOINTS = {
        # Public
        "ping": Endpoint.public("GET", "ping"),
        "time": Endpoint.public("GET", "time"),
        "depth": Endpoint.public("GET", "depth"),
        "trades": Endpoint.public("GET", "trades"),
        "agg_trades": Endpoint.public("GET", "aggTrades"),
        "klines": Endpoint.public("GET", "klines"),
        "ticker_24hr": Endpoint.public("GET", "ticker/24hr"),
        "ticker_price": Endpoint.public("GET", "ticker/price"),
        "book_ticker": Endpoint.public("GET", "ticker/bookTicker"),
        "exchange_info": Endpoint.public("GET", "exchangeInfo"),
        # Private
        "order": Endpoint.private("GET", "order"),
        "open_orders": Endpoint.private("GET", "openOrders"),
        "all_orders": Endpoint.private("GET", "allOrders"),
        "account": Endpoint.private("GET", "account"),
        "my_trades": Endpoint.private("GET", "myTrades"),
        "create_order": Endpoint.private("POST", "order"),
        "create_test_order": Endpoint.private("POST", "order/test"),
        "cancel_order": Endpoint.private("DELETE", "order"),
    }
    FEES = TradingFees(maker=Decimal("0.01"), taker=Decimal("0.01"))
    TIMEFRAMES = {
        "1m": "1m",
        "3m": "3m",
        "5m": "5m",
        "15m": "15m",
        "30m": "30m",
        "1h": "1h",
        "2h": "2h",
        "4h": "4h",
        "6h": "6h",
        "8h": "8h",
        "12h": "12h",
        "1d": "1d",
        "3d": "3d",
        "1w": "1w",
        "1M": "1M",
    }
    DEFAULT_OPTIONS = {
        "fetch_trades_method": "agg_trades",
        "fetch_tickers_method": "ticker_24hr",
        "default_time_in_force": "GTC",
        "warn_on_fetch_open_orders_without_symbol": True,
        "recv_window": 5000,
        "adjust_for_time_difference": False,
        "new_order_resp_type": {
            "market": "FULL",
            "limit": "RESULT",
        },
    }
    EXACT_ERRORS = {
        "API key does not exist": AuthenticationError,
        "Order would trigger immediately.": InvalidOrder,
        "Account has insufficient balance for requested action.": InsufficientFunds,
        "Rest API trading is not enabled.": ExchangeNotAvailable,
        "-1000": ExchangeNotAvailable,
        "-1013": InvalidOrder,
        "-1021": InvalidNonce,
        "-1022": AuthenticationError,
        "-1100": InvalidOrder,
        "-1104": ExchangeError,
        "-1128": ExchangeError,
        "-2010": ExchangeError,
        "-2011": OrderNotFound,
        "-2013": OrderNotFound,
        "-2014": AuthenticationError,
        "-2015": AuthenticationError,
    }

    def __init__(self, config=None, transport=None):
        super().__init__(config, transport)
        self._authenticated_once = False

    async def request(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        response = await super().request(path, api, method, params)
        if api == "private":
            self._authenticated_once = True
        return response

    # --------------------------------------------------------
    # CLOCK AND MARKETS
    # --------------------------------------------------------

    async def fetch_time(self) -> int:
        response = await self.api["time"]()
        return safe_integer(response, "serverTime")

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["exchange_info"]()
        if self.options["adjust_for_time_difference"]:
            self.apply_time_difference(await self.calibrate_clock())
        markets = []
        for raw in safe_value(response, "symbols", default=[]):
            if safe_string(raw, "symbol") == PLACEHOLDER_MARKET_ID:
                continue
            markets.append(self.parse_market(raw))
        return markets

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"symbol": "ETHBTC", "status": "TRADING", "baseAsset": "ETH",
         "baseAssetPrecision": 8, "quoteAsset": "BTC", "quotePrecision": 8,
         "filters": [{"filterType": "PRICE_FILTER", "minPrice": "0.00000100",
                      "maxPrice": "100000.00000000", "tickSize": "0.00000100"},
                     {"filterType": "LOT_SIZE", "minQty": "0.00100000",
                      "maxQty": "100000.00000000", "stepSize": "0.00100000"},
                     {"filterType": "MIN_NOTIONAL", "minNotional": "0.00100000"}]}
        """
        base_id = safe_string(raw, "baseAsset")
        quote_id = safe_string(raw, "quoteAsset")
        filters = index_by(safe_value(raw, "filters", default=[]), "filterType")

        amount_places = safe_integer(raw, "baseAssetPrecision")
        price_places = safe_integer(raw, "quotePrecision")
        amount_limits = MinMax(min=tick_from_precision(amount_places))
        price_limits = MinMax()
        cost_limits = MinMax()

        price_filter = filters.get("PRICE_FILTER")
        if price_filter is not None:
            max_price = safe_number(price_filter, "maxPrice")
            price_limits = MinMax(
                min=safe_number(price_filter, "minPrice"),
                max=max_price if max_price is not None and max_price > 0 else None,
            )
            price_places = precision_from_tick(safe_string(price_filter, "tickSize"))
        lot_size = filters.get("LOT_SIZE")
        if lot_size is not None:
            amount_places = precision_from_tick(safe_string(lot_size, "stepSize"))
            amount_limits = MinMax(min=safe_number(lot_size, "minQty"), max=safe_number(lot_size, "maxQty"))
        min_notional = filters.get("MIN_NOTIONAL")
        if min_notional is not None:
            cost_limits = MinMax(min=safe_number(min_notional, "minNotional"))

        return Market(
            id=safe_string(raw, "symbol"),
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=safe_string(raw, "status") == "TRADING",
            precision=MarketPrecision(
                amount=None if amount_places is None else Decimal(amount_places),
                price=None if price_places is None else Decimal(price_places),
            ),
            limits=MarketLimits(amount=amount_limits, price=price_limits, cost=cost_limits),
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            info=raw,
        )

    def calculate_fee(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: Decimal,
        price: Decimal,
        taker_or_maker: str = "taker",
    ) -> Fee:
        """
        Fee rounded to the charged currency's precision.

        Sells are charged in quote at price precision, buys in base at
        amount precision.
        """
        fee = super().calculate_fee(symbol, type, side, amount, price, taker_or_maker)
        market = self.market(symbol)
        places = market.precision.price if side == "sell" else market.precision.amount
        if places is not None and fee.cost is not None:
            fee.cost = fee.cost.quantize(Decimal(1).scaleb(-int(places)), rounding=ROUND_HALF_UP)
        return fee

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"symbol": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.api["depth"](request)
        return parse_order_book(
            response,
            symbol=market.symbol,
            nonce=safe_integer(response, "lastUpdateId"),
        )

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        """Binance-layout 24hr ticker; bookTicker carries only the bid/ask fields."""
        market = self.safe_market(safe_string(raw, "symbol"), market)
        return build_ticker(
            symbol=market.symbol if market else None,
            timestamp=safe_integer(raw, "closeTime"),
            high=safe_number(raw, "highPrice"),
            low=safe_number(raw, "lowPrice"),
            bid=safe_number(raw, "bidPrice"),
            bid_volume=safe_number(raw, "bidQty"),
            ask=safe_number(raw, "askPrice"),
            ask_volume=safe_number(raw, "askQty"),
            vwap=safe_number(raw, "weightedAvgPrice"),
            open=safe_number(raw, "openPrice"),
            last=safe_number(raw, "lastPrice"),
            previous_close=safe_number(raw, "prevClosePrice"),
            change=safe_number(raw, "priceChange"),
            percentage=safe_number(raw, "priceChangePercent"),
            base_volume=safe_number(raw, "volume"),
            quote_volume=safe_number(raw, "quoteVolume"),
            info=raw,
        )

    def _parse_tickers(self, raw_tickers: Any, symbols: Optional[Sequence[str]]) -> Dict[str, Ticker]:
        result = {}
        for raw in raw_tickers or []:
            ticker = self.parse_ticker(raw)
            if ticker.symbol is None:
                continue
            if symbols is None or ticker.symbol in symbols:
                result[ticker.symbol] = ticker
        return result

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["ticker_24hr"]({"symbol": market.id})
        return self.parse_ticker(response, market)

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        response = await self.api[self.options["fetch_tickers_method"]]()
        return self._parse_tickers(response, symbols)

    async def fetch_bids_asks(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        response = await self.api["book_ticker"]()
        return self._parse_tickers(response, symbols)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[OHLCV]:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {
            "symbol": market.id,
            "interval": self.timeframe_id(timeframe),
        }
        if since is not None:
            request["startTime"] = since
        if limit is not None:
            request["limit"] = limit
        response = await self.api["klines"](request)
        return [self.parse_ohlcv(row) for row in response or []]

    @staticmethod
    def parse_ohlcv(row: Sequence[Any]) -> OHLCV:
        return [
            safe_integer(row, 0),
            safe_number(row, 1),
            safe_number(row, 2),
            safe_number(row, 3),
            safe_number(row, 4),
            safe_number(row, 5),
        ]

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        method = self.options["fetch_trades_method"]
        request: Dict[str, Any] = {"symbol": market.id}
        if method == "agg_trades" and since is not None:
            request["startTime"] = since
            request["endTime"] = since + AGG_TRADES_WINDOW_MS
        if limit is not None:
            request["limit"] = limit
        response = await self.api[method](request)
        return self.parse_trades(response, market, since, limit)

    def parse_trade(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        """
        aggTrades: {"a": 26129, "p": "0.01633102", "q": "4.70443515", "T": 1498793709153, "m": true}
        myTrades:  {"id": 28457, "orderId": 100234, "price": "4.00000100", "qty": "12.00000000",
                    "commission": "10.10000000", "commissionAsset": "BNB", "time": 1499865549590,
                    "isBuyer": true, "isMaker": false}
        """
        market = self.safe_market(safe_string(raw, "symbol"), market)
        timestamp = safe_integer(raw, "T", "time")
        price = safe_number(raw, "p", "price")
        amount = safe_number(raw, "q", "qty")

        if "m" in raw:
            side = side_from_flags(is_buyer_maker=bool(raw["m"]))
        elif "isBuyerMaker" in raw:
            side = side_from_flags(is_buyer_maker=bool(raw["isBuyerMaker"]))
        else:
            side = side_from_flags(is_buyer=raw["isBuyer"] if "isBuyer" in raw else None)

        fee = None
        if "commission" in raw:
            fee = Fee(
                cost=safe_number(raw, "commission"),
                currency=self.safe_currency_code(safe_string(raw, "commissionAsset")),
            )
        taker_or_maker = None
        if "isMaker" in raw:
            taker_or_maker = "maker" if raw["isMaker"] else "taker"

        return Trade(
            id=safe_string(raw, "a", "id"),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=market.symbol if market else None,
            side=side,
            price=price,
            amount=amount,
            cost=trade_cost(price, amount),
            fee=fee,
            order=safe_string(raw, "orderId"),
            taker_or_maker=taker_or_maker,
            info=raw,
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.api["account"]()
        currencies = {}
        for raw in safe_value(response, "balances", default=[]):
            code = self.safe_currency_code(safe_string(raw, "asset"))
            currencies[code] = Balance(
                free=safe_number(raw, "free"),
                used=safe_number(raw, "locked"),
            )
        return self.build_balances(currencies, info=response)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    @order_action("create")
    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: Decimal,
        price: Optional[Decimal] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Order:
        """
        Place an order.

        Args:
            symbol: Unified symbol
            type: limit, market, stop_loss, stop_loss_limit, take_profit,
                take_profit_limit or limit_maker
            side: buy or sell
            amount: Base amount
            price: Limit price where the type needs one
            params: Extra fields; "stopPrice" for stop types, "test": True
                to validate without placing

        Returns:
            Parsed order (with fills for market orders)
        """
        await self.load_markets()
        market = self.market(symbol)
        params = dict(params or {})
        endpoint = "create_test_order" if params.pop("test", False) else "create_order"

        order_type = type.upper()
        if order_type not in ORDER_TYPE_RULES:
            raise InvalidOrder(f"{self.EXCHANGE_ID} unknown order type {type}", exchange_id=self.EXCHANGE_ID)
        needs_price, needs_stop, needs_tif = ORDER_TYPE_RULES[order_type]

        request: Dict[str, Any] = {
            "symbol": market.id,
            "quantity": str(amount),
            "type": order_type,
            "side": side.upper(),
            "newOrderRespType": self.options["new_order_resp_type"].get(type, "RESULT"),
        }
        if needs_price:
            if price is None:
                raise InvalidOrder(
                    f"{self.EXCHANGE_ID} create_order requires a price for a {type} order",
                    exchange_id=self.EXCHANGE_ID,
                )
            request["price"] = str(price)
        if needs_tif:
            request["timeInForce"] = self.options["default_time_in_force"]
        if needs_stop:
            stop_price = params.pop("stopPrice", None)
            if stop_price is None:
                raise InvalidOrder(
                    f"{self.EXCHANGE_ID} create_order requires a stopPrice param for a {type} order",
                    exchange_id=self.EXCHANGE_ID,
                )
            request["stopPrice"] = str(stop_price)

        request.update(params)
        response = await self.api[endpoint](request)
        return self.parse_order(response, market)

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        market = await self._required_market(symbol, "fetch_order")
        response = await self.api["order"]({"symbol": market.id, "orderId": int(id)})
        return self.parse_order(response, market)

    async def fetch_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        market = await self._required_market(symbol, "fetch_orders")
        request: Dict[str, Any] = {"symbol": market.id}
        if since is not None:
            request["startTime"] = since
        if limit is not None:
            request["limit"] = limit
        response = await self.api["all_orders"](request)
        return self.parse_orders(response, market, since, limit)

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        await self.load_markets()
        market = None
        request = {}
        if symbol is not None:
            market = self.market(symbol)
            request["symbol"] = market.id
        elif self.options["warn_on_fetch_open_orders_without_symbol"]:
            seconds_between_calls = len(self.symbols) // 2
            raise ExchangeError(
                f"{self.EXCHANGE_ID} fetch_open_orders without a symbol is rate-limited to one call "
                f"per {seconds_between_calls} seconds; set the "
                f'"warn_on_fetch_open_orders_without_symbol" option to False to allow it',
                exchange_id=self.EXCHANGE_ID,
            )
        response = await self.api["open_orders"](request)
        return self.parse_orders(response, market, since, limit)

    async def fetch_closed_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        orders = await self.fetch_orders(symbol, since, limit)
        return [order for order in orders if order.status == OrderStatus.CLOSED.value]

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Order:
        market = await self._required_market(symbol, "cancel_order")
        response = await self.api["cancel_order"]({"symbol": market.id, "orderId": int(id)})
        return self.parse_order(response, market)

    async def fetch_my_trades(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        market = await self._required_market(symbol, "fetch_my_trades")
        request: Dict[str, Any] = {"symbol": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.api["my_trades"](request)
        return self.parse_trades(response, market, since, limit)

    async def _required_market(self, symbol: Optional[str], operation: str) -> Market:
        if symbol is None:
            raise ArgumentsRequired(
                f"{self.EXCHANGE_ID} {operation} requires a symbol argument",
                exchange_id=self.EXCHANGE_ID,
            )
        await self.load_markets()
        return self.market(symbol)

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"symbol": "LTCBTC", "orderId": 1, "clientOrderId": "myOrder1",
         "price": "0.1", "origQty": "1.0", "executedQty": "0.0",
         "cummulativeQuoteQty": "0.0", "status": "NEW", "timeInForce": "GTC",
         "type": "LIMIT", "side": "BUY", "time": 1499827319559,
         "fills": [{"price": "4000.0", "qty": "1.0", "commission": "4.0",
                    "commissionAsset": "USDT"}]}
        """
        market = self.safe_market(safe_string(raw, "symbol"), market)
        filled = safe_number(raw, "executedQty")
        cost = safe_number(raw, "cummulativeQuoteQty")

        fee = None
        trades = None
        fills = safe_value(raw, "fills")
        if fills is not None:
            trades = [self.parse_trade(fill, market) for fill in fills]
            if trades:
                cost = sum((t.cost for t in trades if t.cost is not None), Decimal(0))
                fees = [t.fee for t in trades if t.fee is not None and t.fee.cost is not None]
                if fees:
                    fee = Fee(cost=sum((f.cost for f in fees), Decimal(0)), currency=fees[0].currency)

        average = None
        if cost is not None and filled:
            average = cost / filled

        return derive_order_fields(Order(
            id=safe_string(raw, "orderId"),
            client_order_id=safe_string(raw, "clientOrderId"),
            timestamp=safe_integer(raw, "time", "transactTime"),
            symbol=market.symbol if market else None,
            type=safe_string_lower(raw, "type"),
            side=safe_string_lower(raw, "side"),
            price=safe_number(raw, "price"),
            amount=safe_number(raw, "origQty"),
            filled=filled,
            cost=cost,
            average=average,
            status=map_order_status(safe_string(raw, "status"), ORDER_STATUSES, self.EXCHANGE_ID),
            fee=fee,
            trades=trades,
            info=raw,
        ))

    # --------------------------------------------------------
    # SIGNING AND ERRORS
    # --------------------------------------------------------

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
    ) -> SignedRequest:
        params = params or {}
        url = f"{self.api_url(api)}/{path}"
        if api == "public":
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        query = urlencode({
            "timestamp": self.nonce(),
            "recvWindow": self.options["recv_window"],
            **params,
        })
        query += "&signature=" + hmac_sign(self.secret, query)
        headers = {"X-BCIO-APIKEY": self.api_key}
        if method in ("GET", "DELETE"):
            return SignedRequest(url=f"{url}?{query}", method=method, headers=headers)
        headers["Content-Type"] = "application/x-www-form-urlencoded"
        return SignedRequest(url=url, method=method, body=query, headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if status >= 400:
            for needle, reason in FILTER_ERRORS:
                if needle in text:
                    raise InvalidOrder(
                        f"{self.EXCHANGE_ID} {reason} {text}",
                        exchange_id=self.EXCHANGE_ID,
                        http_status=status,
                        body=text,
                    )
        if not isinstance(body, dict):
            return

        success = body.get("success", True)
        message = safe_string(body, "msg")
        code = safe_string(body, "code")
        if not success:
            message, inner_code = extract_nested_message(message)
            if inner_code is not None:
                code = str(inner_code)

        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(message, f"{self.EXCHANGE_ID} {message}", status, text)
        if code is not None:
            if code == TEMPORARY_BAN_CODE and self._authenticated_once:
                raise DDoSProtection(
                    f"{self.EXCHANGE_ID} temporary banned: {text}",
                    exchange_id=self.EXCHANGE_ID,
                    http_status=status,
                    body=text,
                    code=code,
                )
            self.errors.throw_exactly_matched(code, feedback, status, text)
            self.raise_generic(feedback, status, text)
        if not success:
            self.raise_generic(feedback, status, text)
