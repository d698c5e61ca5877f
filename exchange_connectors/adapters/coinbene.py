"""
CoinBene Connector.

============================================================
PURPOSE
============================================================
Spot trading on CoinBene (openapi-exchange.coinbene.com, API v2).

Market ids join base and quote ("BTCUSDT"); requests take the
slashed form ("BTC/USDT"), kept in Market.extras["slashed_id"].

AUTH:
    prehash = ISO timestamp + METHOD + path (+ "?" query | JSON body)
    ACCESS-SIGN = HMAC-SHA256(prehash, secret) hex
    Headers: ACCESS-KEY, ACCESS-TIMESTAMP, ACCESS-SIGN

ERRORS:
    {"code": 51801, "message": "..."}; code 200 is success.

============================================================
"""

import logging
from decimal import Decimal
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
    iso8601,
    parse8601,
    parse_percent_string,
    safe_number,
    safe_string,
    safe_string_lower,
    safe_value,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action
from exchange_connectors.adapters.endpoints import Endpoint, split_path_params
from exchange_connectors.adapters.errors import (
    AuthenticationError,
    BadRequest,
    BadSymbol,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidNonce,
    InvalidOrder,
    OrderNotFound,
    PermissionDenied,
)
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    derive_order_fields,
    map_order_status,
    normalize_side,
    open_from_percentage,
    parse_order_book,
    split_market_id,
    trade_cost,
)
from exchange_connectors.adapters.signing import SignedRequest, hmac_sign, urlencode
from exchange_connectors.adapters.transport import HttpResponse, dump_json


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

PREFIX_PATH = "/api/exchange/v2/"
SUCCESS_CODE = "200"
DEFAULT_DEPTH = 10  # 5, 10, 50 or 100

ORDER_TYPES = {
    "limit": "1",
    "market": "2",
}

DIRECTIONS = {
    "buy": "1",
    "sell": "2",
}

ORDER_STATUSES = {
    "Open": OrderStatus.OPEN.value,
    "Filled": OrderStatus.CLOSED.value,
    "Cancelled": OrderStatus.CANCELED.value,
    # partially filled, then canceled
    "Partially cancelled": OrderStatus.CANCELED.value,
}


def slashed_to_id(slashed_id: Optional[str]) -> Optional[str]:
    """"btc/usdt" → "BTCUSDT"."""
    if slashed_id is None:
        return None
    return slashed_id.replace("/", "").upper()


class CoinbeneAdapter(ExchangeAdapter):
    """
    CoinBene spot connector.
    """

    EXCHANGE_ID = "coinbene"
    NAME = "CoinBene"
    VERSION = "v2"
    COUNTRIES = ("CN", "US")
    URLS = {
        "api": "https://openapi-exchange.coinbene.com",
        "www": "http://www.coinbene.com",
        "doc": "https://github.com/Coinbene/API-SPOT-v2-Documents",
    }
    ENDPOINTS = {
        # Public
        "trade_pairs": Endpoint.public("GET", "market/tradePair/list"),
        "trade_pair": Endpoint.public("GET", "market/tradePair/one"),
        "tickers": Endpoint.public("GET", "market/ticker/list"),
        "ticker": Endpoint.public("GET", "market/ticker/one"),
        "order_book": Endpoint.public("GET", "market/orderBook"),
        "trades": Endpoint.public("GET", "market/trades"),
        "candles": Endpoint.public("GET", "market/instruments/candles"),
        "rates": Endpoint.public("GET", "market/rate/list"),
        # Private GET
        "accounts": Endpoint.private("GET", "account/list"),
        "account": Endpoint.private("GET", "account/one"),
        "order_info": Endpoint.private("GET", "order/info"),
        "open_orders": Endpoint.private("GET", "order/openOrders"),
        "closed_orders": Endpoint.private("GET", "order/closedOrders"),
        "fills": Endpoint.private("GET", "order/trade/fills"),
        # Private POST
        "place": Endpoint.private("POST", "order/place"),
        "cancel": Endpoint.private("POST", "order/cancel"),
        "batch_cancel": Endpoint.private("POST", "order/batchCancel"),
        "batch_place": Endpoint.private("POST", "order/batchPlaceOrder"),
    }
    FEES = TradingFees(maker=Decimal("0.001"), taker=Decimal("0.001"))
    TIMEFRAMES = {
        "1m": "1",
        "3m": "3",
        "5m": "5",
        "15m": "15",
        "30m": "30",
        "1h": "60",
        "2h": "120",
        "4h": "240",
        "6h": "360",
        "12h": "720",
        "1d": "D",
        "1w": "W",
        "1M": "M",
    }
    EXACT_ERRORS = {
        "429": DDoSProtection,  # Requests are too frequent
        "430": ExchangeError,  # API user transactions are not supported at this time
        "10001": BadRequest,  # "ACCESS_KEY" cannot be empty
        "10002": BadRequest,  # "ACCESS_SIGN" cannot be empty
        "10003": BadRequest,  # "ACCESS_TIMESTAMP" cannot be empty
        "10005": InvalidNonce,  # Invalid ACCESS_TIMESTAMP
        "10006": AuthenticationError,  # Invalid ACCESS_KEY
        "10007": BadRequest,  # Invalid Content_Type
        "10008": InvalidNonce,  # Request timestamp expired
        "10009": ExchangeNotAvailable,  # System Error
        "10010": AuthenticationError,  # API authentication failed
        "11000": BadRequest,  # Required parameter cannot be empty
        "11001": BadRequest,  # Incorrect parameter value
        "11002": InvalidOrder,  # Parameter value exceeds maximum limit
        "11003": ExchangeError,  # No data returned by third-party interface
        "11004": InvalidOrder,  # Order price accuracy does not match
        "11005": InvalidOrder,  # The currency pair has not yet opened leverage
        "11007": ExchangeError,  # Currency pair does not match asset
        "51800": ExchangeError,  # The transaction has been traded, failure
        "51801": OrderNotFound,  # The order does not exist, the cancellation of failure
        "51802": BadSymbol,  # TradePair Wrong
        "51803": InvalidOrder,  # Buy Price must not be more than current price {0}%
        "51804": InvalidOrder,  # Sell price must not be less than current price {0}%
        "51805": InvalidOrder,  # Order price Most decimal point {0}
        "51806": InvalidOrder,  # Order quantity Most decimal point {0}
        "51807": InvalidOrder,  # Buy at least {0}
        "51808": InvalidOrder,  # Sell at least {0}
        "51809": InsufficientFunds,  # Insufficient balance or account is frozen
        "51810": ExchangeError,  # selling not supported
        "51811": PermissionDenied,  # You do not have the authority to trade
        "51812": InvalidOrder,  # The buy price exceeds the cycle limit
        "51813": InvalidOrder,  # The sell price exceeds the cycle limit
        "51814": InvalidOrder,  # Schedule Order can only be cancelled before triggering
        "51815": InvalidOrder,  # Order Type Error
        "51816": BadRequest,  # Account Type Error
        "51817": BadSymbol,  # Trade Pair Error
        "51818": InvalidOrder,  # Trade Orientation Error
        "51819": InvalidOrder,  # Order Interface Error
        "51820": InvalidOrder,  # Trigger Price Error
        "51821": InvalidOrder,  # Trigger price Most decimal point {0}
        "51822": InvalidOrder,  # Purchase price shall not be higher than trigger price {0}%
        "51823": InvalidOrder,  # Selling Price shall not be under Trigger Price{0}%
        "51824": InvalidOrder,  # Order Price Error
        "51825": InvalidOrder,  # Order Amount Error
        "51826": InvalidOrder,  # Order amount Most decimal point {0}
        "51827": InvalidOrder,  # Order Quantity Error
        "51828": InvalidOrder,  # Quantity of senior open order can not exceed {0}
        "51829": InvalidOrder,  # Trigger price shall be higher than the latest filled price
        "51830": InvalidOrder,  # Trigger price shall be lower than the latest filled price
        "51831": InvalidOrder,  # Limited Price Error
        "51832": InvalidOrder,  # Limited price Most decimal point {0}
        "51833": InvalidOrder,  # Limited price shall be higher than the latest filled price
        "51834": InvalidOrder,  # Limited price shall be lower than the latest filled price
        "51835": ExchangeError,  # Account not found
        "51836": OrderNotFound,  # Order does not exist
        "51837": InvalidOrder,  # Order Number Error
        "51838": InvalidOrder,  # Quantity of batch ordering can not exceed {0}
        "51839": ExchangeError,  # Account freezing failed
        "51840": ExchangeError,  # Account checking failed
        "51841": InvalidOrder,  # Trade pair have no settings of price limit
        "51842": InvalidOrder,  # Showing Quantity of Iceberg Order shall be greater than 0
        "51843": InvalidOrder,  # Price limit checking failed
        "51844": BadRequest,  # Start time error
        "51845": BadRequest,  # End time error
        "51846": BadRequest,  # Start time should be earlier than end time
        "51847": BadRequest,  # Maximum download time period is {0} days
        "51848": InvalidOrder,  # Purchase Price shall not be under Trigger Price {0}%
        "51849": InvalidOrder,  # Selling price can not be higher than trigger price {0}%
        "51850": ExchangeError,  # The maximum number of download tasks is {0}
        "51851": BadRequest,  # Only a specific time of the past 3 months is available
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["trade_pairs"]()
        return [self.parse_market(raw) for raw in safe_value(response, "data", default=[])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"symbol": "BTC/USDT", "baseAsset": "BTC", "quoteAsset": "USDT",
         "pricePrecision": "2", "amountPrecision": "4", "minAmount": "0.0001",
         "priceFluctuation": "0.20"}
        """
        base_part, quote_part = split_market_id(safe_string(raw, "symbol"), "/")
        base_part, quote_part = base_part.upper(), quote_part.upper()
        slashed_id = f"{base_part}/{quote_part}"
        base_id, quote_id = base_part.lower(), quote_part.lower()
        return Market(
            id=slashed_to_id(slashed_id),
            base=self.safe_currency_code(base_part),
            quote=self.safe_currency_code(quote_part),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(
                amount=safe_number(raw, "amountPrecision"),
                price=safe_number(raw, "pricePrecision"),
            ),
            limits=MarketLimits(amount=MinMax(min=safe_number(raw, "minAmount"))),
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            extras={"slashed_id": slashed_id},
            info=raw,
        )

    def _slashed(self, market: Market) -> str:
        return market.extras["slashed_id"]

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["ticker"]({"symbol": self._slashed(market)})
        return self.parse_ticker(safe_value(response, "data"), market)

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        response = await self.api["tickers"]()
        tickers = {}
        for raw in safe_value(response, "data", default=[]):
            ticker = self.parse_ticker(raw)
            if ticker.symbol is None:
                continue
            if symbols is None or ticker.symbol in symbols:
                tickers[ticker.symbol] = ticker
        return tickers

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        """
        {"symbol": "BTC/USDT", "latestPrice": "8612.5", "bestBid": "8612.4",
         "bestAsk": "8612.6", "high24h": "8700", "low24h": "8500",
         "volume24h": "1234.5", "chg24h": "-2.48%"}
        """
        market = self.safe_market(slashed_to_id(safe_string(raw, "symbol")), market)
        last = safe_number(raw, "latestPrice")
        fraction = parse_percent_string(safe_string(raw, "chg24h"))
        return build_ticker(
            symbol=market.symbol if market else None,
            high=safe_number(raw, "high24h"),
            low=safe_number(raw, "low24h"),
            bid=safe_number(raw, "bestBid"),
            ask=safe_number(raw, "bestAsk"),
            open=open_from_percentage(last, fraction),
            last=last,
            percentage=None if fraction is None else fraction * 100,
            quote_volume=safe_number(raw, "volume24h"),
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request = {
            "symbol": self._slashed(market),
            "depth": DEFAULT_DEPTH if limit is None else limit,
        }
        response = await self.api["order_book"](request)
        data = safe_value(response, "data", default={})
        return parse_order_book(
            data,
            symbol=market.symbol,
            timestamp=parse8601(safe_string(data, "timestamp")),
        )

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["trades"]({"symbol": self._slashed(market)})
        return self.parse_trades(safe_value(response, "data", default=[]), market, since, limit)

    def parse_trade(self, raw: Any, market: Optional[Market] = None) -> Trade:
        """
        ["BTC/USDT", "8612.5", "0.012", "buy", "2019-05-24T10:00:00.000Z"]
        or {"price": ..., "amount": ..., "direction": ..., "tradeTime": ..., "fee": ...}
        """
        market = self.safe_market(slashed_to_id(safe_string(raw, 0, "symbol")), market)
        price = safe_number(raw, 1, "price")
        amount = safe_number(raw, 2, "amount")
        timestamp = parse8601(safe_string(raw, 4, "tradeTime"))
        fee = None
        fee_cost = safe_number(raw, "fee")
        if fee_cost is not None:
            fee = Fee(cost=fee_cost, currency=market.quote if market else None)
        return Trade(
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=market.symbol if market else None,
            side=normalize_side(safe_string(raw, 3, "direction")),
            price=price,
            amount=amount,
            cost=trade_cost(price, amount),
            fee=fee,
            info=raw,
        )

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
            "symbol": self._slashed(market),
            "period": self.timeframe_id(timeframe),
        }
        if since is not None:
            request["start"] = since // 1000
        response = await self.api["candles"](request)
        candles = [self.parse_ohlcv(row) for row in safe_value(response, "data", default=[])]
        if since is not None:
            candles = [c for c in candles if c[0] is not None and c[0] >= since]
        return candles[:limit] if limit is not None else candles

    @staticmethod
    def parse_ohlcv(row: Sequence[Any]) -> OHLCV:
        """["2019-05-24T10:00:00.000Z", open, high, low, close, volume]"""
        return [
            parse8601(safe_string(row, 0)),
            safe_number(row, 1),
            safe_number(row, 2),
            safe_number(row, 3),
            safe_number(row, 4),
            safe_number(row, 5),
        ]

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.api["accounts"]()
        currencies = {}
        for raw in safe_value(response, "data", default=[]):
            code = self.safe_currency_code(safe_string(raw, "asset"))
            currencies[code] = Balance(
                free=safe_number(raw, "available"),
                used=safe_number(raw, "frozenBalance"),
                total=safe_number(raw, "totalBalance"),
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
        await self.load_markets()
        market = self.market(symbol)
        if type not in ORDER_TYPES:
            raise InvalidOrder(f"{self.EXCHANGE_ID} invalid order type {type}", exchange_id=self.EXCHANGE_ID)
        request: Dict[str, Any] = {
            "symbol": self._slashed(market),
            "direction": DIRECTIONS[side],
            "price": None if price is None else str(price),
            "quantity": str(amount),
            "orderType": ORDER_TYPES[type],
        }
        request.update(params or {})
        response = await self.api["place"](request)
        data = safe_value(response, "data", default={})
        return Order(
            id=safe_string(data, "orderId"),
            symbol=market.symbol,
            type=type,
            side=side,
            price=price,
            amount=amount,
            info=data,
        )

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Any:
        await self.load_markets()
        response = await self.api["cancel"]({"orderId": id})
        return {"id": id, "result": True, "info": response}

    @order_action("cancel")
    async def cancel_orders(self, ids: Sequence[str], symbol: Optional[str] = None) -> Any:
        """
        Per-order results come back in data:
        [{"orderId": "1980983481458700288", "code": "200", "message": ""}, ...]
        """
        await self.load_markets()
        return await self.api["batch_cancel"]({"orderIds": list(ids)})

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        await self.load_markets()
        response = await self.api["order_info"]({"orderId": id})
        return self.parse_order(safe_value(response, "data"))

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._fetch_order_list("open_orders", symbol, since, limit)

    async def fetch_closed_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._fetch_order_list("closed_orders", symbol, since, limit)

    async def _fetch_order_list(
        self, endpoint: str, symbol: Optional[str], since: Optional[int], limit: Optional[int]
    ) -> List[Order]:
        await self.load_markets()
        request: Dict[str, Any] = {}
        market = None
        if symbol is not None:
            market = self.market(symbol)
            request["symbol"] = self._slashed(market)
        if limit is not None:
            request["limit"] = limit
        response = await self.api[endpoint](request)
        orders = safe_value(response, "data")
        if orders is None:
            return []
        return self.parse_orders(orders, market, since, limit)

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"orderId": "1980983481458700288", "baseAsset": "BTC", "quoteAsset": "USDT",
         "orderDirection": "buy", "quantity": "0.5", "filledQuantity": "0.2",
         "filledAmount": "1700", "orderPrice": "8500", "orderType": "limit",
         "orderStatus": "Open", "orderTime": "2019-05-24T10:00:00.000Z", "totalFee": "0.1"}
        """
        base = self.safe_currency_code(safe_string(raw, "baseAsset"))
        quote = self.safe_currency_code(safe_string(raw, "quoteAsset"))
        if base is not None and quote is not None:
            market = self.markets.get(f"{base}/{quote}", market)
        market = self.market_by_id(slashed_to_id(safe_string(raw, "symbol"))) or market

        order_type = safe_string_lower(raw, "orderType")
        filled = safe_number(raw, "filledQuantity")
        # quantity is 0 for market orders
        amount = safe_number(raw, "quantity")
        if order_type == "market" and amount is not None and amount == 0:
            amount = filled
        # orderPrice is 0 for market orders
        price = safe_number(raw, "orderPrice")

        fee = None
        fee_cost = safe_number(raw, "fee", "totalFee")
        if fee_cost is not None:
            fee = Fee(cost=fee_cost, currency=market.quote if market else None)

        timestamp = parse8601(safe_string(raw, "orderTime"))
        order = derive_order_fields(Order(
            id=safe_string(raw, "orderId"),
            timestamp=timestamp,
            symbol=market.symbol if market else (f"{base}/{quote}" if base and quote else None),
            type=order_type,
            side=normalize_side(safe_string(raw, "orderDirection")),
            price=price,
            amount=amount,
            filled=filled,
            cost=safe_number(raw, "filledAmount"),
            average=safe_number(raw, "avgPrice"),
            status=map_order_status(safe_string(raw, "orderStatus"), ORDER_STATUSES, self.EXCHANGE_ID),
            fee=fee,
            info=raw,
        ))
        # unfilled market orders have no price
        if order.price is not None and order.price == 0:
            order.price = None
        return order

    async def fetch_my_trades(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        # order/trade/fills requires an orderId
        raise self._not_supported("fetch_my_trades")

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
        path, query = split_path_params(PREFIX_PATH + path, params)
        url = self.api_url(api) + path
        if api == "public":
            if query:
                url += "?" + urlencode(query)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        timestamp = iso8601(self.milliseconds())
        headers = {
            "ACCESS-KEY": self.api_key,
            "ACCESS-TIMESTAMP": timestamp,
        }
        auth = timestamp + method + path
        body = None
        if method == "GET":
            if query:
                encoded = "?" + urlencode(query)
                url += encoded
                auth += encoded
        else:
            if query:
                body = dump_json(query)
                auth += body
            headers["Content-Type"] = "application/json"
        headers["ACCESS-SIGN"] = hmac_sign(self.secret, auth)
        return SignedRequest(url=url, method=method, body=body, headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict):
            return
        feedback = f"{self.EXCHANGE_ID} {text}"
        code = safe_string(body, "code", default=SUCCESS_CODE)
        if code != SUCCESS_CODE:
            self.errors.throw_exactly_matched(code, feedback, status, text)
            self.raise_generic(feedback, status, text)
        if status >= 400:
            self.raise_generic(feedback, status, text)
