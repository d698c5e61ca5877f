"""
Bit-Z Futures Connector.

============================================================
PURPOSE
============================================================
Perpetual contracts on Bit-Z (apiv2.bitz.com).

Endpoint names carry a "{}" slot filled with "Contract":
    {}Coin       → GET  /Market/getContractCoin
    add{}Trade   → POST /Contract/addContractTrade

Envelope parsing, nonces and md5 signing come from BitzProtocol.

ORDER STATUS:
    -1 canceled, 0 open, 1 closed

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
    MarketType,
    MinMax,
    OHLCV,
    Order,
    OrderBook,
    OrderStatus,
    Ticker,
    Trade,
)
from exchange_connectors.adapters.accessors import (
    iso8601,
    leading_number,
    safe_integer,
    safe_number,
    safe_string,
    safe_timestamp,
    safe_value,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action
from exchange_connectors.adapters.bitz import BitzProtocol
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    ExchangeError,
    OrderNotFound,
)
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    derive_order_fields,
    map_order_status,
    open_from_percentage,
    parse_order_book,
    tick_from_precision,
)
from exchange_connectors.adapters.signing import SignedRequest, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

API_FAMILY = "Contract"
MAX_CANDLES = 300
MIN_TRADES_PAGE = 10
MAX_TRADES_PAGE = 300
DEFAULT_HISTORY_PAGE = 50

ORDER_STATUSES = {
    "-1": OrderStatus.CANCELED.value,
    "0": OrderStatus.OPEN.value,
    "1": OrderStatus.CLOSED.value,
}


class BitzFuturesAdapter(ExchangeAdapter):
    """
    Bit-Z contract connector.
    """

    EXCHANGE_ID = "bitzfu"
    NAME = "Bit-Z Futures"
    COUNTRIES = ("HK",)
    HOSTNAME = BitzProtocol.HOSTNAME
    URLS = {
        "api": {
            "public": "https://{hostname}",
            "private": "https://{hostname}",
        },
        "www": "https://www.bitz.com",
        "doc": "https://apidocv2.bitz.plus/en/",
        "fees": "https://swap.bitz.top/pub/fees",
    }
    ENDPOINTS = {
        # Public
        "coin": Endpoint.public("GET", "{}Coin"),
        "kline": Endpoint.public("GET", "{}Kline"),
        "order_book": Endpoint.public("GET", "{}OrderBook"),
        "trades_history": Endpoint.public("GET", "{}TradesHistory"),
        "tickers": Endpoint.public("GET", "{}Tickers"),
        # Private
        "add_trade": Endpoint.private("POST", "add{}Trade"),
        "cancel_trade": Endpoint.private("POST", "cancel{}Trade"),
        "active_positions": Endpoint.private("POST", "get{}ActivePositions"),
        "account_info": Endpoint.private("POST", "get{}AccountInfo"),
        "my_positions": Endpoint.private("POST", "get{}MyPositions"),
        "order_result": Endpoint.private("POST", "get{}OrderResult"),
        "order": Endpoint.private("POST", "get{}Order"),
        "trade_result": Endpoint.private("POST", "get{}TradeResult"),
        "my_history_trade": Endpoint.private("POST", "get{}MyHistoryTrade"),
        "my_trades": Endpoint.private("POST", "get{}MyTrades"),
    }
    TIMEFRAMES = {
        "1m": "1m",
        "5m": "5m",
        "15m": "15m",
        "30m": "30m",
        "1h": "1h",
        "4h": "4h",
        "1d": "1d",
    }
    DEFAULT_OPTIONS = {
        "default_leverage": 1,
        # 1: cross, -1: isolated
        "default_is_cross": 1,
    }
    EXACT_ERRORS = BitzProtocol.STATUS_ERRORS

    def __init__(self, config=None, transport=None):
        super().__init__(config, transport)
        self.protocol = BitzProtocol()

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["coin"]()
        return [self.parse_market(raw) for raw in self.protocol.data(response, [])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"contractId": "101", "symbol": "BTC", "quoteAnchor": "USDT",
         "pair": "BTC_USDT", "makerFee": "-0.00030000", "takerFee": "0.00070000",
         "priceDec": "1", "anchorDec": "2", "status": "1", "isreverse": "-1",
         "minAmount": "1", "maxAmount": "5000"}
        """
        base_id = safe_string(raw, "symbol")
        quote_id = safe_string(raw, "quoteAnchor")
        price_places = safe_integer(raw, "priceDec")
        is_reverse = safe_integer(raw, "isreverse") == 1
        return Market(
            id=safe_string(raw, "contractId"),
            base=self.safe_currency_code(base_id.upper()),
            quote=self.safe_currency_code(quote_id.upper()),
            base_id=base_id,
            quote_id=quote_id,
            active=safe_integer(raw, "status") == 1,
            precision=MarketPrecision(
                amount=safe_number(raw, "anchorDec"),
                price=safe_number(raw, "priceDec"),
            ),
            limits=MarketLimits(
                amount=MinMax(min=safe_number(raw, "minAmount"), max=safe_number(raw, "maxAmount")),
                price=MinMax(min=tick_from_precision(price_places)),
            ),
            maker=safe_number(raw, "makerFee"),
            taker=safe_number(raw, "takerFee"),
            type=MarketType.SWAP.value if is_reverse else MarketType.FUTURE.value,
            extras={"pair_id": safe_string(raw, "pair")},
            info=raw,
        )

    def _symbol_from_pair(self, pair_id: Optional[str]) -> Optional[str]:
        if not pair_id or "_" not in pair_id:
            return None
        base_id, quote_id = pair_id.split("_", 1)
        return f"{self.safe_currency_code(base_id)}/{self.safe_currency_code(quote_id)}"

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        request = {}
        if symbols is not None and len(symbols) == 1:
            request["contractId"] = int(self.market_id(symbols[0]))
        response = await self.api["tickers"](request)
        timestamp = self.protocol.timestamp(response)
        result = {}
        for raw in self.protocol.data(response, []):
            market = self.market_by_id(safe_string(raw, "contractId"))
            ticker = self.parse_ticker(raw, market)
            if ticker.symbol is None:
                ticker.symbol = self._symbol_from_pair(safe_string(raw, "pair"))
            if ticker.symbol is None or (symbols is not None and ticker.symbol not in symbols):
                continue
            ticker.timestamp = timestamp
            ticker.datetime = iso8601(timestamp)
            result[ticker.symbol] = ticker
        return result

    async def fetch_ticker(self, symbol: str) -> Ticker:
        tickers = await self.fetch_tickers([symbol])
        ticker = tickers.get(symbol)
        if ticker is None:
            raise ExchangeError(f"{self.EXCHANGE_ID} ticker {symbol} could not be fetched", exchange_id=self.EXCHANGE_ID)
        return ticker

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        """
        {"contractId": "101", "pair": "BTC_USD", "min": "8550.0", "max": "8867.5",
         "latest": "8645.0", "change24h": "-0.0248",
         "baseAmount": "286.231 BTC", "quoteVolumn": "2502462.46 USDT"}
        """
        market = self.safe_market(safe_string(raw, "contractId"), market)
        last = safe_number(raw, "latest")
        fraction = safe_number(raw, "change24h")
        open_ = open_from_percentage(last, fraction)
        if open_ is not None and market is not None and market.precision.price is not None:
            open_ = open_.quantize(Decimal(1).scaleb(-int(market.precision.price)), rounding=ROUND_HALF_UP)
        return build_ticker(
            symbol=market.symbol if market else None,
            high=safe_number(raw, "max"),
            low=safe_number(raw, "min"),
            open=open_,
            last=last,
            percentage=None if fraction is None else fraction * 100,
            base_volume=leading_number(safe_string(raw, "baseAmount")),
            quote_volume=leading_number(safe_string(raw, "quoteVolumn")),
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"contractId": int(market.id)}
        if limit is not None:
            # 5, 10, 15, 20, 30 or 100
            request["depth"] = limit
        response = await self.api["order_book"](request)
        return parse_order_book(
            self.protocol.data(response, {}),
            symbol=market.symbol,
            timestamp=self.protocol.timestamp(response),
            price_key="price",
            amount_key="amount",
        )

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"contractId": int(market.id)}
        if limit is not None:
            request["pageSize"] = min(max(limit, MIN_TRADES_PAGE), MAX_TRADES_PAGE)
        response = await self.api["trades_history"](request)
        lists = safe_value(self.protocol.data(response, {}), "lists")
        if lists is None:
            return []
        return self.parse_trades(lists, market, since, limit)

    def parse_trade(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        """
        Public: {"time": 1558432920, "price": "7926.41", "num": 7137, "type": "buy"}
        Private adds tradeId, contractId, pair, tradeFee, leverage, isCross.
        """
        market = self.safe_market(safe_string(raw, "contractId"), market)
        symbol = market.symbol if market else self._symbol_from_pair(safe_string(raw, "pair"))
        price = safe_number(raw, "price")
        amount = safe_number(raw, "num")
        cost = None
        if amount is not None:
            # contract count is the notional of a reverse contract
            if market is not None and market.swap:
                cost = amount
            elif price is not None:
                cost = price * amount

        fee = None
        fee_cost = safe_number(raw, "tradeFee")
        if fee_cost is not None and market is not None:
            fee = Fee(cost=fee_cost, currency=market.base if market.swap else market.quote)

        timestamp = safe_timestamp(raw, "time")
        return Trade(
            id=safe_string(raw, "tradeId"),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=symbol,
            type="limit",
            side=safe_string(raw, "type"),
            price=price,
            amount=amount,
            cost=cost,
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
            "contractId": int(market.id),
            "type": self.timeframe_id(timeframe),
        }
        if limit is not None:
            request["size"] = min(limit, MAX_CANDLES)
        response = await self.api["kline"](request)
        lists = safe_value(self.protocol.data(response, {}), "lists")
        if lists is None:
            return []
        candles = [self.parse_ohlcv(row) for row in lists]
        if since is not None:
            candles = [c for c in candles if c[0] is not None and c[0] >= since]
        return candles[:limit] if limit is not None else candles

    @staticmethod
    def parse_ohlcv(row: Sequence[Any]) -> OHLCV:
        """["1558433100000", open, high, low, close, volume, turnover]"""
        return [
            safe_integer(row, 0),
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
        response = await self.api["account_info"]()
        balances = safe_value(self.protocol.data(response, {}), "balances", default=[])
        currencies = {}
        for raw in balances:
            code = self.safe_currency_code(safe_string(raw, "coin"))
            currencies[code] = Balance(total=safe_number(raw, "balance"))
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
        request: Dict[str, Any] = {
            "contractId": int(market.id),
            "amount": str(amount),
            "leverage": self.options["default_leverage"],
            "direction": 1 if side == "buy" else -1,
            "type": type,
            "isCross": self.options["default_is_cross"],
        }
        if price is not None:
            request["price"] = str(price)
        request.update(params or {})
        response = await self.api["add_trade"](request)
        timestamp = self.protocol.timestamp(response)
        return Order(
            id=safe_string(self.protocol.data(response, {}), "orderId"),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=market.symbol,
            type=type,
            side=side,
            price=price,
            amount=amount,
            status=OrderStatus.OPEN.value,
            info=response,
        )

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Any:
        await self.load_markets()
        return await self.api["cancel_trade"]({"entrustSheetId": int(id)})

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        await self.load_markets()
        response = await self.api["order_result"]({"entrustSheetIds": id})
        orders = self.protocol.data(response, [])
        if not orders:
            raise OrderNotFound(f"{self.EXCHANGE_ID} order {id} could not be fetched", exchange_id=self.EXCHANGE_ID)
        return self.parse_order(orders[0])

    async def _fetch_orders_from(
        self,
        endpoint: str,
        symbol: Optional[str],
        since: Optional[int],
        limit: Optional[int],
    ) -> List[Order]:
        if symbol is None:
            raise ArgumentsRequired(f"{self.EXCHANGE_ID} order queries require a symbol", exchange_id=self.EXCHANGE_ID)
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"contractId": int(market.id)}
        if endpoint == "my_history_trade":
            # page is 1-10, pageSize at most 50
            request["page"] = 1
            request["pageSize"] = limit if limit is not None else DEFAULT_HISTORY_PAGE
        response = await self.api[endpoint](request)
        data = self.protocol.data(response, [])
        orders = safe_value(data, "data", default=[]) if isinstance(data, dict) else data
        return self.parse_orders(orders, None, since, limit)

    async def fetch_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._fetch_orders_from("my_history_trade", symbol, since, limit)

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._fetch_orders_from("order", symbol, since, limit)

    async def fetch_closed_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        orders = await self._fetch_orders_from("my_history_trade", symbol, since, limit)
        return [order for order in orders if order.status != OrderStatus.OPEN.value]

    async def fetch_my_trades(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        if symbol is None:
            raise ArgumentsRequired(f"{self.EXCHANGE_ID} fetch_my_trades requires a symbol", exchange_id=self.EXCHANGE_ID)
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"contractId": int(market.id), "page": 1}
        if limit is not None:
            request["pageSize"] = limit
        response = await self.api["my_trades"](request)
        trades = self.protocol.data(response)
        if trades is None:
            return []
        return self.parse_trades(trades, market, since, limit)

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"orderId": "734709", "contractId": "101", "amount": "500", "price": "7500.00",
         "type": "limit", "leverage": "10", "direction": "1", "orderStatus": "0",
         "isCross": "-1", "available": "500", "time": 1557994750, "pair": "BTC_USD"}
        """
        market = self.safe_market(safe_string(raw, "contractId"), market)
        symbol = market.symbol if market else self._symbol_from_pair(safe_string(raw, "pair"))
        price = safe_number(raw, "price")
        amount = safe_number(raw, "amount")
        remaining = safe_number(raw, "available")
        filled = None
        if amount is not None and remaining is not None:
            filled = max(Decimal(0), amount - remaining)

        cost = None
        average = None
        if price is not None and filled is not None and market is not None:
            cost = filled if market.swap else filled * price
            # swap cost is in contracts, so cost / filled is not a price
            if market.swap:
                average = price

        side = None
        direction = safe_integer(raw, "direction")
        if direction is not None:
            side = "buy" if direction == 1 else "sell"

        return derive_order_fields(Order(
            id=safe_string(raw, "orderId"),
            timestamp=safe_timestamp(raw, "time"),
            symbol=symbol,
            type=safe_string(raw, "type"),
            side=side,
            price=price,
            amount=amount,
            filled=filled,
            remaining=remaining,
            cost=cost,
            average=average,
            status=map_order_status(safe_string(raw, "orderStatus"), ORDER_STATUSES, self.EXCHANGE_ID),
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
        prefix = "Market" if api == "public" else "Contract"
        suffix = path.replace("{}", API_FAMILY)
        if method == "GET":
            suffix = "get" + suffix
        url = f"{self.api_url(api)}/{prefix}/{suffix}"
        if api == "public":
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        body = self.protocol.sign_body(params, self.api_key, self.secret, self.seconds())
        return SignedRequest(
            url=url,
            method=method,
            body=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        error_status = self.protocol.error_status(body)
        if error_status is None:
            return
        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(error_status, feedback, status, text)
        self.raise_generic(feedback, status, text)
