"""
CoinSuper Connector.

============================================================
PURPOSE
============================================================
Spot connector for CoinSuper (api.coinsuper.com/api/v1).

Every endpoint, market data included, is a signed POST.

AUTH:
    sign = md5("k=v&..." over keysorted params + timestamp
                + accesskey + secretkey)
    body = {"common": {"accesskey", "sign", "timestamp"}, "data": params}

ENVELOPE:
    {"code": "1000", "msg": "success", "data": {"timestamp": ..., "result": ...}}

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
    TakerOrMaker,
    Trade,
    TradingFees,
)
from exchange_connectors.adapters.accessors import (
    iso8601,
    safe_integer,
    safe_number,
    safe_string,
    safe_string_lower,
    safe_string_upper,
    safe_value,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    AuthenticationError,
    DDoSProtection,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidNonce,
    InvalidOrder,
    OrderNotFound,
    PermissionDenied,
)
from exchange_connectors.adapters.normalizers import (
    derive_order_fields,
    map_order_status,
    normalize_side,
    parse_order_book,
    split_market_id,
    trade_cost,
)
from exchange_connectors.adapters.signing import SignedRequest, keysort, md5_hex, raw_query, urlencode
from exchange_connectors.adapters.transport import HttpResponse, dump_json


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

SUCCESS_CODE = "1000"

# Codes the exchange documents only by message
CODE_MESSAGES = {
    "2001": "system internal error",
    "2002": "interface is unavailability",
    "2006": "request failure",
    "2008": "user not exist",
    "3003": "price is invalid",
    "3004": "symbol is invalid",
    "3005": "quantity is invalid",
    "3006": "ordertype is invalid",
    "3007": "action is invalid",
    "3008": "state is invalid",
    "3010": "amount is invalid",
    "3011": "cancel order failure",
    "3012": "create order failure",
    "3013": "orderList is invalid",
    "3014": "symbol not trading",
    "3015": "order amount or quantity less than min setting",
    "3016": "price greater than max setting",
    "3018": "order has execute",
    "3019": "orderNo num is more than the max setting",
    "3020": "price out of range",
    "3021": "order has canceled",
    "3027": "this symbols API trading channel is not available",
    "3028": "duplicate clientOrderId",
    "3029": "Market price deviation is too large, market order is not recommended",
    "3030": "Market price deviation is too large, market order is not recommended",
    "3031": "batch create order more or less than limit",
    "3032": "batch create order symbol not unique",
    "3033": "batch create order action not unique",
    "3034": "clientOrderIdList and orderNoList should and only pass one",
    "3035": "order cancel param error",
    "3036": "not usual ip",
}

ORDER_STATUSES = {
    "UNDEAL": OrderStatus.OPEN.value,
    "PARTDEAL": OrderStatus.OPEN.value,
    "DEAL": OrderStatus.CLOSED.value,
    "CANCEL": OrderStatus.CANCELED.value,
}

ORDER_TYPES = {
    "LMT": "limit",
    "MKT": "market",
}

MAX_BOOK_DEPTH = 50
MAX_CANDLES = 300
MAX_OPEN_ORDERS = 1000


class CoinSuperAdapter(ExchangeAdapter):
    """
    CoinSuper spot connector.
    """

    EXCHANGE_ID = "coinsuper"
    NAME = "CoinSuper"
    VERSION = "v1"
    COUNTRIES = ("CN",)
    URLS = {
        "api": {
            "public": "https://api.coinsuper.com",
            "private": "https://api.coinsuper.com/api",
        },
        "www": "https://coinsuper.com",
        "doc": "https://www.coinsuper.com/api/docs/v1/api_en.html",
    }
    ENDPOINTS = {
        "order_book": Endpoint.private("POST", "market/orderBook"),
        "kline": Endpoint.private("POST", "market/kline"),
        "tickers": Endpoint.private("POST", "market/tickers"),
        "symbol_list": Endpoint.private("POST", "market/symbolList"),
        "buy": Endpoint.private("POST", "order/buy"),
        "sell": Endpoint.private("POST", "order/sell"),
        "cancel": Endpoint.private("POST", "order/cancel"),
        "batch_cancel": Endpoint.private("POST", "order/batchCancel"),
        "asset_info": Endpoint.private("POST", "asset/userAssetInfo"),
        "order_list": Endpoint.private("POST", "order/list"),
        "order_details": Endpoint.private("POST", "order/details"),
        "client_order_list": Endpoint.private("POST", "order/clList"),
        "open_list": Endpoint.private("POST", "order/openList"),
        "history": Endpoint.private("POST", "order/history"),
        "trade_history": Endpoint.private("POST", "order/tradeHistory"),
    }
    FEES = TradingFees(maker=Decimal("0.001"), taker=Decimal("0.002"))
    TIMEFRAMES = {
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "1hour",
        "6h": "6hour",
        "12h": "12hour",
        "1d": "1day",
    }
    EXACT_ERRORS = {
        "2000": ExchangeNotAvailable,
        "2003": DDoSProtection,
        "2004": PermissionDenied,
        "2005": ArgumentsRequired,
        "2007": PermissionDenied,
        "3001": InsufficientFunds,
        "3002": OrderNotFound,
        "3009": InvalidNonce,
        "3017": AuthenticationError,
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["symbol_list"]()
        return [self.parse_market(raw) for raw in self._result(response, [])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"symbol": "ETH/BTC", "quantityScale": 4, "priceScale": 6, "amountScale": 8,
         "quantityMin": "0.01", "quantityMax": "100000", "priceMin": "0.000001",
         "priceMax": "100000", "deviationRatio": "0.1"}
        """
        market_id = safe_string(raw, "symbol")
        base_id, quote_id = split_market_id(market_id, "/")
        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(
                amount=safe_number(raw, "quantityScale"),
                price=safe_number(raw, "priceScale"),
            ),
            limits=MarketLimits(
                amount=MinMax(min=safe_number(raw, "quantityMin"), max=safe_number(raw, "quantityMax")),
                price=MinMax(min=safe_number(raw, "priceMin"), max=safe_number(raw, "priceMax")),
            ),
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            extras={
                "cost_precision": safe_number(raw, "amountScale"),
                "deviation_ratio": safe_number(raw, "deviationRatio"),
            },
            info=raw,
        )

    @staticmethod
    def _result(response: Any, default: Any = None) -> Any:
        return safe_value(safe_value(response, "data"), "result", default=default)

    def _require_symbol(self, symbol: Optional[str], method: str) -> None:
        if symbol is None:
            raise ArgumentsRequired(
                f"{self.EXCHANGE_ID} {method}() requires a symbol argument",
                exchange_id=self.EXCHANGE_ID,
            )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        self._require_symbol(symbol, "fetch_order_book")
        await self.load_markets()
        market = self.market(symbol)
        if limit is None or limit > MAX_BOOK_DEPTH:
            limit = MAX_BOOK_DEPTH
        response = await self.api["order_book"]({"symbol": market.id, "num": limit})
        return parse_order_book(
            self._result(response, {}),
            symbol=market.symbol,
            timestamp=safe_integer(safe_value(response, "data"), "timestamp"),
            price_key="limitPrice",
            amount_key="quantity",
        )

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "5m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[OHLCV]:
        self._require_symbol(symbol, "fetch_ohlcv")
        await self.load_markets()
        market = self.market(symbol)
        if limit is None or limit > MAX_CANDLES:
            limit = MAX_CANDLES
        request = {
            "symbol": market.id,
            "range": self.timeframe_id(timeframe),
            "num": limit,
        }
        response = await self.api["kline"](request)
        rows = [self.parse_ohlcv(row) for row in self._result(response, [])]
        if since is not None:
            rows = [row for row in rows if row[0] is not None and row[0] >= since]
        return rows[:limit]

    @staticmethod
    def parse_ohlcv(row: Dict[str, Any]) -> OHLCV:
        return [
            safe_integer(row, "timestamp"),
            safe_number(row, "open"),
            safe_number(row, "high"),
            safe_number(row, "low"),
            safe_number(row, "close"),
            safe_number(row, "volume"),
        ]

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        self._require_symbol(symbol, "fetch_trades")
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["tickers"]({"symbol": market.id})
        return self.parse_trades(self._result(response, []), market, since, limit)

    def parse_trade(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        timestamp = safe_integer(raw, "timestamp")
        side = normalize_side(safe_string_lower(raw, "tradeType"))
        price = safe_number(raw, "rate", "price")
        amount = safe_number(raw, "volume")
        market = self.safe_market(safe_string(raw, "pair"), market)
        symbol = market.symbol if market else None

        fee = None
        fee_cost = safe_number(raw, "commission")
        if fee_cost is not None:
            fee = Fee(
                cost=fee_cost,
                currency=self.safe_currency_code(safe_string(raw, "commissionCurrency")),
            )

        taker_or_maker = None
        is_your_order = safe_value(raw, "is_your_order")
        if is_your_order is not None:
            taker_or_maker = TakerOrMaker.MAKER.value if is_your_order else TakerOrMaker.TAKER.value
            if fee is None and symbol is not None and side and amount is not None and price is not None:
                fee = self.calculate_fee(symbol, "limit", side, amount, price, taker_or_maker)

        return Trade(
            id=safe_string(raw, "trade_id", "tid"),
            order=safe_string(raw, "order_id"),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=symbol,
            type="limit",
            side=side,
            taker_or_maker=taker_or_maker,
            price=price,
            amount=amount,
            cost=trade_cost(price, amount),
            fee=fee,
            info=raw,
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.api["asset_info"]()
        assets = safe_value(self._result(response, {}), "asset", default={})
        currencies = {}
        for currency_id, raw in assets.items():
            currencies[self.safe_currency_code(currency_id)] = Balance(
                free=safe_number(raw, "available"),
                total=safe_number(raw, "total"),
            )
        return self.build_balances(
            currencies,
            info=response,
            timestamp=safe_integer(safe_value(response, "data"), "timestamp"),
        )

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
            "symbol": market.id,
            "orderType": "LMT" if type == "limit" else "MKT",
            "priceLimit": "0",
            "quantity": "0",
            "amount": "0",
        }
        if type == "limit":
            if price is None:
                raise InvalidOrder(f"{self.EXCHANGE_ID} limit orders require a price", exchange_id=self.EXCHANGE_ID)
            request["priceLimit"] = str(price)
            request["quantity"] = str(amount)
        elif side == "buy":
            # market buys are sized in quote currency
            request["amount"] = str(amount)
        else:
            request["quantity"] = str(amount)
        request.update(params or {})
        response = await self.api["buy" if side == "buy" else "sell"](request)
        result = self._result(response, {})
        return derive_order_fields(Order(
            id=safe_string(result, "orderNo"),
            symbol=market.symbol,
            type=type,
            side=side,
            price=None if price is None else Decimal(str(price)),
            amount=Decimal(str(amount)),
            status=OrderStatus.OPEN.value,
            info=response,
        ))

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Any:
        return await self.api["cancel"]({"orderNo": id})

    @order_action("cancel")
    async def cancel_orders(self, ids: Sequence[str], symbol: Optional[str] = None) -> Any:
        return await self.api["batch_cancel"]({"orderNoList": ",".join(str(i) for i in ids)})

    async def _fetch_order_details(self, ids: Sequence[str]) -> List[Order]:
        if not ids:
            return []
        response = await self.api["order_details"]({"orderNoList": ",".join(str(i) for i in ids)})
        return [self.parse_order(raw) for raw in self._result(response, [])]

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        await self.load_markets()
        orders = await self._fetch_order_details([id])
        if not orders:
            raise OrderNotFound(f"{self.EXCHANGE_ID} order {id} not found", exchange_id=self.EXCHANGE_ID)
        return orders[0]

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        await self.load_markets()
        request: Dict[str, Any] = {"num": limit or MAX_OPEN_ORDERS}
        if symbol is not None:
            request["symbol"] = self.market_id(symbol)
        response = await self.api["open_list"](request)
        orders = await self._fetch_order_details(self._result(response, []))
        orders.sort(key=lambda o: o.timestamp or 0)
        if since is not None:
            orders = [o for o in orders if (o.timestamp or 0) >= since]
        return orders[:limit] if limit is not None else orders

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"orderNo": "1533195434321", "symbol": "ETH/BTC", "action": "BUY",
         "orderType": "LMT", "priceLimit": "0.07", "quantity": "1.5",
         "quantityRemaining": "0.5", "amount": "0", "amountRemaining": "0",
         "fee": "0.001", "utcCreate": 1533195434321, "state": "PARTDEAL"}
        """
        market = self.safe_market(safe_string(raw, "symbol"), market)
        timestamp = safe_integer(raw, "utcCreate")
        side = normalize_side(safe_string_lower(raw, "action"))
        order_type = ORDER_TYPES.get(safe_string_upper(raw, "orderType"))
        price = safe_number(raw, "priceLimit")

        amount = safe_number(raw, "quantity")
        remaining = safe_number(raw, "quantityRemaining")
        cost = None
        quote_amount = safe_number(raw, "amount")
        quote_remaining = safe_number(raw, "amountRemaining")
        if quote_amount is not None and quote_amount > 0 and quote_remaining is not None:
            cost = quote_amount - quote_remaining

        fee = None
        fee_cost = safe_number(raw, "fee")
        if fee_cost is not None and market is not None:
            fee = Fee(cost=fee_cost, currency=market.base if side == "buy" else market.quote)

        order = derive_order_fields(Order(
            id=safe_string(raw, "orderNo"),
            timestamp=timestamp,
            symbol=market.symbol if market else None,
            type=order_type,
            side=side,
            price=price,
            amount=amount,
            remaining=remaining,
            cost=cost,
            status=map_order_status(safe_string(raw, "state"), ORDER_STATUSES, self.EXCHANGE_ID),
            fee=fee,
            info=raw,
        ))
        if order.price is not None and order.price == 0:
            order.price = None
        return order

    # --------------------------------------------------------
    # SIGNING AND ERRORS
    # --------------------------------------------------------

    def sign(
        self,
        path: str,
        api: str = "private",
        method: str = "POST",
        params: Optional[Dict[str, Any]] = None,
    ) -> SignedRequest:
        params = params or {}
        url = f"{self.api_url(api)}/{self.VERSION}/{path}"
        headers = {"Content-Type": "application/json"}
        if api == "public":
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method, headers=headers)

        self.check_required_credentials()
        timestamp = self.nonce()
        signature = md5_hex(raw_query(keysort({
            **params,
            "timestamp": timestamp,
            "accesskey": self.api_key,
            "secretkey": self.secret,
        })))
        body = {
            "common": {
                "accesskey": self.api_key,
                "sign": signature,
                "timestamp": timestamp,
            },
            "data": params,
        }
        return SignedRequest(url=url, method=method, body=dump_json(body), headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict):
            return
        feedback = f"{self.EXCHANGE_ID} {text}"
        code = safe_string(body, "code")
        if code is not None and code != SUCCESS_CODE:
            self.errors.throw_exactly_matched(code, feedback, status, text)
            message = CODE_MESSAGES.get(code)
            if message is not None:
                feedback = f"{feedback} ({message})"
            self.raise_generic(feedback, status, text)
        data = body.get("data")
        if not isinstance(data, dict) or "result" not in data:
            self.raise_generic(feedback, status, text)
