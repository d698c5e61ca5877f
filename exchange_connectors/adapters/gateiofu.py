"""
Gate.io Futures Connector.

============================================================
PURPOSE
============================================================
Futures and perpetual swaps on Gate.io (fx-api.gateio.ws/api/v4).

Every endpoint is templated by settlement currency:
    futures/{settle}/contracts
Markets are loaded once per id in the settle_currency_ids option.

AUTH:
    Private paths live under private/
    body = urlencode(nonce + query)
    Key, Sign = HMAC-SHA512(body, secret) hex

ERRORS:
    {"result": "false", "code": 5, "message": "Error: invalid key or sign"}

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import (
    Balance,
    Balances,
    Market,
    MarketLimits,
    MarketPrecision,
    MarketType,
    MinMax,
    OHLCV,
    Order,
    OrderBook,
    OrderStatus,
    PrecisionMode,
    Ticker,
    Trade,
    TradingFees,
)
from exchange_connectors.adapters.accessors import (
    filter_by_symbols,
    iso8601,
    safe_number,
    safe_string,
    safe_timestamp,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action, parse_timeframe
from exchange_connectors.adapters.endpoints import Endpoint, split_path_params
from exchange_connectors.adapters.errors import (
    ArgumentsRequired,
    AuthenticationError,
    BadSymbol,
    DDoSProtection,
    ExchangeError,
    InsufficientFunds,
    InvalidOrder,
    NotSupported,
    OrderNotFound,
)
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    derive_order_fields,
    open_from_percentage,
    parse_order_book,
    trade_cost,
)
from exchange_connectors.adapters.signing import SignedRequest, hmac_sign, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

MAX_CANDLES = 2000

# https://gate.io/api2#errCode
ERROR_CODE_NAMES = {
    "1": "Invalid request",
    "2": "Invalid version",
    "3": "Invalid request",
    "4": "Too many attempts",
    "5": "Invalid sign",
    "6": "Invalid sign",
    "7": "Currency is not supported",
    "8": "Currency is not supported",
    "9": "Currency is not supported",
    "10": "Verified failed",
    "11": "Obtaining address failed",
    "12": "Empty params",
    "13": "Internal error, please report to administrator",
    "14": "Invalid user",
    "15": "Cancel order too fast, please wait 1 min and try again",
    "16": "Invalid order id or order is already closed",
    "17": "Invalid orderid",
    "18": "Invalid amount",
    "19": "Not permitted or trade is disabled",
    "20": "Your order size is too small",
    "21": "You don't have enough fund",
}


def _settle(path: str) -> str:
    return f"futures/{{settle}}/{path}"


class GateioFuturesAdapter(ExchangeAdapter):
    """
    Gate.io futures connector.
    """

    EXCHANGE_ID = "gateiofu"
    NAME = "Gate.io Futures"
    VERSION = "v4"
    COUNTRIES = ("CN",)
    URLS = {
        "api": "https://fx-api.gateio.ws/api",
        "www": "https://gate.io/",
        "doc": "https://www.gate.io/docs/futures/api/index.html#gate-api-v4",
    }
    ENDPOINTS = {
        # Public
        "contracts": Endpoint.public("GET", _settle("contracts")),
        "contract": Endpoint.public("GET", _settle("contracts/{contract}")),
        "order_book": Endpoint.public("GET", _settle("order_book")),
        "trades": Endpoint.public("GET", _settle("trades")),
        "candlesticks": Endpoint.public("GET", _settle("candlesticks")),
        "tickers": Endpoint.public("GET", _settle("tickers")),
        "funding_rate": Endpoint.public("GET", _settle("funding_rate")),
        "insurance": Endpoint.public("GET", _settle("insurance")),
        # Private GET
        "accounts": Endpoint.private("GET", _settle("accounts")),
        "account_book": Endpoint.private("GET", _settle("account_book")),
        "positions": Endpoint.private("GET", _settle("positions")),
        "position": Endpoint.private("GET", _settle("positions/{contract}")),
        "orders": Endpoint.private("GET", _settle("orders")),
        "order": Endpoint.private("GET", _settle("orders/{order_id}")),
        "my_trades": Endpoint.private("GET", _settle("my_trades")),
        "position_close": Endpoint.private("GET", _settle("position_close")),
        "liquidates": Endpoint.private("GET", _settle("liquidates")),
        "price_orders": Endpoint.private("GET", _settle("price_orders")),
        "price_order": Endpoint.private("GET", _settle("price_orders/{order_id}")),
        # Private POST
        "position_margin": Endpoint.private("POST", _settle("positions/{contract}/margin")),
        "position_leverage": Endpoint.private("POST", _settle("positions/{contract}/leverage")),
        "position_risk_limit": Endpoint.private("POST", _settle("positions/{contract}/risk_limit")),
        "create_order": Endpoint.private("POST", _settle("orders")),
        "create_price_order": Endpoint.private("POST", _settle("price_orders")),
        # Private DELETE
        "cancel_orders": Endpoint.private("DELETE", _settle("orders")),
        "cancel_order": Endpoint.private("DELETE", _settle("orders/{order_id}")),
        "cancel_price_orders": Endpoint.private("DELETE", _settle("price_orders")),
        "cancel_price_order": Endpoint.private("DELETE", _settle("price_orders/{order_id}")),
    }
    FEES = TradingFees(maker=Decimal("-0.00025"), taker=Decimal("0.00075"))
    PRECISION_MODE = PrecisionMode.TICK_SIZE
    TIMEFRAMES = {
        "1m": "1m",
        "5m": "5m",
        "15m": "15m",
        "30m": "30m",
        "1h": "1h",
        "4h": "4h",
        "1d": "1d",
        "1w": "7d",
    }
    DEFAULT_OPTIONS = {
        "settle_currency_ids": ("btc", "usdt"),
    }
    EXACT_ERRORS = {
        "4": DDoSProtection,
        "5": AuthenticationError,
        "6": AuthenticationError,
        "7": NotSupported,
        "8": NotSupported,
        "9": NotSupported,
        "15": DDoSProtection,
        "16": OrderNotFound,
        "17": OrderNotFound,
        "20": InvalidOrder,
        "21": InsufficientFunds,
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        markets = []
        for settle_id in self.options["settle_currency_ids"]:
            response = await self.api["contracts"]({"settle": settle_id})
            if not isinstance(response, list):
                raise ExchangeError(
                    f"{self.EXCHANGE_ID} fetch_markets got an unrecognized response",
                    exchange_id=self.EXCHANGE_ID,
                )
            markets.extend(self.parse_market(raw, settle_id) for raw in response)
        return markets

    def parse_market(self, raw: Dict[str, Any], settle_id: str) -> Market:
        """
        {"name": "BTC_USD", "type": "inverse", "order_size_min": 1,
         "order_size_max": 1000000, "order_price_round": "0.5",
         "maker_fee_rate": "-0.00025", "taker_fee_rate": "0.00075", ...}
        """
        market_id = safe_string(raw, "name")
        # boe_eth_eth is BOE_ETH/ETH
        parts = str(market_id).split("_")
        if len(parts) < 2:
            raise BadSymbol(f"Cannot split market id {market_id}", exchange_id=self.EXCHANGE_ID)
        if len(parts) > 2:
            base_id, quote_id = f"{parts[0]}_{parts[1]}", parts[2]
        else:
            base_id, quote_id = parts[0], parts[1]

        amount_min = safe_number(raw, "order_size_min")
        price_tick = safe_number(raw, "order_price_round")
        cost_min = amount_min * price_tick if amount_min is not None and price_tick is not None else None
        market_type = MarketType.SWAP if safe_string(raw, "type") == "inverse" else MarketType.FUTURE

        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(amount=amount_min, price=price_tick, mode=PrecisionMode.TICK_SIZE),
            limits=MarketLimits(
                amount=MinMax(min=amount_min, max=safe_number(raw, "order_size_max")),
                price=MinMax(min=price_tick),
                cost=MinMax(min=cost_min),
            ),
            maker=safe_number(raw, "maker_fee_rate"),
            taker=safe_number(raw, "taker_fee_rate"),
            type=market_type.value,
            settle=self.safe_currency_code(settle_id),
            settle_id=settle_id,
            info=raw,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        tickers = {}
        for settle_id in self.options["settle_currency_ids"]:
            response = await self.api["tickers"]({"settle": settle_id})
            for raw in response or []:
                ticker = self.parse_ticker(raw)
                if ticker.symbol is not None:
                    tickers[ticker.symbol] = ticker
        return filter_by_symbols(tickers, symbols)

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["tickers"]({"settle": market.settle_id, "contract": market.id})
        raw = response[0] if isinstance(response, list) and response else response
        return self.parse_ticker(raw, market)

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        """
        {"contract": "BTC_USD", "last": "6432", "change_percentage": "0.5",
         "high_24h": "6500", "low_24h": "6300", "volume_24h_base": "1500",
         "volume_24h_quote": "9600000"}
        """
        market = self.safe_market(safe_string(raw, "contract"), market)
        last = safe_number(raw, "last")
        percentage = safe_number(raw, "change_percentage")
        fraction = None if percentage is None else percentage / 100
        return build_ticker(
            symbol=market.symbol if market else None,
            high=safe_number(raw, "high_24h"),
            low=safe_number(raw, "low_24h"),
            open=open_from_percentage(last, fraction),
            last=last,
            percentage=percentage,
            base_volume=safe_number(raw, "volume_24h_base"),
            quote_volume=safe_number(raw, "volume_24h_quote"),
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"settle": market.settle_id, "contract": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.api["order_book"](request)
        return parse_order_book(
            response,
            symbol=market.symbol,
            timestamp=safe_timestamp(response, "current"),
            price_key="p",
            amount_key="s",
        )

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"settle": market.settle_id, "contract": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.api["trades"](request)
        return self.parse_trades(response, market, since, limit)

    def parse_trade(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        """{"id": 121234231, "create_time": 1514764800.123, "contract": "BTC_USD", "size": -100, "price": "100.123"}"""
        market = self.safe_market(safe_string(raw, "contract"), market)
        timestamp = safe_timestamp(raw, "create_time")
        size = safe_number(raw, "size")
        price = safe_number(raw, "price")
        amount = abs(size) if size is not None else None
        side = None
        if size is not None:
            side = "sell" if size < 0 else "buy"
        return Trade(
            id=safe_string(raw, "id"),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=market.symbol if market else None,
            side=side,
            price=price,
            amount=amount,
            cost=trade_cost(price, amount),
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
            "settle": market.settle_id,
            "contract": market.id,
            "interval": self.timeframe_id(timeframe),
        }
        if limit is not None:
            limit = min(limit, MAX_CANDLES)
        if since is not None:
            request["from"] = since // 1000
            if limit is not None:
                # the window must stay under MAX_CANDLES points
                points = limit if limit != MAX_CANDLES else limit - 1
                request["to"] = request["from"] + points * parse_timeframe(timeframe)
        elif limit is not None:
            request["limit"] = limit
        response = await self.api["candlesticks"](request)
        return [self.parse_ohlcv(row) for row in response or []]

    @staticmethod
    def parse_ohlcv(row: Dict[str, Any]) -> OHLCV:
        """{"t": 1539852480, "v": 97151, "c": "1.032", "h": "1.032", "l": "1.032", "o": "1.032"}"""
        return [
            safe_timestamp(row, "t"),
            safe_number(row, "o"),
            safe_number(row, "h"),
            safe_number(row, "l"),
            safe_number(row, "c"),
            safe_number(row, "v"),
        ]

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self) -> Balances:
        currencies = {}
        responses = []
        for settle_id in self.options["settle_currency_ids"]:
            response = await self.api["accounts"]({"settle": settle_id})
            responses.append(response)
            code = self.safe_currency_code(safe_string(response, "currency", default=settle_id))
            currencies[code] = Balance(
                free=safe_number(response, "available"),
                total=safe_number(response, "total"),
            )
        return self.build_balances(currencies, info=responses)

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
        size = int(amount) if side == "buy" else -int(amount)
        request: Dict[str, Any] = {
            "settle": market.settle_id,
            "contract": market.id,
            "size": size,
        }
        if type == "market":
            request["price"] = "0"
            request["tif"] = "ioc"
        else:
            if price is None:
                raise InvalidOrder(f"{self.EXCHANGE_ID} limit orders require a price", exchange_id=self.EXCHANGE_ID)
            request["price"] = str(price)
        request.update(params or {})
        response = await self.api["create_order"](request)
        return self.parse_order(response, market)

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Order:
        market = await self._order_market(symbol)
        response = await self.api["cancel_order"]({"settle": market.settle_id, "order_id": id})
        return self.parse_order(response, market)

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        market = await self._order_market(symbol)
        response = await self.api["order"]({"settle": market.settle_id, "order_id": id})
        return self.parse_order(response, market)

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        market = await self._order_market(symbol)
        request = {"settle": market.settle_id, "contract": market.id, "status": "open"}
        response = await self.api["orders"](request)
        return self.parse_orders(response, market, since, limit)

    async def _order_market(self, symbol: Optional[str]) -> Market:
        if symbol is None:
            raise ArgumentsRequired(
                f"{self.EXCHANGE_ID} requires a symbol to resolve the settlement currency",
                exchange_id=self.EXCHANGE_ID,
            )
        await self.load_markets()
        return self.market(symbol)

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"id": 15675394, "contract": "BTC_USD", "create_time": 1546569968,
         "size": 6024, "left": 0, "price": "3765", "fill_price": "3765",
         "status": "finished", "finish_as": "filled"}
        """
        market = self.safe_market(safe_string(raw, "contract"), market)
        size = safe_number(raw, "size")
        left = safe_number(raw, "left")
        price = safe_number(raw, "price")

        status = safe_string(raw, "status")
        if status == "finished":
            status = OrderStatus.CLOSED.value if safe_string(raw, "finish_as") == "filled" else OrderStatus.CANCELED.value
        elif status == "open":
            status = OrderStatus.OPEN.value

        order_type = None
        if price is not None:
            order_type = "market" if price == 0 else "limit"
        side = None
        if size is not None:
            side = "sell" if size < 0 else "buy"

        timestamp = safe_timestamp(raw, "create_time")
        return derive_order_fields(Order(
            id=safe_string(raw, "id"),
            client_order_id=safe_string(raw, "text"),
            timestamp=timestamp,
            symbol=market.symbol if market else None,
            type=order_type,
            side=side,
            price=price,
            amount=abs(size) if size is not None else None,
            remaining=abs(left) if left is not None else None,
            filled=abs(size) - abs(left) if size is not None and left is not None else None,
            average=safe_number(raw, "fill_price"),
            status=status,
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
        path, query = split_path_params(path, params)
        prefix = "private/" if api == "private" else ""
        url = f"{self.api_url(api)}/{self.VERSION}/{prefix}{path}"
        if api == "public":
            if query:
                url += "?" + urlencode(query)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        body = urlencode({"nonce": self.nonce(), **query})
        headers = {
            "Key": self.api_key,
            "Sign": hmac_sign(self.secret, body, "sha512"),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        return SignedRequest(url=url, method=method, body=body, headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict) or safe_string(body, "result", default="") != "false":
            return
        error_code = safe_string(body, "code")
        message = safe_string(body, "message", default=text)
        feedback = f"{self.EXCHANGE_ID} {ERROR_CODE_NAMES.get(error_code, message)}"
        self.errors.throw_exactly_matched(error_code, feedback, status, text)
        self.raise_generic(feedback, status, text)
