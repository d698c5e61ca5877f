"""
TradeOgre Connector.

============================================================
PURPOSE
============================================================
Spot connector for TradeOgre (tradeogre.com/api/v1).

Market ids are "QUOTE-BASE" (e.g. "BTC-LTC" is LTC/BTC).
Order books arrive as {price: amount} objects per side.

AUTH:
    Authorization: Basic base64(key:secret)
    POST params form-encoded

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import (
    Balance,
    Balances,
    Market,
    MarketPrecision,
    Order,
    OrderBook,
    OrderStatus,
    Ticker,
    Trade,
)
from exchange_connectors.adapters.accessors import (
    safe_number,
    safe_string,
    safe_string_lower,
    safe_timestamp,
    iso8601,
)
from exchange_connectors.adapters.base import ExchangeAdapter, order_action
from exchange_connectors.adapters.endpoints import Endpoint, split_path_params
from exchange_connectors.adapters.errors import AuthenticationError, InvalidOrder, OrderNotFound
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    derive_order_fields,
    normalize_side,
    parse_order_book,
    split_market_id,
    trade_cost,
)
from exchange_connectors.adapters.signing import SignedRequest, basic_auth, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


class TradeOgreAdapter(ExchangeAdapter):
    """
    TradeOgre spot connector.
    """

    EXCHANGE_ID = "tradeogre"
    NAME = "Trade Ogre"
    VERSION = "v1"
    URLS = {
        "api": "https://tradeogre.com/api/v1",
        "www": "https://tradeogre.com",
        "doc": "https://tradeogre.com/help/api",
    }
    ENDPOINTS = {
        # Public
        "markets": Endpoint.public("GET", "markets"),
        "order_book": Endpoint.public("GET", "orders/{market}"),
        "ticker": Endpoint.public("GET", "ticker/{market}"),
        "history": Endpoint.public("GET", "history/{market}"),
        # Private
        "order": Endpoint.private("GET", "account/order/{uuid}"),
        "balances": Endpoint.private("GET", "account/balances"),
        "buy": Endpoint.private("POST", "order/buy"),
        "sell": Endpoint.private("POST", "order/sell"),
        "cancel": Endpoint.private("POST", "order/cancel"),
        "open_orders": Endpoint.private("POST", "account/orders"),
        "balance": Endpoint.private("POST", "account/balance"),
    }
    EXACT_ERRORS = {
        "Must be authorized": AuthenticationError,
        "Order not found": OrderNotFound,
    }
    BROAD_ERRORS = {
        "Insufficient": InvalidOrder,
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["markets"]()
        markets = []
        for entry in response or []:
            for market_id, info in entry.items():
                markets.append(self.parse_market(market_id, info))
        return markets

    def parse_market(self, market_id: str, info: Any) -> Market:
        quote_id, base_id = split_market_id(market_id, "-")
        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(price=Decimal(8)),
            info={market_id: info},
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["ticker"]({"market": market.id})
        return self.parse_ticker(response, market)

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        return build_ticker(
            symbol=market.symbol if market else None,
            high=safe_number(raw, "high"),
            low=safe_number(raw, "low"),
            bid=safe_number(raw, "bid"),
            ask=safe_number(raw, "ask"),
            last=safe_number(raw, "price"),
            previous_close=safe_number(raw, "initialprice"),
            base_volume=safe_number(raw, "volume"),
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["order_book"]({"market": market.id})
        return parse_order_book(
            response,
            symbol=market.symbol,
            bids_key="buy",
            asks_key="sell",
            limit=limit,
        )

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["history"]({"market": market.id})
        return self.parse_trades(response, market, since, limit)

    def parse_trade(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        """{"date": 1515128233, "type": "sell", "price": "0.02454320", "quantity": "0.17614230"}"""
        timestamp = safe_timestamp(raw, "date")
        price = safe_number(raw, "price")
        amount = safe_number(raw, "quantity")
        return Trade(
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            symbol=market.symbol if market else None,
            side=normalize_side(safe_string(raw, "type")),
            price=price,
            amount=amount,
            cost=trade_cost(price, amount),
            info=raw,
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.api["balances"]()
        currencies = {}
        for currency_id, total in (response.get("balances") or {}).items():
            code = self.safe_currency_code(currency_id)
            currencies[code] = Balance(total=safe_number({"total": total}, "total"))
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
        if type != "limit":
            raise InvalidOrder(f"{self.EXCHANGE_ID} allows limit orders only", exchange_id=self.EXCHANGE_ID)
        if price is None:
            raise InvalidOrder(f"{self.EXCHANGE_ID} create_order() requires a price", exchange_id=self.EXCHANGE_ID)
        await self.load_markets()
        market = self.market(symbol)
        request = {
            "market": market.id,
            "quantity": str(amount),
            "price": str(price),
            **(params or {}),
        }
        endpoint = "buy" if side == "buy" else "sell"
        response = await self.api[endpoint](request)
        return derive_order_fields(Order(
            id=safe_string(response, "uuid"),
            symbol=market.symbol,
            type=type,
            side=side,
            price=Decimal(str(price)),
            amount=Decimal(str(amount)),
            status=OrderStatus.OPEN.value,
            info=response,
        ))

    @order_action("cancel")
    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Any:
        return await self.api["cancel"]({"uuid": id})

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        await self.load_markets()
        request = {}
        market = None
        if symbol is not None:
            market = self.market(symbol)
            request["market"] = market.id
        response = await self.api["open_orders"](request)
        return self.parse_orders(response, market, since, limit)

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        await self.load_markets()
        response = await self.api["order"]({"uuid": id})
        order = self.parse_order({**response, "uuid": id})
        if order.remaining is not None and order.remaining == 0:
            order.status = OrderStatus.CLOSED.value
        return order

    def parse_order(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Order:
        """
        {"uuid": "...", "date": 1515128233, "type": "buy", "price": "0.0245",
         "quantity": "0.17", "market": "BTC-LTC", "fulfilled": "0.05"}
        """
        market = self.safe_market(safe_string(raw, "market"), market)
        timestamp = safe_timestamp(raw, "date")
        return derive_order_fields(Order(
            id=safe_string(raw, "uuid"),
            timestamp=timestamp,
            symbol=market.symbol if market else None,
            type="limit",
            side=normalize_side(safe_string_lower(raw, "type")),
            price=safe_number(raw, "price"),
            amount=safe_number(raw, "quantity"),
            filled=safe_number(raw, "fulfilled"),
            status=OrderStatus.OPEN.value,
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
        url = f"{self.api_url(api)}/{path}"
        headers: Dict[str, str] = {}
        body = None
        if api == "private":
            self.check_required_credentials()
            headers["Authorization"] = basic_auth(self.api_key, self.secret)
        if method == "GET":
            if query:
                url += "?" + urlencode(query)
        else:
            body = urlencode(query)
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        return SignedRequest(url=url, method=method, body=body, headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict):
            return
        success = body.get("success")
        if success is None or success is True or success == "true":
            return
        message = safe_string(body, "error", default=text)
        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(message, feedback, status, text)
        self.errors.throw_broadly_matched(message, feedback, status, text)
        self.raise_generic(feedback, status, text)
