"""
Felixo Connector.

============================================================
PURPOSE
============================================================
Spot market data from Felixo (api.felixo.com/v1).

Market ids join base and quote without a separator ("BTCTRY");
they are split with the configured quote-id priority list.

The private API signing scheme is not published: private calls
check credentials and then raise NotSupported.

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import Market, OrderBook, Ticker, TradingFees
from exchange_connectors.adapters.accessors import (
    filter_by_symbols,
    safe_integer,
    safe_number,
    safe_string,
)
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import NotSupported, PermissionDenied
from exchange_connectors.adapters.normalizers import (
    build_ticker,
    parse_order_book,
    split_joined_market_id,
)
from exchange_connectors.adapters.signing import SignedRequest, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


class FelixoAdapter(ExchangeAdapter):
    """
    Felixo spot connector.
    """

    EXCHANGE_ID = "felixo"
    NAME = "Felixo"
    VERSION = "v1"
    COUNTRIES = ("TR",)
    URLS = {
        "api": "https://api.felixo.com",
        "www": "https://www.felixo.com",
        "doc": "https://www.felixo.com/static/docs/api/index.html",
    }
    ENDPOINTS = {
        # Public
        "time": Endpoint.public("GET", "time"),
        "ticker": Endpoint.public("GET", "ticker"),
        "order_book": Endpoint.public("GET", "orderbook"),
        # Private
        "balances": Endpoint.private("GET", "account/balances"),
        "open_orders": Endpoint.private("GET", "openorders"),
        "place_order": Endpoint.private("POST", "order"),
        "cancel_order": Endpoint.private("DELETE", "order"),
    }
    FEES = TradingFees(maker=Decimal("0.002"), taker=Decimal("0.002"))
    DEFAULT_OPTIONS = {
        "quote_ids": ("USDT", "USDC", "TRY", "BTC"),
        "reversed": False,
    }
    EXACT_ERRORS = {
        "Permission denied.": PermissionDenied,
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["ticker"]()
        return [self.parse_market(raw) for raw in response or []]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        market_id = safe_string(raw, "pair")
        base_id, quote_id = split_joined_market_id(
            market_id, self.options["quote_ids"], reverse=self.options["reversed"]
        )
        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            info=raw,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_time(self) -> int:
        response = await self.api["time"]()
        return safe_integer(response, "serverTime")

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        response = await self.api["ticker"]()
        tickers = {}
        for raw in response or []:
            ticker = self.parse_ticker(raw)
            if ticker.symbol is not None:
                tickers[ticker.symbol] = ticker
        return filter_by_symbols(tickers, symbols)

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        """
        {"pair": "BTCTRY", "lastPrice": "43140.0", "openPrice": "43140.0",
         "highPrice": "43140.0", "lowPrice": "43140.0", "volume": "0.0",
         "bid": "43140.0", "ask": "43176.0", "timestamp": 1587377957316}
        """
        market = self.safe_market(safe_string(raw, "pair"), market)
        return build_ticker(
            symbol=market.symbol if market else None,
            timestamp=safe_integer(raw, "timestamp"),
            high=safe_number(raw, "highPrice"),
            low=safe_number(raw, "lowPrice"),
            bid=safe_number(raw, "bid"),
            ask=safe_number(raw, "ask"),
            open=safe_number(raw, "openPrice"),
            last=safe_number(raw, "lastPrice"),
            base_volume=safe_number(raw, "volume"),
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.api["order_book"]({"pair": market.id})
        return parse_order_book(
            response,
            symbol=market.symbol,
            timestamp=safe_integer(response, "timestamp"),
            limit=limit,
        )

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
        url = f"{self.api_url(api)}/{self.VERSION}/{path}"
        if api == "public":
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method)
        self.check_required_credentials()
        raise NotSupported(
            f"{self.EXCHANGE_ID} private API signing is not documented",
            exchange_id=self.EXCHANGE_ID,
        )

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict) or "error" not in body:
            return
        message = body["error"]
        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(message, feedback, status, text)
        self.errors.throw_broadly_matched(message, feedback, status, text)
        self.raise_generic(feedback, status, text)
