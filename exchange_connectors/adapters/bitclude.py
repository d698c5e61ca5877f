"""
Bitclude Connector.

============================================================
PURPOSE
============================================================
Public spot tickers from Bitclude (api.bitclude.com).

Markets are derived from the keys of stats/ticker.json
("btc_pln" → BTC/PLN). Precision and limits are user specific and
therefore unknown.

The ticker feed carries no time; tickers are stamped with the fetch
time.

============================================================
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import Market, PrecisionMode, Ticker
from exchange_connectors.adapters.accessors import milliseconds, safe_number, safe_string
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import (
    BadRequest,
    ExchangeError,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
)
from exchange_connectors.adapters.normalizers import build_ticker, split_market_id
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


class BitcludeAdapter(ExchangeAdapter):
    """
    Bitclude spot connector (public tickers).
    """

    EXCHANGE_ID = "bitclude"
    NAME = "Bitclude"
    COUNTRIES = ("PL",)
    URLS = {
        "api": "https://api.bitclude.com",
        "www": "https://bitclude.com",
        "doc": "https://docs.bitclude.com",
    }
    ENDPOINTS = {
        "ticker": Endpoint.public("GET", "stats/ticker.json"),
    }
    PRECISION_MODE = PrecisionMode.DECIMAL_PLACES
    EXACT_ERRORS = {
        "Not enough balances": InsufficientFunds,
        "InvalidPrice": InvalidOrder,
        "Size too small": InvalidOrder,
        "Missing parameter price": InvalidOrder,
        "Order not found": OrderNotFound,
    }
    BROAD_ERRORS = {
        "Invalid parameter": BadRequest,
        "The requested URL was not found on the server": BadRequest,
        "No such coin": BadRequest,
        "No such market": BadRequest,
        "An unexpected error occurred": ExchangeError,
    }

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["ticker"]()
        return [self.parse_market(market_id, raw) for market_id, raw in (response or {}).items()]

    def parse_market(self, market_id: str, raw: Any) -> Market:
        base_id, quote_id = split_market_id(market_id, "_")
        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            info={market_id: raw},
        )

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        wanted = set(self.symbols if symbols is None else symbols)
        response = await self.api["ticker"]()
        result = {}
        for market_id, market in self.markets_by_id.items():
            if market.symbol in wanted:
                result[market.symbol] = self.parse_ticker(response.get(market_id), market)
        return result

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        tickers = await self.fetch_tickers([market.symbol])
        return tickers[market.symbol]

    def parse_ticker(self, raw: Optional[Dict[str, Any]], market: Market) -> Ticker:
        """{"last": "...", "max24H": "...", "min24H": "...", "bid": "...", "ask": "..."}"""
        return build_ticker(
            symbol=market.symbol,
            timestamp=milliseconds(),
            high=safe_number(raw, "max24H"),
            low=safe_number(raw, "min24H"),
            bid=safe_number(raw, "bid"),
            ask=safe_number(raw, "ask"),
            last=safe_number(raw, "last"),
            info=raw,
        )

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict) or body.get("success") is not False:
            return
        message = safe_string(body, "error", default=text)
        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(message, feedback, status, text)
        self.errors.throw_broadly_matched(message, feedback, status, text)
        self.raise_generic(feedback, status, text)
