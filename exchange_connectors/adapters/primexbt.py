"""
PrimeXBT Connector.

============================================================
PURPOSE
============================================================
Public futures market data from PrimeXBT (api.primexbt.com/v1).

SUPPORTED:
- fetch_markets      markets?category=crypto
- fetch_order_book   dom?symbol=&depth=

The depth feed repeats every price level; levels are de-duplicated
by price. No private API is published.

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from exchange_connectors.types import (
    Market,
    MarketLimits,
    MarketPrecision,
    MarketType,
    MinMax,
    OrderBook,
    TradingFees,
)
from exchange_connectors.adapters.accessors import safe_integer, safe_string, safe_value
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.normalizers import parse_order_book, tick_from_precision


logger = logging.getLogger(__name__)


class PrimeXBTAdapter(ExchangeAdapter):
    """
    PrimeXBT futures connector (public data only).
    """

    EXCHANGE_ID = "primexbt"
    NAME = "Prime XBT"
    VERSION = "v1"
    COUNTRIES = ("SC",)
    URLS = {
        "api": "https://api.primexbt.com/v1",
        "www": "https://primexbt.com/",
        "fees": "https://primexbt.com/fees",
    }
    ENDPOINTS = {
        "markets": Endpoint.public("GET", "markets"),
        "dom": Endpoint.public("GET", "dom"),
    }
    FEES = TradingFees(maker=Decimal("0.0005"), taker=Decimal("0.0005"))
    DEFAULT_OPTIONS = {
        "category": "crypto",
    }

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["markets"]({"category": self.options["category"]})
        return [self.parse_market(raw) for raw in safe_value(response, "data", default=[])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"name": "BTC/USD", "base": "BTC", "quote": "USD",
         "qty_scale": 2, "price_scale": 1, ...}
        """
        base_id = safe_string(raw, "base")
        quote_id = safe_string(raw, "quote")
        amount_places = safe_integer(raw, "qty_scale")
        price_places = safe_integer(raw, "price_scale")
        return Market(
            id=safe_string(raw, "name"),
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(
                amount=None if amount_places is None else Decimal(amount_places),
                price=None if price_places is None else Decimal(price_places),
            ),
            limits=MarketLimits(
                amount=MinMax(min=tick_from_precision(amount_places)),
                price=MinMax(min=tick_from_precision(price_places)),
            ),
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            type=MarketType.FUTURE.value,
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"symbol": market.id}
        if limit is not None:
            request["depth"] = limit
        response = await self.api["dom"](request)
        return parse_order_book(response, symbol=market.symbol, bids_key="bids", asks_key="sells")
