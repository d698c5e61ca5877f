"""
58 Coin Connector.

============================================================
PURPOSE
============================================================
Spot market data from 58 Coin (openapi.58ex.com).

SUPPORTED:
- fetch_markets     product/list
- fetch_tickers     ticker
- fetch_ohlcv       candles

ENVELOPE:
    {"code": 0, "message": null, "data": ...}
    {"error": "Permission denied."}

PRIVATE AUTH:
    Form body urlencode(params + nonce)
    Headers Key, Sign = HMAC-SHA512(body, secret) hex

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from exchange_connectors.types import (
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    OHLCV,
    PrecisionMode,
    Ticker,
    TradingFees,
)
from exchange_connectors.adapters.accessors import (
    filter_by_symbols,
    safe_integer,
    safe_number,
    safe_string,
    safe_value,
)
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.endpoints import Endpoint
from exchange_connectors.adapters.errors import PermissionDenied
from exchange_connectors.adapters.normalizers import build_ticker
from exchange_connectors.adapters.signing import SignedRequest, hmac_sign, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

# Path midfix per endpoint group
PATH_PREFIXES = {
    "public": "spot",
    "private": "spot/my",
}


class Coin58Adapter(ExchangeAdapter):
    """
    58 Coin spot connector.
    """

    EXCHANGE_ID = "58coin"
    NAME = "58 Coin"
    VERSION = "v1"
    COUNTRIES = ("CN",)
    URLS = {
        "api": "https://openapi.58ex.com",
        "www": "https://58ex.com",
        "doc": "https://github.com/58COIN/open-api-docs/wiki",
    }
    ENDPOINTS = {
        # Public
        "markets": Endpoint.public("GET", "product/list"),
        "ticker_price": Endpoint.public("GET", "ticker/price"),
        "tickers": Endpoint.public("GET", "ticker"),
        "order_book": Endpoint.public("GET", "order_book"),
        "trades": Endpoint.public("GET", "trades"),
        "candles": Endpoint.public("GET", "candles"),
        # Private
        "accounts": Endpoint.private("GET", "accounts"),
        "order": Endpoint.private("GET", "order"),
        "orders": Endpoint.private("GET", "orders"),
        "my_trades": Endpoint.private("GET", "trades"),
        "place_order": Endpoint.private("POST", "order/place"),
        "cancel_order": Endpoint.private("POST", "order/cancel"),
    }
    FEES = TradingFees(maker=Decimal("0.0005"), taker=Decimal("0.0005"))
    PRECISION_MODE = PrecisionMode.TICK_SIZE
    TIMEFRAMES = {
        "1m": "1min",
        "3m": "3min",
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "1hour",
        "2h": "2hour",
        "4h": "4hour",
        "6h": "6hour",
        "12h": "12hour",
        "1d": "1day",
        "1w": "1week",
    }
    EXACT_ERRORS = {
        "Permission denied.": PermissionDenied,
    }

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["markets"]()
        return [self.parse_market(raw) for raw in safe_value(response, "data", default=[])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"name": "btc_usdt", "baseCurrencyName": "BTC", "quoteCurrencyName": "USDT",
         "baseMinSize": "0.001", "baseIncrement": "0.0001", "quoteIncrement": "0.01"}
        """
        base_id = safe_string(raw, "baseCurrencyName")
        quote_id = safe_string(raw, "quoteCurrencyName")
        price_tick = safe_number(raw, "quoteIncrement")
        return Market(
            id=safe_string(raw, "name"),
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(
                amount=safe_number(raw, "baseIncrement"),
                price=price_tick,
                mode=PrecisionMode.TICK_SIZE,
            ),
            limits=MarketLimits(
                amount=MinMax(min=safe_number(raw, "baseMinSize")),
                price=MinMax(min=price_tick),
            ),
            maker=self.FEES.maker,
            taker=self.FEES.taker,
            info=raw,
        )

    # --------------------------------------------------------
    # TICKERS
    # --------------------------------------------------------

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        await self.load_markets()
        response = await self.api["tickers"]()
        tickers = {}
        for raw in safe_value(response, "data", default=[]):
            ticker = self.parse_ticker(raw)
            if ticker.symbol is not None:
                tickers[ticker.symbol] = ticker
        return filter_by_symbols(tickers, symbols)

    def parse_ticker(self, raw: Dict[str, Any], market: Optional[Market] = None) -> Ticker:
        market = self.safe_market(safe_string(raw, "symbol"), market)
        return build_ticker(
            symbol=market.symbol if market else None,
            timestamp=safe_integer(raw, "time"),
            high=safe_number(raw, "high"),
            low=safe_number(raw, "low"),
            bid=safe_number(raw, "bid"),
            ask=safe_number(raw, "ask"),
            open=safe_number(raw, "open"),
            last=safe_number(raw, "last"),
            base_volume=safe_number(raw, "volume"),
            quote_volume=safe_number(raw, "quote_volume"),
            info=raw,
        )

    # --------------------------------------------------------
    # OHLCV
    # --------------------------------------------------------

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[OHLCV]:
        await self.load_markets()
        market = self.market(symbol)
        request = {
            "symbol": market.id,
            "period": self.timeframe_id(timeframe),
        }
        if since is not None:
            request["since"] = since
        if limit is not None:
            request["limit"] = limit  # default 200
        response = await self.api["candles"](request)
        return [self.parse_ohlcv(row) for row in safe_value(response, "data", default=[])]

    @staticmethod
    def parse_ohlcv(row: List[Any]) -> OHLCV:
        # [open time, open, high, low, close, base volume, quote volume]
        return [
            safe_integer(row, 0),
            safe_number(row, 1),
            safe_number(row, 2),
            safe_number(row, 3),
            safe_number(row, 4),
            safe_number(row, 5),
        ]

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
        url = f"{self.api_url(api)}/{self.VERSION}/{PATH_PREFIXES[api]}/{path}"
        if api == "public":
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        body = urlencode({**params, "nonce": self.nonce()})
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Key": self.api_key,
            "Sign": hmac_sign(self.secret, body, "sha512"),
        }
        return SignedRequest(url=url, method=method, body=body, headers=headers)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict):
            return
        feedback = f"{self.EXCHANGE_ID} {text}"
        if "error" in body:
            message = body["error"]
        else:
            code = safe_string(body, "code")
            if code is None or code == "0":
                return
            message = safe_string(body, "message", default=code)
        self.errors.throw_exactly_matched(message, feedback, status, text)
        self.errors.throw_broadly_matched(message, feedback, status, text)
        self.raise_generic(feedback, status, text)
