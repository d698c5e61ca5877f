"""
Bitforex Futures Connector.

============================================================
PURPOSE
============================================================
Perpetual swap market data from Bitforex (www.bitforex.com/contract).

Contract ids read "swap-{quote}-{base}" ("swap-usd-btc" → BTC/USD).

AUTH:
    payload = accessKey=...&keysort(query + nonce)
    signData = HMAC-SHA256("/" + path + "?" + payload, secret)
    body = payload&signData=...

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
    OHLCV,
    OrderBook,
    PrecisionMode,
    TradingFees,
)
from exchange_connectors.adapters.accessors import safe_integer, safe_number, safe_string, safe_value
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.endpoints import Endpoint, split_path_params
from exchange_connectors.adapters.errors import (
    AuthenticationError,
    BadSymbol,
    DDoSProtection,
    ExchangeError,
    InsufficientFunds,
    OrderNotFound,
)
from exchange_connectors.adapters.normalizers import parse_order_book, tick_from_precision
from exchange_connectors.adapters.signing import SignedRequest, hmac_sign, keysort, urlencode
from exchange_connectors.adapters.transport import HttpResponse


logger = logging.getLogger(__name__)


class BitforexFuturesAdapter(ExchangeAdapter):
    """
    Bitforex perpetual swap connector.
    """

    EXCHANGE_ID = "bitforexfu"
    NAME = "Bitforex Futures"
    COUNTRIES = ("CN",)
    URLS = {
        "api": {
            "public": "https://www.bitforex.com/contract",
            "private": "https://www.bitforex.com/contract",
        },
        "www": "https://www.bitforex.com",
        "doc": "https://github.com/githubdev2020/API_Doc_en/wiki",
    }
    ENDPOINTS = {
        "contracts": Endpoint.public("GET", "swap/contract/listAll"),
        "depth": Endpoint.public("GET", "mkapi/depth"),
        "kline": Endpoint.public("GET", "mkapi/kline"),
    }
    FEES = TradingFees(maker=Decimal("0.001"), taker=Decimal("0.001"))
    PRECISION_MODE = PrecisionMode.TICK_SIZE
    TIMEFRAMES = {
        "1m": "1min",
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "1hour",
        "2h": "2hour",
        "4h": "4hour",
        "12h": "12hour",
        "1d": "1day",
        "1w": "1week",
        "1M": "1month",
    }
    EXACT_ERRORS = {
        "4004": OrderNotFound,
        "1013": AuthenticationError,
        "1016": AuthenticationError,
        "3002": InsufficientFunds,
        "10204": DDoSProtection,
    }

    async def fetch_markets(self) -> List[Market]:
        response = await self.api["contracts"]()
        return [self.parse_market(raw) for raw in safe_value(response, "data", default=[])]

    def parse_market(self, raw: Dict[str, Any]) -> Market:
        """
        {"symbol": "swap-usd-btc", "unitQuantity": 1, "minOrderVolume": 1,
         "maxOrderVolume": 2000000, "minOrderPrice": 1e-8, "maxOrderPrice": 1000000,
         "priceOrderPrecision": 1, "feeRateMaker": 0.0004, "feeRateTaker": 0.0006}
        """
        market_id = safe_string(raw, "symbol")
        parts = str(market_id).split("-")
        if len(parts) != 3:
            raise BadSymbol(f"Cannot split market id {market_id}", exchange_id=self.EXCHANGE_ID)
        base_id, quote_id = parts[2], parts[1]
        return Market(
            id=market_id,
            base=self.safe_currency_code(base_id),
            quote=self.safe_currency_code(quote_id),
            base_id=base_id,
            quote_id=quote_id,
            active=True,
            precision=MarketPrecision(
                amount=safe_number(raw, "unitQuantity"),
                price=tick_from_precision(safe_integer(raw, "priceOrderPrecision")),
                mode=PrecisionMode.TICK_SIZE,
            ),
            limits=MarketLimits(
                amount=MinMax(
                    min=safe_number(raw, "minOrderVolume"),
                    max=safe_number(raw, "maxOrderVolume"),
                ),
                price=MinMax(
                    min=safe_number(raw, "minOrderPrice"),
                    max=safe_number(raw, "maxOrderPrice"),
                ),
            ),
            maker=safe_number(raw, "feeRateMaker"),
            taker=safe_number(raw, "feeRateTaker"),
            type=MarketType.SWAP.value,
            info=raw,
        )

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"businessType": market.id}
        if limit is not None:
            request["depth"] = limit
        response = await self.api["depth"](request)
        data = safe_value(response, "data", default={})
        return parse_order_book(
            data,
            symbol=market.symbol,
            timestamp=safe_integer(response, "time"),
            price_key="price",
            amount_key="amount",
            limit=limit,
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
            "businessType": market.id,
            "kType": self.timeframe_id(timeframe),
        }
        if limit is not None:
            # default 1, max 600
            request["size"] = limit
        response = await self.api["kline"](request)
        candles = [self.parse_ohlcv(row) for row in safe_value(response, "data", default=[])]
        if since is not None:
            candles = [c for c in candles if c[0] is not None and c[0] >= since]
        return candles[:limit] if limit is not None else candles

    @staticmethod
    def parse_ohlcv(row: Dict[str, Any]) -> OHLCV:
        return [
            safe_integer(row, "time"),
            safe_number(row, "open"),
            safe_number(row, "high"),
            safe_number(row, "low"),
            safe_number(row, "close"),
            safe_number(row, "vol"),
        ]

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
    ) -> SignedRequest:
        path, query = split_path_params(path, params)
        url = f"{self.api_url(api)}/{path}"
        if api == "public":
            if query:
                url += "?" + urlencode(query)
            return SignedRequest(url=url, method=method)

        self.check_required_credentials()
        payload = urlencode({"accessKey": self.api_key})
        query["nonce"] = self.milliseconds()
        payload += "&" + urlencode(keysort(query))
        signature = hmac_sign(self.secret, f"/{path}?{payload}")
        return SignedRequest(
            url=url,
            method=method,
            body=f"{payload}&signData={signature}",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        if not isinstance(body, dict):
            return
        success = body.get("success")
        if success is None or success:
            return
        feedback = f"{self.EXCHANGE_ID} {text}"
        self.errors.throw_exactly_matched(safe_string(body, "code"), feedback, status, text)
        raise ExchangeError(feedback, exchange_id=self.EXCHANGE_ID, http_status=status, body=text)
