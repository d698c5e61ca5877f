"""
Exchange Connectors - Base Adapter.

============================================================
PURPOSE
============================================================
Shared runtime of every exchange connector.

RESPONSIBILITIES:
- Declarative endpoint table bound into self.api
- Request pipeline: sign → send → classify → parse
- Market cache (load_markets, market, market_by_id)
- Credential checks, nonces, clock calibration
- Logging and metrics of every request and order action

Connectors subclass ExchangeAdapter, declare their tables, implement
sign() and the normalizers, and override the capability methods they
support. Everything else raises NotSupported.

============================================================
REQUEST PIPELINE
============================================================
1. sign(path, api, method, params) → SignedRequest
2. transport.fetch()      aiohttp errors → NetworkError / RequestTimeout
3. HTTP 418/429           → DDoSProtection, before the body is read
4. handle_errors()        connector-specific body inspection
5. HTTP status fallback   401 auth, 403 permission, 5xx unavailable ...
6. parsed JSON body (text when not JSON) returned to the caller

============================================================
"""

import asyncio
import functools
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

import aiohttp

from exchange_connectors.config import ConnectorConfig
from exchange_connectors.types import (
    Balance,
    Balances,
    Fee,
    Market,
    OHLCV,
    Order,
    OrderBook,
    PrecisionMode,
    Ticker,
    Trade,
    TradingFees,
)
from exchange_connectors.adapters.accessors import (
    COMMON_CURRENCIES,
    filter_by_since_limit,
    iso8601,
    safe_currency_code,
)
from exchange_connectors.adapters.endpoints import ApiRoutes, Endpoint, implode_params
from exchange_connectors.adapters.errors import (
    AuthenticationError,
    BadRequest,
    BadSymbol,
    BaseError,
    DDoSProtection,
    ErrorMapper,
    ExchangeError,
    NotSupported,
    RATE_LIMIT_STATUSES,
    create_network_error,
    create_timeout_error,
    error_for_http_status,
)
from exchange_connectors.adapters.logging_utils import ConnectorLogger
from exchange_connectors.adapters.metrics import ConnectorMetrics, get_global_aggregator
from exchange_connectors.adapters.normalizers import calculate_fee as _calculate_fee
from exchange_connectors.adapters.signing import NonceSource, SignedRequest, urlencode
from exchange_connectors.adapters.transport import HttpResponse, HttpTransport


logger = logging.getLogger(__name__)


TIMEFRAME_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
    "M": 2592000,
    "y": 31536000,
}


def parse_timeframe(timeframe: str) -> int:
    """Length of a unified timeframe ("15m", "1d") in seconds."""
    amount, unit = timeframe[:-1], timeframe[-1]
    if unit not in TIMEFRAME_UNITS or not amount.isdigit():
        raise BadRequest(f"Unknown timeframe {timeframe}")
    return int(amount) * TIMEFRAME_UNITS[unit]


# ============================================================
# ORDER ACTION TRACKING
# ============================================================

def order_action(operation: str) -> Callable:
    """
    Log and count an order-changing coroutine method.

    Exchange-reported failures are counted as rejections and re-raised.
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        async def wrapper(self: "ExchangeAdapter", *args: Any, **kwargs: Any) -> Any:
            try:
                result = await fn(self, *args, **kwargs)
            except ExchangeError as e:
                self._metrics.record_order_rejected(type(e).__name__)
                self._logger.log_order(operation, error_message=str(e))
                raise
            self._track_order(operation, result)
            return result

        return wrapper

    return decorator


# ============================================================
# BASE ADAPTER
# ============================================================

class ExchangeAdapter(ABC):
    """
    Base class of all exchange connectors.
    """

    # --------------------------------------------------------
    # DECLARATIONS (overridden per exchange)
    # --------------------------------------------------------

    EXCHANGE_ID: str = ""
    NAME: str = ""
    VERSION: Optional[str] = None
    COUNTRIES: Tuple[str, ...] = ()
    HOSTNAME: Optional[str] = None
    URLS: Dict[str, Any] = {}
    ENDPOINTS: Dict[str, Endpoint] = {}
    FEES: TradingFees = TradingFees()
    PRECISION_MODE: PrecisionMode = PrecisionMode.DECIMAL_PLACES
    TIMEFRAMES: Dict[str, str] = {}
    DEFAULT_OPTIONS: Dict[str, Any] = {}
    EXACT_ERRORS: Dict[Any, Type[BaseError]] = {}
    BROAD_ERRORS: Dict[str, Type[BaseError]] = {}
    REQUIRED_CREDENTIALS: Tuple[str, ...] = ("api_key", "secret")
    COMMON_CURRENCIES: Dict[str, str] = COMMON_CURRENCIES

    def __init__(
        self,
        config: Optional[ConnectorConfig] = None,
        transport: Optional[HttpTransport] = None,
    ):
        """
        Initialize connector.

        Args:
            config: Credentials, timeouts and option overrides
            transport: HTTP transport (default: aiohttp session)
        """
        self.config = config or ConnectorConfig()
        self.api_key = self.config.api_key
        self.secret = self.config.secret
        self.uid = self.config.uid
        self.password = self.config.password
        self.hostname = self.config.hostname or self.HOSTNAME

        self.options: Mapping[str, Any] = MappingProxyType({**self.DEFAULT_OPTIONS, **self.config.options})

        self._transport = transport or HttpTransport(self.config.timeout, self.config.user_agent)
        self._nonce = NonceSource(self.config.time_difference_ms)

        self._logger = ConnectorLogger(self.EXCHANGE_ID)
        self._metrics = ConnectorMetrics(self.EXCHANGE_ID)
        get_global_aggregator().register(self._metrics)

        self.errors = ErrorMapper(self.EXCHANGE_ID, self.EXACT_ERRORS, self.BROAD_ERRORS)
        self.api = ApiRoutes(self.ENDPOINTS, self.request)

        self.markets: Dict[str, Market] = {}
        self.markets_by_id: Dict[str, Market] = {}
        self._markets_lock = asyncio.Lock()

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def exchange_id(self) -> str:
        return self.EXCHANGE_ID

    @property
    def is_connected(self) -> bool:
        return self._transport.is_open

    @property
    def metrics(self) -> ConnectorMetrics:
        return self._metrics

    @property
    def symbols(self) -> List[str]:
        return sorted(self.markets)

    @property
    def time_difference_ms(self) -> int:
        return self._nonce.time_difference_ms

    def public_endpoints(self) -> List[str]:
        return self.api.public()

    def private_endpoints(self) -> List[str]:
        return self.api.private()

    def has(self, capability: str) -> bool:
        """Check whether the connector implements a capability method."""
        method = getattr(type(self), capability, None)
        return method is not None and method is not getattr(ExchangeAdapter, capability, None)

    # --------------------------------------------------------
    # CONNECTION LIFECYCLE
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Open the HTTP session."""
        await self._transport.open()
        self._logger.info("Connected")

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        await self._transport.close()
        self._logger.info("Disconnected")

    async def __aenter__(self) -> "ExchangeAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # --------------------------------------------------------
    # CREDENTIALS, NONCE AND CLOCK
    # --------------------------------------------------------

    def check_required_credentials(self) -> None:
        """
        Raises:
            AuthenticationError: A required credential is missing
        """
        for name in self.REQUIRED_CREDENTIALS:
            if not getattr(self, name, None):
                raise AuthenticationError(
                    f'{self.EXCHANGE_ID} requires "{name}" credential',
                    exchange_id=self.EXCHANGE_ID,
                )

    def nonce(self) -> int:
        return self._nonce.next()

    def milliseconds(self) -> int:
        """Current time aligned to the exchange clock."""
        return self._nonce.milliseconds()

    def seconds(self) -> int:
        return self.milliseconds() // 1000

    async def fetch_time(self) -> int:
        """Exchange server time in ms."""
        raise NotSupported(f"{self.EXCHANGE_ID} fetch_time() is not supported", exchange_id=self.EXCHANGE_ID)

    async def calibrate_clock(self) -> int:
        """
        Measure local clock minus server clock.

        The offset is returned, not stored; pass it to
        apply_time_difference() or ConnectorConfig(time_difference_ms=...).
        """
        before = int(time.time() * 1000)
        server_ms = await self.fetch_time()
        after = int(time.time() * 1000)
        return (before + after) // 2 - server_ms

    def apply_time_difference(self, offset_ms: int) -> None:
        self._nonce.time_difference_ms = int(offset_ms)
        self._logger.debug(f"Clock offset set to {offset_ms}ms")

    # --------------------------------------------------------
    # REQUEST PIPELINE
    # --------------------------------------------------------

    def api_url(self, api: str) -> str:
        """Root URL of an endpoint group, with {hostname} resolved."""
        urls = self.URLS["api"]
        url = urls if isinstance(urls, str) else urls[api]
        return implode_params(url, {"hostname": self.hostname})

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
    ) -> SignedRequest:
        """
        Build the request for one endpoint call.

        The default handles unauthenticated query-string requests;
        connectors with private endpoints override it.
        """
        if api != "public":
            raise NotSupported(f"{self.EXCHANGE_ID} has no private API", exchange_id=self.EXCHANGE_ID)
        url = f"{self.api_url(api)}/{implode_params(path, params or {})}"
        query = {k: v for k, v in (params or {}).items() if "{" + k + "}" not in path}
        if query:
            url += "?" + urlencode(query)
        return SignedRequest(url=url, method=method)

    def handle_errors(self, status: int, text: str, body: Any, response: HttpResponse) -> None:
        """Inspect a response for exchange-reported failures; raise to reject it."""
        return None

    async def request(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Sign, send and validate one request.

        Returns:
            Parsed JSON body, or the raw text when the body is not JSON
        """
        signed = self.sign(path, api, method, dict(params or {}))
        request_id = self._logger.log_request(path, signed.method, signed.url, signed.headers, signed.body)
        start = time.monotonic()

        try:
            response = await self._transport.fetch(signed)
        except asyncio.TimeoutError:
            latency_ms = (time.monotonic() - start) * 1000
            error = create_timeout_error(
                self.EXCHANGE_ID, self.config.timeout.total_seconds * 1000, path
            )
            self._record_failure(path, request_id, latency_ms, None, error)
            raise error
        except aiohttp.ClientError as e:
            latency_ms = (time.monotonic() - start) * 1000
            error = create_network_error(self.EXCHANGE_ID, str(e), path)
            self._record_failure(path, request_id, latency_ms, None, error)
            raise error from e

        latency_ms = (time.monotonic() - start) * 1000
        body = response.json

        try:
            self._check_response(response, body)
        except BaseError as error:
            self._record_failure(path, request_id, latency_ms, response, error)
            raise

        self._metrics.record_request(path, latency_ms, True, response.status)
        self._logger.log_response(path, request_id, response.status, latency_ms, True)
        return body if body is not None else response.text

    def _check_response(self, response: HttpResponse, body: Any) -> None:
        status, text = response.status, response.text
        if status in RATE_LIMIT_STATUSES:
            raise DDoSProtection(
                f"{self.EXCHANGE_ID} {status} {text}",
                exchange_id=self.EXCHANGE_ID,
                http_status=status,
                body=text,
            )
        self.handle_errors(status, text, body, response)
        error_cls = error_for_http_status(status)
        if error_cls is not None:
            raise error_cls(
                f"{self.EXCHANGE_ID} {response.method} {response.url} {status} {text}",
                exchange_id=self.EXCHANGE_ID,
                http_status=status,
                body=text,
            )

    def _record_failure(
        self,
        path: str,
        request_id: str,
        latency_ms: float,
        response: Optional[HttpResponse],
        error: BaseError,
    ) -> None:
        status = response.status if response is not None else None
        if error.http_status is None:
            error.http_status = status
        if error.exchange_id is None:
            error.exchange_id = self.EXCHANGE_ID
        self._metrics.record_request(path, latency_ms, False, status, type(error).__name__)
        self._logger.log_response(
            path,
            request_id,
            status,
            latency_ms,
            False,
            error_type=type(error).__name__,
            error_message=error.message,
            response_body=response.text if response is not None else None,
        )

    def raise_generic(self, feedback: str, status: Optional[int] = None, body: Optional[str] = None) -> None:
        """Raise the catch-all ExchangeError."""
        raise self.errors.generic(feedback, http_status=status, body=body)

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def load_markets(self, reload: bool = False) -> Dict[str, Market]:
        """
        Load and cache markets.

        Concurrent callers share one fetch; readers keep seeing the
        previous table until the new one is complete.
        """
        if self.markets and not reload:
            return self.markets
        async with self._markets_lock:
            if self.markets and not reload:
                return self.markets
            markets = await self.fetch_markets()
            self.set_markets(markets)
            self._logger.info(f"Loaded {len(self.markets)} markets")
        return self.markets

    def set_markets(self, markets: Sequence[Market]) -> None:
        by_symbol = {market.symbol: market for market in markets}
        by_id = {market.id: market for market in markets}
        self.markets, self.markets_by_id = by_symbol, by_id

    def market(self, symbol: str) -> Market:
        """
        Raises:
            BadSymbol: Unknown symbol or markets not loaded
        """
        market = self.markets.get(symbol)
        if market is None:
            raise BadSymbol(f"{self.EXCHANGE_ID} does not have market symbol {symbol}", exchange_id=self.EXCHANGE_ID)
        return market

    def market_by_id(self, market_id: Any) -> Optional[Market]:
        if market_id is None:
            return None
        return self.markets_by_id.get(str(market_id))

    def market_id(self, symbol: str) -> str:
        return self.market(symbol).id

    def safe_market(self, market_id: Any = None, market: Optional[Market] = None) -> Optional[Market]:
        """Explicit market first, then the id table; a miss is None."""
        if market is not None:
            return market
        return self.market_by_id(market_id)

    def safe_currency_code(self, currency_id: Optional[str]) -> Optional[str]:
        return safe_currency_code(currency_id, self.COMMON_CURRENCIES)

    def timeframe_id(self, timeframe: str) -> str:
        if timeframe not in self.TIMEFRAMES:
            raise BadRequest(f"{self.EXCHANGE_ID} does not support timeframe {timeframe}", exchange_id=self.EXCHANGE_ID)
        return self.TIMEFRAMES[timeframe]

    # --------------------------------------------------------
    # PARSING HELPERS
    # --------------------------------------------------------

    def parse_trade(self, trade: Any, market: Optional[Market] = None) -> Trade:
        raise NotSupported(f"{self.EXCHANGE_ID} parse_trade() is not supported", exchange_id=self.EXCHANGE_ID)

    def parse_order(self, order: Any, market: Optional[Market] = None) -> Order:
        raise NotSupported(f"{self.EXCHANGE_ID} parse_order() is not supported", exchange_id=self.EXCHANGE_ID)

    def parse_trades(
        self,
        trades: Any,
        market: Optional[Market] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Trade]:
        """Parse, sort by timestamp, then apply since/limit."""
        parsed = [self.parse_trade(trade, market) for trade in (trades or [])]
        parsed.sort(key=lambda t: t.timestamp or 0)
        return filter_by_since_limit(parsed, since, limit)

    def parse_orders(
        self,
        orders: Any,
        market: Optional[Market] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        parsed = [self.parse_order(order, market) for order in (orders or [])]
        parsed.sort(key=lambda o: o.timestamp or 0)
        return filter_by_since_limit(parsed, since, limit)

    @staticmethod
    def build_balances(
        currencies: Mapping[str, Balance],
        info: Any = None,
        timestamp: Optional[int] = None,
    ) -> Balances:
        """Complete every Balance and wrap them."""
        return Balances(
            currencies={code: balance.complete() for code, balance in currencies.items()},
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=info,
        )

    def calculate_fee(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: Decimal,
        price: Decimal,
        taker_or_maker: str = "taker",
    ) -> Fee:
        """
        Fee from the market's maker/taker rate.

        buy pays amount * rate in base; sell pays amount * price * rate
        in quote.
        """
        market = self.market(symbol)
        rate = market.maker if taker_or_maker == "maker" else market.taker
        if rate is None:
            rate = self.FEES.maker if taker_or_maker == "maker" else self.FEES.taker
        return _calculate_fee(market, side, Decimal(amount), Decimal(price), Decimal(rate))

    def _track_order(self, operation: str, result: Any) -> None:
        if operation == "create":
            self._metrics.record_order_created()
        elif operation == "cancel":
            self._metrics.record_order_canceled()
        if isinstance(result, Order):
            self._logger.log_order(
                operation,
                order_id=result.id,
                symbol=result.symbol,
                side=result.side,
                order_type=result.type,
                amount=result.amount,
                price=result.price,
                status=result.status,
            )
        else:
            self._logger.log_order(operation)

    # --------------------------------------------------------
    # CAPABILITIES
    # --------------------------------------------------------

    @abstractmethod
    async def fetch_markets(self) -> List[Market]:
        """Fetch and normalize all markets."""

    def _not_supported(self, name: str) -> NotSupported:
        return NotSupported(f"{self.EXCHANGE_ID} {name}() is not supported", exchange_id=self.EXCHANGE_ID)

    async def fetch_ticker(self, symbol: str) -> Ticker:
        raise self._not_supported("fetch_ticker")

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        raise self._not_supported("fetch_tickers")

    async def fetch_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBook:
        raise self._not_supported("fetch_order_book")

    async def fetch_trades(
        self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        raise self._not_supported("fetch_trades")

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[OHLCV]:
        raise self._not_supported("fetch_ohlcv")

    async def fetch_balance(self) -> Balances:
        raise self._not_supported("fetch_balance")

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: Decimal,
        price: Optional[Decimal] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Order:
        raise self._not_supported("create_order")

    async def cancel_order(self, id: str, symbol: Optional[str] = None) -> Any:
        raise self._not_supported("cancel_order")

    async def cancel_orders(self, ids: Sequence[str], symbol: Optional[str] = None) -> Any:
        raise self._not_supported("cancel_orders")

    async def fetch_order(self, id: str, symbol: Optional[str] = None) -> Order:
        raise self._not_supported("fetch_order")

    async def fetch_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        raise self._not_supported("fetch_orders")

    async def fetch_open_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        raise self._not_supported("fetch_open_orders")

    async def fetch_closed_orders(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Order]:
        raise self._not_supported("fetch_closed_orders")

    async def fetch_my_trades(
        self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Trade]:
        raise self._not_supported("fetch_my_trades")

    async def fetch_bids_asks(self, symbols: Optional[Sequence[str]] = None) -> Dict[str, Ticker]:
        raise self._not_supported("fetch_bids_asks")
