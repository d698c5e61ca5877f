"""
Exchange Connectors - Types.

============================================================
PURPOSE
============================================================
The unified schema every connector produces.

RECORDS:
- Market      Tradeable instrument (base/quote pair)
- Ticker      Price/volume snapshot
- OrderBook   Resting bid/ask levels
- Trade       Single execution
- Order       Instruction with lifecycle status
- Balance     Per-currency free/used/total

CONVENTIONS:
- Quantities and prices are Decimal
- Timestamps are integer milliseconds since epoch
- None means "the exchange didn't say"

============================================================
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, List, Iterator


# ============================================================
# ENUMS
# ============================================================

class PrecisionMode(Enum):
    """How a market's precision numbers are to be read."""

    DECIMAL_PLACES = "DECIMAL_PLACES"
    """Precision is a count of decimal places (e.g. 8)."""

    TICK_SIZE = "TICK_SIZE"
    """Precision is the smallest increment (e.g. 0.01)."""


class OrderStatus(Enum):
    """
    Normalized order status.

    STATE MACHINE:
        OPEN → CLOSED     (fully filled)
        OPEN → CANCELED   (canceled, possibly partially filled)
        OPEN → CANCELING  (cancel acknowledged, not confirmed)
        OPEN → REJECTED   (refused by the exchange)
        OPEN → EXPIRED    (time in force elapsed)
        CANCELING → CANCELED
    """

    OPEN = "open"
    CLOSED = "closed"
    CANCELED = "canceled"
    CANCELING = "canceling"
    REJECTED = "rejected"
    EXPIRED = "expired"

    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return self in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES = frozenset({
    OrderStatus.CLOSED,
    OrderStatus.CANCELED,
    OrderStatus.REJECTED,
    OrderStatus.EXPIRED,
})


class OrderSide(Enum):
    """Order / trade side."""

    BUY = "buy"
    SELL = "sell"


class TakerOrMaker(Enum):
    """Liquidity role of a fill."""

    TAKER = "taker"
    MAKER = "maker"


class MarketType(Enum):
    """Instrument kind."""

    SPOT = "spot"
    FUTURE = "future"
    SWAP = "swap"


# ============================================================
# MARKET
# ============================================================

@dataclass(frozen=True)
class MinMax:
    """Inclusive bounds; None means unknown, not zero."""

    min: Optional[Decimal] = None
    max: Optional[Decimal] = None


@dataclass(frozen=True)
class MarketLimits:
    """Order size limits."""

    amount: MinMax = field(default_factory=MinMax)
    """Limits on base amount."""

    price: MinMax = field(default_factory=MinMax)
    """Limits on price."""

    cost: MinMax = field(default_factory=MinMax)
    """Limits on amount * price."""


@dataclass(frozen=True)
class MarketPrecision:
    """Rounding precision, tagged with its mode."""

    amount: Optional[Decimal] = None
    price: Optional[Decimal] = None
    mode: PrecisionMode = PrecisionMode.DECIMAL_PLACES


@dataclass(frozen=True)
class Market:
    """
    A tradeable instrument on one exchange.

    Immutable; a reload replaces the whole table.
    """

    id: str
    """Exchange-native instrument id."""

    base: str
    """Canonical base currency code."""

    quote: str
    """Canonical quote currency code."""

    base_id: Optional[str] = None
    """Exchange-native base currency id."""

    quote_id: Optional[str] = None
    """Exchange-native quote currency id."""

    active: Optional[bool] = True
    """Whether trading is enabled."""

    precision: MarketPrecision = field(default_factory=MarketPrecision)
    limits: MarketLimits = field(default_factory=MarketLimits)

    maker: Optional[Decimal] = None
    """Maker fee rate."""

    taker: Optional[Decimal] = None
    """Taker fee rate."""

    type: str = MarketType.SPOT.value
    """spot, future or swap."""

    settle: Optional[str] = None
    """Settlement currency code (derivatives)."""

    settle_id: Optional[str] = None
    """Exchange-native settlement currency id."""

    extras: Dict[str, Any] = field(default_factory=dict, compare=False)
    """Connector-specific ids needed by later requests."""

    info: Any = field(default=None, compare=False, repr=False)
    """Raw exchange payload."""

    @property
    def symbol(self) -> str:
        """Unified symbol, always BASE/QUOTE."""
        return f"{self.base}/{self.quote}"

    @property
    def spot(self) -> bool:
        return self.type == MarketType.SPOT.value

    @property
    def future(self) -> bool:
        return self.type == MarketType.FUTURE.value

    @property
    def swap(self) -> bool:
        return self.type == MarketType.SWAP.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = asdict(self)
        result["symbol"] = self.symbol
        result["precision"]["mode"] = self.precision.mode.value
        return result


# ============================================================
# TICKER
# ============================================================

@dataclass
class Ticker:
    """Price and volume snapshot for one market."""

    symbol: Optional[str] = None
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    bid: Optional[Decimal] = None
    bid_volume: Optional[Decimal] = None
    ask: Optional[Decimal] = None
    ask_volume: Optional[Decimal] = None
    vwap: Optional[Decimal] = None
    open: Optional[Decimal] = None
    close: Optional[Decimal] = None
    last: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    change: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    """Change in percent units (2.5 means +2.5%)."""
    average: Optional[Decimal] = None
    base_volume: Optional[Decimal] = None
    quote_volume: Optional[Decimal] = None
    info: Any = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# ============================================================
# ORDER BOOK
# ============================================================

@dataclass
class OrderBook:
    """Resting levels; bids best-first, asks best-first as delivered."""

    bids: List[List[Decimal]] = field(default_factory=list)
    asks: List[List[Decimal]] = field(default_factory=list)
    symbol: Optional[str] = None
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    nonce: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# ============================================================
# TRADES AND ORDERS
# ============================================================

@dataclass
class Fee:
    """Fee charged on a trade or order."""

    cost: Optional[Decimal] = None
    currency: Optional[str] = None
    rate: Optional[Decimal] = None


@dataclass
class TradingFees:
    """Default maker/taker rates of an exchange."""

    maker: Optional[Decimal] = None
    taker: Optional[Decimal] = None


@dataclass
class Trade:
    """A single execution."""

    id: Optional[str] = None
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    symbol: Optional[str] = None
    type: Optional[str] = None
    side: Optional[str] = None
    price: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    fee: Optional[Fee] = None
    order: Optional[str] = None
    taker_or_maker: Optional[str] = None
    info: Any = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class Order:
    """An order with normalized lifecycle status."""

    id: Optional[str] = None
    client_order_id: Optional[str] = None
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    symbol: Optional[str] = None
    type: Optional[str] = None
    side: Optional[str] = None
    price: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    filled: Optional[Decimal] = None
    remaining: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    average: Optional[Decimal] = None
    status: Optional[str] = None
    """An OrderStatus value, or the raw status when unmapped."""
    fee: Optional[Fee] = None
    trades: Optional[List[Trade]] = None
    info: Any = field(default=None, repr=False)

    @property
    def is_open(self) -> bool:
        return self.status == OrderStatus.OPEN.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# ============================================================
# BALANCES
# ============================================================

@dataclass
class Balance:
    """Balance of one currency."""

    free: Optional[Decimal] = None
    """Available for trading."""

    used: Optional[Decimal] = None
    """Locked in orders."""

    total: Optional[Decimal] = None
    """free + used."""

    def complete(self) -> "Balance":
        """Fill the missing third value when two are known."""
        free, used, total = self.free, self.used, self.total
        if total is None and free is not None and used is not None:
            total = free + used
        elif used is None and total is not None and free is not None:
            used = total - free
        elif free is None and total is not None and used is not None:
            free = total - used
        return Balance(free=free, used=used, total=total)


@dataclass
class Balances:
    """Account balances keyed by canonical currency code."""

    currencies: Dict[str, Balance] = field(default_factory=dict)
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    info: Any = field(default=None, repr=False)

    def __getitem__(self, code: str) -> Balance:
        return self.currencies[code]

    def __contains__(self, code: str) -> bool:
        return code in self.currencies

    def __iter__(self) -> Iterator[str]:
        return iter(self.currencies)

    def __len__(self) -> int:
        return len(self.currencies)

    @property
    def free(self) -> Dict[str, Optional[Decimal]]:
        return {code: b.free for code, b in self.currencies.items()}

    @property
    def used(self) -> Dict[str, Optional[Decimal]]:
        return {code: b.used for code, b in self.currencies.items()}

    @property
    def total(self) -> Dict[str, Optional[Decimal]]:
        return {code: b.total for code, b in self.currencies.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# [timestamp, open, high, low, close, volume]
OHLCV = List[Any]
