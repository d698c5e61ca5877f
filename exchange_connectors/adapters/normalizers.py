"""
Exchange Connectors - Shared Normalization Rules.

============================================================
PURPOSE
============================================================
Derived-field rules applied identically by every connector.

Each connector decides which raw fields feed these helpers; the
arithmetic lives here once.

RULES:
- Ticker: change, percentage, average, vwap filled only when absent
- Order: remaining, average, cost, market price re-derivation
- Order book: array / dict / price-keyed levels, deduplicated by price
- Fee: buy pays in base, sell pays in quote

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from exchange_connectors.types import (
    Fee,
    Market,
    Order,
    OrderBook,
    OrderSide,
    Ticker,
)
from exchange_connectors.adapters.accessors import (
    iso8601,
    to_decimal,
)
from exchange_connectors.adapters.errors import BadSymbol


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")


# ============================================================
# TICKER
# ============================================================

def derive_ticker_fields(ticker: Ticker) -> Ticker:
    """
    Fill derived ticker quantities the exchange did not report.

    A field is computed only when its operands are defined and its
    denominator is nonzero. Reported values are never overwritten.
    """
    if ticker.close is None:
        ticker.close = ticker.last
    if ticker.last is None:
        ticker.last = ticker.close

    last, open_ = ticker.last, ticker.open
    if ticker.change is None and last is not None and open_ is not None:
        ticker.change = last - open_
    if ticker.percentage is None and ticker.change is not None and open_ is not None and open_ != ZERO:
        ticker.percentage = ticker.change / open_ * HUNDRED
    if ticker.average is None and last is not None and open_ is not None:
        ticker.average = (open_ + last) / TWO
    if (
        ticker.vwap is None
        and ticker.quote_volume is not None
        and ticker.base_volume is not None
        and ticker.base_volume != ZERO
    ):
        ticker.vwap = ticker.quote_volume / ticker.base_volume
    if ticker.datetime is None:
        ticker.datetime = iso8601(ticker.timestamp)
    return ticker


def build_ticker(**fields: Any) -> Ticker:
    """Construct a Ticker and apply the derived-field rules."""
    return derive_ticker_fields(Ticker(**fields))


def open_from_percentage(last: Optional[Decimal], fraction: Optional[Decimal]) -> Optional[Decimal]:
    """
    Back out the open price from last and a fractional 24h change.

    open = last / (1 + fraction)
    """
    if last is None or fraction is None:
        return None
    denominator = Decimal("1") + fraction
    if denominator == ZERO:
        return None
    return last / denominator


# ============================================================
# ORDER
# ============================================================

def derive_order_fields(order: Order) -> Order:
    """
    Fill derived order quantities.

    RULES:
        remaining = max(amount - filled, 0)
        average   = cost / filled              (filled > 0)
        cost      = average * filled, else price * filled
        market orders with price 0 get price = cost / filled
    """
    amount, filled = order.amount, order.filled

    if filled is None and amount is not None and order.remaining is not None:
        filled = max(amount - order.remaining, ZERO)
        order.filled = filled
    if amount is not None and filled is not None:
        order.remaining = max(amount - filled, ZERO)
    elif order.remaining is not None and order.remaining < ZERO:
        order.remaining = ZERO

    if order.cost is None and filled is not None:
        if order.average is not None:
            order.cost = order.average * filled
        elif order.price is not None and not (order.type == "market" and order.price == ZERO):
            order.cost = order.price * filled

    if order.average is None and order.cost is not None and filled is not None and filled > ZERO:
        order.average = order.cost / filled

    if (
        order.type == "market"
        and order.price is not None
        and order.price == ZERO
        and order.cost is not None
        and order.cost > ZERO
        and filled is not None
        and filled > ZERO
    ):
        order.price = order.cost / filled

    if order.datetime is None:
        order.datetime = iso8601(order.timestamp)
    return order


def map_order_status(
    raw_status: Any,
    table: Dict[str, str],
    exchange_id: str = "",
) -> Optional[str]:
    """
    Translate a native order status.

    Unmapped values pass through unchanged (and are logged).
    """
    if raw_status is None:
        return None
    key = str(raw_status)
    if key in table:
        return table[key]
    logger.warning(f"[{exchange_id}] Unknown order status: {key}")
    return key


# ============================================================
# ORDER BOOK
# ============================================================

def parse_price_keyed_levels(raw: Any) -> List[List[Decimal]]:
    """
    Convert {price: amount} to [[price, amount], ...] in key order.

    An empty list stands for an empty side.
    """
    if not raw or not isinstance(raw, dict):
        return []
    levels = []
    for price, amount in raw.items():
        price_d, amount_d = to_decimal(price), to_decimal(amount)
        if price_d is not None and amount_d is not None:
            levels.append([price_d, amount_d])
    return levels


def parse_levels(
    raw: Any,
    price_key: Any = 0,
    amount_key: Any = 1,
) -> List[List[Decimal]]:
    """
    Convert one side of a book to [[price, amount], ...].

    Accepts arrays of arrays, arrays of dicts, or a price-keyed dict.
    Levels with a non-numeric price or amount are skipped.
    """
    if isinstance(raw, dict):
        return parse_price_keyed_levels(raw)
    levels = []
    for entry in raw or []:
        if isinstance(entry, dict):
            price, amount = entry.get(price_key), entry.get(amount_key)
        elif isinstance(entry, (list, tuple)):
            price_index = price_key if isinstance(price_key, int) else 0
            amount_index = amount_key if isinstance(amount_key, int) else 1
            if len(entry) <= max(price_index, amount_index):
                continue
            price, amount = entry[price_index], entry[amount_index]
        else:
            continue
        price_d, amount_d = to_decimal(price), to_decimal(amount)
        if price_d is not None and amount_d is not None:
            levels.append([price_d, amount_d])
    return levels


def dedup_levels(levels: List[List[Decimal]]) -> List[List[Decimal]]:
    """Drop repeated prices; the first occurrence wins, order is kept."""
    seen = set()
    result = []
    for level in levels:
        if level[0] in seen:
            continue
        seen.add(level[0])
        result.append(level)
    return result


def parse_order_book(
    raw: Any,
    symbol: Optional[str] = None,
    timestamp: Optional[int] = None,
    bids_key: str = "bids",
    asks_key: str = "asks",
    price_key: Any = 0,
    amount_key: Any = 1,
    limit: Optional[int] = None,
    nonce: Optional[int] = None,
) -> OrderBook:
    """
    Build an OrderBook from a raw payload.

    Args:
        raw: Dict holding the two sides
        symbol: Unified symbol
        timestamp: Book time in ms, if the exchange reports one
        bids_key / asks_key: Side field names
        price_key / amount_key: Level field names (index or dict key)
        limit: Truncate each side after dedup
        nonce: Sequence number, if any

    Returns:
        OrderBook with levels in source order
    """
    raw = raw or {}
    bids = dedup_levels(parse_levels(raw.get(bids_key), price_key, amount_key))
    asks = dedup_levels(parse_levels(raw.get(asks_key), price_key, amount_key))
    if limit is not None:
        bids, asks = bids[:limit], asks[:limit]
    return OrderBook(
        bids=bids,
        asks=asks,
        symbol=symbol,
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        nonce=nonce,
    )


# ============================================================
# SIDES AND FEES
# ============================================================

_SIDE_ALIASES = {
    "buy": OrderSide.BUY.value,
    "b": OrderSide.BUY.value,
    "bid": OrderSide.BUY.value,
    "1": OrderSide.BUY.value,
    "sell": OrderSide.SELL.value,
    "s": OrderSide.SELL.value,
    "a": OrderSide.SELL.value,
    "ask": OrderSide.SELL.value,
    "2": OrderSide.SELL.value,
}


def normalize_side(value: Any) -> Optional[str]:
    """
    Map native side vocabulary to buy/sell.

    Accepts "buy"/"sell" in any case, "b"/"a" (bid/ask), "1"/"2".
    Unknown values return None.
    """
    if value is None:
        return None
    return _SIDE_ALIASES.get(str(value).strip().lower())


def side_from_flags(
    is_buyer_maker: Optional[bool] = None,
    is_buyer: Optional[bool] = None,
) -> Optional[str]:
    """
    Side from Binance-style booleans.

    A buyer-maker trade was a sell hitting the bid; isBuyer marks
    our own fill as a buy.
    """
    if is_buyer_maker is not None:
        return OrderSide.SELL.value if is_buyer_maker else OrderSide.BUY.value
    if is_buyer is not None:
        return OrderSide.BUY.value if is_buyer else OrderSide.SELL.value
    return None


def calculate_fee(
    market: Market,
    side: str,
    amount: Decimal,
    price: Decimal,
    rate: Decimal,
) -> Fee:
    """
    Compute a fee from a rate.

    buy  → charged in base,  cost = amount * rate
    sell → charged in quote, cost = amount * price * rate
    """
    if side == OrderSide.SELL.value:
        return Fee(cost=amount * price * rate, currency=market.quote, rate=rate)
    return Fee(cost=amount * rate, currency=market.base, rate=rate)


def trade_cost(price: Optional[Decimal], amount: Optional[Decimal]) -> Optional[Decimal]:
    if price is None or amount is None:
        return None
    return price * amount


# ============================================================
# MARKET HELPERS
# ============================================================

def split_joined_market_id(
    market_id: str,
    quote_ids: Sequence[str],
    reverse: bool = False,
) -> Tuple[str, str]:
    """
    Split an id such as "BTCTRY" using a priority list of quote ids.

    Args:
        market_id: Joined id
        quote_ids: Candidate quote ids, first match wins
        reverse: Quote is a prefix instead of a suffix

    Returns:
        (base_id, quote_id)

    Raises:
        BadSymbol: No candidate matches
    """
    lowered = market_id.lower()
    for quote_id in quote_ids:
        size = len(quote_id)
        if size >= len(market_id):
            continue
        if reverse:
            if lowered.startswith(quote_id.lower()):
                return market_id[size:], market_id[:size]
        elif lowered.endswith(quote_id.lower()):
            return market_id[:-size], market_id[-size:]
    raise BadSymbol(f"Cannot split market id {market_id} with quotes {list(quote_ids)}")


def split_market_id(market_id: Any, separator: str) -> Tuple[str, str]:
    """Split "btc_usdt"-style ids into exactly two non-empty parts."""
    parts = str(market_id).split(separator) if market_id is not None else []
    if len(parts) != 2 or not all(parts):
        raise BadSymbol(f"Cannot split market id {market_id} on {separator!r}")
    return parts[0], parts[1]


def precision_from_tick(tick: Any) -> Optional[int]:
    """
    Decimal places of a tick size ("0.01000000" → 2).
    """
    value = to_decimal(tick)
    if value is None or value <= ZERO:
        return None
    normalized = value.normalize()
    exponent = normalized.as_tuple().exponent
    return max(-exponent, 0)


def tick_from_precision(places: Any) -> Optional[Decimal]:
    """Tick size for a count of decimal places (2 → 0.01)."""
    value = to_decimal(places)
    if value is None:
        return None
    return Decimal(1).scaleb(-int(value))
