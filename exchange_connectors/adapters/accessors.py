"""
Exchange Connectors - Safe Accessors.

============================================================
PURPOSE
============================================================
Lenient field access for raw exchange payloads.

Exchanges omit fields, send numbers as strings, and mix seconds with
milliseconds. Every accessor here returns None (or the supplied
default) instead of raising, so normalizers never fail on a missing
key.

============================================================
"""

import re
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


# ============================================================
# COMMON CURRENCIES
# ============================================================

COMMON_CURRENCIES: Dict[str, str] = {
    "XBT": "BTC",
    "BCC": "BCH",
    "BCHABC": "BCH",
    "BCHSV": "BSV",
    "DRK": "DASH",
}


# ============================================================
# FIELD ACCESS
# ============================================================

def _lookup(obj: Any, key: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    if isinstance(obj, (list, tuple)) and isinstance(key, int):
        if -len(obj) <= key < len(obj):
            return obj[key]
    return None


def safe_value(obj: Any, *keys: Any, default: Any = None) -> Any:
    """
    First non-None value among the keys.

    Args:
        obj: Dict or list payload
        keys: Candidate keys (or list indices), tried in order
        default: Returned when all are missing

    Returns:
        Value or default
    """
    for key in keys:
        value = _lookup(obj, key)
        if value is not None:
            return value
    return default


def safe_string(obj: Any, *keys: Any, default: Optional[str] = None) -> Optional[str]:
    """First present value, as a string."""
    value = safe_value(obj, *keys)
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def safe_string_lower(obj: Any, *keys: Any, default: Optional[str] = None) -> Optional[str]:
    value = safe_string(obj, *keys, default=default)
    return value.lower() if value is not None else None


def safe_string_upper(obj: Any, *keys: Any, default: Optional[str] = None) -> Optional[str]:
    value = safe_string(obj, *keys, default=default)
    return value.upper() if value is not None else None


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce to Decimal.

    Booleans, empty strings, NaN and infinities become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def safe_number(obj: Any, *keys: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """First present numeric value, as Decimal."""
    for key in keys:
        number = to_decimal(_lookup(obj, key))
        if number is not None:
            return number
    return default


def safe_integer(obj: Any, *keys: Any, default: Optional[int] = None) -> Optional[int]:
    """First present numeric value, truncated to int."""
    number = safe_number(obj, *keys)
    if number is None:
        return default
    return int(number)


def safe_timestamp(obj: Any, *keys: Any, default: Optional[int] = None) -> Optional[int]:
    """First present seconds value, converted to milliseconds."""
    number = safe_number(obj, *keys)
    if number is None:
        return default
    return int(number * 1000)


def safe_currency_code(
    currency_id: Optional[str],
    common: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Canonical currency code for an exchange currency id.

    Args:
        currency_id: Exchange-native id
        common: Replacement table (default COMMON_CURRENCIES)

    Returns:
        Upper-cased, aliased code, or None
    """
    if currency_id is None:
        return None
    code = str(currency_id).upper()
    table = COMMON_CURRENCIES if common is None else common
    return table.get(code, code)


# ============================================================
# COLLECTIONS
# ============================================================

def index_by(items: Iterable[Any], key: str) -> Dict[Any, Any]:
    """Index a list of dicts (or objects) by one field; later entries win."""
    result: Dict[Any, Any] = {}
    for item in items:
        value = item.get(key) if isinstance(item, Mapping) else getattr(item, key, None)
        if value is not None:
            result[value] = item
    return result


def filter_by_symbols(items: Mapping[str, Any], symbols: Optional[Sequence[str]]) -> Dict[str, Any]:
    """Keep only the requested symbols; None keeps everything."""
    if symbols is None:
        return dict(items)
    wanted = set(symbols)
    return {symbol: value for symbol, value in items.items() if symbol in wanted}


def filter_by_since_limit(
    items: List[Any],
    since: Optional[int] = None,
    limit: Optional[int] = None,
    key: str = "timestamp",
) -> List[Any]:
    """
    Drop entries older than since, then keep the first limit.

    Works on dataclass records (attribute access) and OHLCV rows
    (index 0).
    """
    result = items
    if since is not None:
        def stamp(item: Any) -> Optional[int]:
            if isinstance(item, (list, tuple)):
                return item[0] if item else None
            if isinstance(item, Mapping):
                return item.get(key)
            return getattr(item, key, None)

        result = [item for item in result if (stamp(item) or 0) >= since]
    if limit is not None:
        result = result[:limit]
    return list(result)


# ============================================================
# TIME
# ============================================================

def milliseconds() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


def seconds() -> int:
    return int(time.time())


def iso8601(timestamp: Optional[int]) -> Optional[str]:
    """
    Format epoch milliseconds as ISO-8601 UTC.

    Returns:
        "YYYY-MM-DDTHH:MM:SS.mmmZ", or None for a missing timestamp
    """
    if timestamp is None or isinstance(timestamp, bool):
        return None
    try:
        ms = int(timestamp)
    except (TypeError, ValueError):
        return None
    moment = datetime.fromtimestamp(ms // 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{ms % 1000:03d}Z"


_ISO_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(Z|[+-]\d{2}:?\d{2})?$"
)


def parse8601(text: Optional[str]) -> Optional[int]:
    """
    Parse an ISO-8601 string to epoch milliseconds.

    A missing zone is read as UTC. Unparseable input returns None.
    """
    if not isinstance(text, str):
        return None
    match = _ISO_PATTERN.match(text.strip())
    if not match:
        return None
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    moment = datetime(
        int(year), int(month), int(day),
        int(hour), int(minute), int(second),
        tzinfo=timezone.utc,
    )
    ms = int(moment.timestamp()) * 1000
    if fraction:
        ms += int((fraction + "00")[:3])
    if zone and zone != "Z":
        sign = 1 if zone[0] == "+" else -1
        digits = zone[1:].replace(":", "")
        offset_minutes = int(digits[:2]) * 60 + int(digits[2:])
        ms -= sign * offset_minutes * 60 * 1000
    return ms


# ============================================================
# NUMBERS
# ============================================================

def parse_percent_string(value: Any) -> Optional[Decimal]:
    """
    Parse "-2.48%" into the fraction -0.0248.

    Strings without a percent sign are read as a fraction already.
    """
    if value is None:
        return None
    text = str(value).strip()
    if text.endswith("%"):
        number = to_decimal(text[:-1])
        return None if number is None else number / 100
    return to_decimal(text)


def leading_number(value: Any) -> Optional[Decimal]:
    """Numeric part of "286.231 BTC" style strings."""
    if value is None:
        return None
    parts = str(value).strip().split(" ")
    return to_decimal(parts[0]) if parts else None
