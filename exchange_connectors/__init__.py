"""
Exchange Connectors Package.

============================================================
PURPOSE
============================================================
Uniform REST access to cryptocurrency exchanges.

Every connector translates one exchange's API into the same
records: Market, Ticker, OrderBook, Trade, Order, Balances.

============================================================
MODULES
============================================================
- types: Canonical records and enums
- config: Connector configuration (.env aware)
- adapters: Per-exchange connectors plus the shared runtime
  (transport, signing, errors, logging, metrics, factory)
============================================================
"""

from .types import (
    Balance,
    Balances,
    Fee,
    Market,
    MarketLimits,
    MarketPrecision,
    MarketType,
    MinMax,
    OHLCV,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    PrecisionMode,
    TakerOrMaker,
    Ticker,
    Trade,
    TradingFees,
)
from .config import ConnectorConfig, TimeoutConfig


__all__ = [
    "Balance",
    "Balances",
    "Fee",
    "Market",
    "MarketLimits",
    "MarketPrecision",
    "MarketType",
    "MinMax",
    "OHLCV",
    "Order",
    "OrderBook",
    "OrderSide",
    "OrderStatus",
    "PrecisionMode",
    "TakerOrMaker",
    "Ticker",
    "Trade",
    "TradingFees",
    "ConnectorConfig",
    "TimeoutConfig",
]
