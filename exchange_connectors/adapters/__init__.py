"""
Exchange Connectors - Adapters Package.

============================================================
PURPOSE
============================================================
Exchange connector implementations.

AVAILABLE CONNECTORS:
- Coin58Adapter: 58coin spot
- TradeOgreAdapter: TradeOgre spot
- PrimeXBTAdapter: PrimeXBT margin futures
- BitcludeAdapter: BitClude spot
- FelixoAdapter: Felixo spot (market data)
- CoinSuperAdapter: CoinSuper spot
- GateioFuturesAdapter: Gate.io futures/perpetuals
- BitforexFuturesAdapter: Bitforex perpetual swaps (market data)
- CoinbeneAdapter: CoinBene spot
- BitzFuturesAdapter: Bit-Z contracts
- BcioAdapter: Blockchain.io spot

UTILITIES:
- ConnectorFactory: Factory for creating connectors
- ConnectorPool: Manage multiple connectors
- ConnectorMetrics: Metrics collection
- ConnectorLogger: Secure logging

ERROR HANDLING:
- ExchangeError / NetworkError hierarchies
- ErrorCategory: Standardized error categories
- ErrorMapper: Exact/broad code and message tables

============================================================
"""

# Base
from .base import ExchangeAdapter, order_action, parse_timeframe

# Connectors
from .coin58 import Coin58Adapter
from .tradeogre import TradeOgreAdapter
from .primexbt import PrimeXBTAdapter
from .bitclude import BitcludeAdapter
from .felixo import FelixoAdapter
from .coinsuper import CoinSuperAdapter
from .gateiofu import GateioFuturesAdapter
from .bitforexfu import BitforexFuturesAdapter
from .coinbene import CoinbeneAdapter
from .bitz import BitzProtocol
from .bitzfu import BitzFuturesAdapter
from .bcio import BcioAdapter

# Factory
from .factory import (
    ConnectorFactory,
    ConnectorPool,
    ExchangeId,
    create_connector,
    create_connected_connector,
)

# Errors
from .errors import (
    BaseError,
    ExchangeError,
    AuthenticationError,
    PermissionDenied,
    ArgumentsRequired,
    BadRequest,
    BadSymbol,
    InsufficientFunds,
    InvalidAddress,
    AddressPending,
    InvalidOrder,
    OrderNotFound,
    NotSupported,
    InvalidNonce,
    NetworkError,
    DDoSProtection,
    ExchangeNotAvailable,
    OnMaintenance,
    RequestTimeout,
    ErrorCategory,
    RetryEligibility,
    ErrorMapper,
    create_network_error,
    create_timeout_error,
)

# Metrics
from .metrics import (
    ConnectorMetrics,
    MetricsAggregator,
    MetricType,
    get_global_aggregator,
)

# Logging
from .logging_utils import (
    ConnectorLogger,
    mask_headers,
    mask_params,
    mask_value,
)

# Transport and signing
from .transport import HttpResponse, HttpTransport
from .signing import SignedRequest
from .endpoints import Endpoint


__all__ = [
    # Base
    "ExchangeAdapter",
    "order_action",
    "parse_timeframe",
    # Connectors
    "Coin58Adapter",
    "TradeOgreAdapter",
    "PrimeXBTAdapter",
    "BitcludeAdapter",
    "FelixoAdapter",
    "CoinSuperAdapter",
    "GateioFuturesAdapter",
    "BitforexFuturesAdapter",
    "CoinbeneAdapter",
    "BitzProtocol",
    "BitzFuturesAdapter",
    "BcioAdapter",
    # Factory
    "ConnectorFactory",
    "ConnectorPool",
    "ExchangeId",
    "create_connector",
    "create_connected_connector",
    # Errors
    "BaseError",
    "ExchangeError",
    "AuthenticationError",
    "PermissionDenied",
    "ArgumentsRequired",
    "BadRequest",
    "BadSymbol",
    "InsufficientFunds",
    "InvalidAddress",
    "AddressPending",
    "InvalidOrder",
    "OrderNotFound",
    "NotSupported",
    "InvalidNonce",
    "NetworkError",
    "DDoSProtection",
    "ExchangeNotAvailable",
    "OnMaintenance",
    "RequestTimeout",
    "ErrorCategory",
    "RetryEligibility",
    "ErrorMapper",
    "create_network_error",
    "create_timeout_error",
    # Metrics
    "ConnectorMetrics",
    "MetricsAggregator",
    "MetricType",
    "get_global_aggregator",
    # Logging
    "ConnectorLogger",
    "mask_headers",
    "mask_params",
    "mask_value",
    # Transport
    "HttpResponse",
    "HttpTransport",
    "SignedRequest",
    "Endpoint",
]
