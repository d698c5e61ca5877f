"""
Exchange Connector Factory.

============================================================
PURPOSE
============================================================
Factory pattern for creating exchange connector instances.

FEATURES:
- Centralized connector creation
- Configuration injection
- Environment-based defaults (.env aware)
- Connector registry for extension

============================================================
USAGE
============================================================
```python
# Create connector by exchange ID (credentials from environment)
connector = ConnectorFactory.create("coinbene")

# Create with explicit config
config = ConnectorConfig(api_key="...", secret="...")
connector = ConnectorFactory.create("gateiofu", config=config)

# Create several connectors
connectors = ConnectorFactory.create_all(["58coin", "tradeogre", "bcio"])
```

============================================================
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Type

from exchange_connectors.config import ConnectorConfig
from exchange_connectors.adapters.base import ExchangeAdapter
from exchange_connectors.adapters.bcio import BcioAdapter
from exchange_connectors.adapters.bitclude import BitcludeAdapter
from exchange_connectors.adapters.bitforexfu import BitforexFuturesAdapter
from exchange_connectors.adapters.bitzfu import BitzFuturesAdapter
from exchange_connectors.adapters.coin58 import Coin58Adapter
from exchange_connectors.adapters.coinbene import CoinbeneAdapter
from exchange_connectors.adapters.coinsuper import CoinSuperAdapter
from exchange_connectors.adapters.felixo import FelixoAdapter
from exchange_connectors.adapters.gateiofu import GateioFuturesAdapter
from exchange_connectors.adapters.primexbt import PrimeXBTAdapter
from exchange_connectors.adapters.tradeogre import TradeOgreAdapter
from exchange_connectors.adapters.transport import HttpTransport


logger = logging.getLogger(__name__)


# ============================================================
# EXCHANGE IDENTIFIERS
# ============================================================

class ExchangeId(Enum):
    """Supported exchange identifiers."""

    COIN58 = "58coin"
    TRADEOGRE = "tradeogre"
    PRIMEXBT = "primexbt"
    BITCLUDE = "bitclude"
    FELIXO = "felixo"
    COINSUPER = "coinsuper"
    GATEIOFU = "gateiofu"
    BITFOREXFU = "bitforexfu"
    COINBENE = "coinbene"
    BITZFU = "bitzfu"
    BCIO = "bcio"


BUILTIN_CONNECTORS: Dict[str, Type[ExchangeAdapter]] = {
    ExchangeId.COIN58.value: Coin58Adapter,
    ExchangeId.TRADEOGRE.value: TradeOgreAdapter,
    ExchangeId.PRIMEXBT.value: PrimeXBTAdapter,
    ExchangeId.BITCLUDE.value: BitcludeAdapter,
    ExchangeId.FELIXO.value: FelixoAdapter,
    ExchangeId.COINSUPER.value: CoinSuperAdapter,
    ExchangeId.GATEIOFU.value: GateioFuturesAdapter,
    ExchangeId.BITFOREXFU.value: BitforexFuturesAdapter,
    ExchangeId.COINBENE.value: CoinbeneAdapter,
    ExchangeId.BITZFU.value: BitzFuturesAdapter,
    ExchangeId.BCIO.value: BcioAdapter,
}


# ============================================================
# CONNECTOR FACTORY
# ============================================================

class ConnectorFactory:
    """
    Factory for creating exchange connectors.

    Provides centralized connector creation with configuration
    injection and extension support.
    """

    # Registry of connector classes
    _registry: Dict[str, Type[ExchangeAdapter]] = {}

    # Custom creation functions
    _creators: Dict[str, Callable[[ConnectorConfig], ExchangeAdapter]] = {}

    @classmethod
    def register(
        cls,
        exchange_id: str,
        connector_class: Optional[Type[ExchangeAdapter]] = None,
        creator: Optional[Callable[[ConnectorConfig], ExchangeAdapter]] = None,
    ) -> None:
        """
        Register a connector class or creator.

        Registered entries take precedence over the built-in connectors.

        Args:
            exchange_id: Exchange identifier
            connector_class: Connector class to register
            creator: Custom creator function
        """
        exchange_id = exchange_id.lower()

        if connector_class:
            cls._registry[exchange_id] = connector_class
        if creator:
            cls._creators[exchange_id] = creator

    @classmethod
    def unregister(cls, exchange_id: str) -> None:
        """Unregister a connector."""
        exchange_id = exchange_id.lower()
        cls._registry.pop(exchange_id, None)
        cls._creators.pop(exchange_id, None)

    @classmethod
    def create(
        cls,
        exchange_id: str,
        config: Optional[ConnectorConfig] = None,
        transport: Optional[HttpTransport] = None,
        **options,
    ) -> ExchangeAdapter:
        """
        Create an exchange connector.

        Args:
            exchange_id: Exchange identifier
            config: Connector configuration (default: from environment)
            transport: HTTP transport override
            **options: Config attributes or connector option overrides

        Returns:
            ExchangeAdapter instance

        Raises:
            ValueError: If exchange not supported
        """
        exchange_id = exchange_id.lower()

        if config is None:
            config = ConnectorConfig.from_env(exchange_id)

        # Merge kwargs into config
        for key, value in options.items():
            if hasattr(config, key) and key != "options":
                setattr(config, key, value)
            else:
                config.options[key] = value

        # Check for custom creator
        if exchange_id in cls._creators:
            return cls._creators[exchange_id](config)

        connector_class = cls._registry.get(exchange_id) or BUILTIN_CONNECTORS.get(exchange_id)
        if connector_class is None:
            raise ValueError(f"Unsupported exchange: {exchange_id}")

        logger.debug(f"Creating connector {connector_class.__name__} for {exchange_id}")
        return connector_class(config, transport)

    @classmethod
    def create_all(
        cls,
        exchange_ids: List[str],
        config_map: Optional[Dict[str, ConnectorConfig]] = None,
        **common_options,
    ) -> Dict[str, ExchangeAdapter]:
        """
        Create multiple connectors.

        Failures are logged and skipped.

        Args:
            exchange_ids: List of exchange identifiers
            config_map: Optional config per exchange
            **common_options: Common overrides for all connectors

        Returns:
            Dict of exchange_id -> connector
        """
        config_map = config_map or {}
        connectors = {}

        for exchange_id in exchange_ids:
            try:
                connectors[exchange_id] = cls.create(
                    exchange_id,
                    config=config_map.get(exchange_id),
                    **common_options,
                )
            except ValueError as e:
                logger.error(f"Failed to create connector for {exchange_id}: {e}")

        return connectors

    @classmethod
    def list_supported(cls) -> List[str]:
        """List supported exchanges, built-in and registered."""
        return sorted(set(BUILTIN_CONNECTORS) | set(cls._registry) | set(cls._creators))


# ============================================================
# CONNECTOR POOL
# ============================================================

class ConnectorPool:
    """
    Pool of exchange connectors.

    Manages lifecycle of multiple connectors.
    """

    def __init__(self):
        """Initialize pool."""
        self._connectors: Dict[str, ExchangeAdapter] = {}
        self._connected: Dict[str, bool] = {}

    async def add(
        self,
        exchange_id: str,
        connector: Optional[ExchangeAdapter] = None,
        config: Optional[ConnectorConfig] = None,
        auto_connect: bool = True,
    ) -> ExchangeAdapter:
        """
        Add connector to pool.

        Args:
            exchange_id: Exchange identifier
            connector: Existing connector (or create new)
            config: Config for new connector
            auto_connect: Connect automatically

        Returns:
            Connector instance
        """
        if connector is None:
            connector = ConnectorFactory.create(exchange_id, config)

        self._connectors[exchange_id] = connector
        self._connected[exchange_id] = False

        if auto_connect:
            await self.connect(exchange_id)

        return connector

    async def remove(self, exchange_id: str) -> None:
        """Remove connector from pool, disconnecting it first."""
        if exchange_id in self._connectors:
            connector = self._connectors[exchange_id]
            if self._connected.get(exchange_id):
                await connector.disconnect()
            del self._connectors[exchange_id]
            del self._connected[exchange_id]

    def get(self, exchange_id: str) -> Optional[ExchangeAdapter]:
        return self._connectors.get(exchange_id)

    def __getitem__(self, exchange_id: str) -> ExchangeAdapter:
        if exchange_id not in self._connectors:
            raise KeyError(f"Connector not found: {exchange_id}")
        return self._connectors[exchange_id]

    def __contains__(self, exchange_id: str) -> bool:
        return exchange_id in self._connectors

    async def connect(self, exchange_id: Optional[str] = None) -> None:
        """
        Connect connector(s).

        Args:
            exchange_id: Specific exchange or all if None
        """
        targets = [exchange_id] if exchange_id else list(self._connectors)
        for eid in targets:
            connector = self._connectors.get(eid)
            if connector and not self._connected.get(eid):
                await connector.connect()
                self._connected[eid] = True

    async def disconnect(self, exchange_id: Optional[str] = None) -> None:
        """
        Disconnect connector(s).

        Args:
            exchange_id: Specific exchange or all if None
        """
        targets = [exchange_id] if exchange_id else list(self._connectors)
        for eid in targets:
            connector = self._connectors.get(eid)
            if connector and self._connected.get(eid):
                await connector.disconnect()
                self._connected[eid] = False

    async def disconnect_all(self) -> None:
        await self.disconnect()

    def list_exchanges(self) -> List[str]:
        return list(self._connectors.keys())

    def list_connected(self) -> List[str]:
        return [eid for eid, connected in self._connected.items() if connected]

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect_all()


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def create_connector(exchange_id: str, **kwargs) -> ExchangeAdapter:
    """
    Create exchange connector.

    Convenience wrapper for ConnectorFactory.create().
    """
    return ConnectorFactory.create(exchange_id, **kwargs)


async def create_connected_connector(exchange_id: str, **kwargs) -> ExchangeAdapter:
    """
    Create and connect exchange connector.

    Args:
        exchange_id: Exchange identifier
        **kwargs: Additional arguments for ConnectorFactory.create()

    Returns:
        Connected ExchangeAdapter instance
    """
    connector = ConnectorFactory.create(exchange_id, **kwargs)
    await connector.connect()
    return connector
