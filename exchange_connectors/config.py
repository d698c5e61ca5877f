"""
Exchange Connectors - Configuration.

============================================================
PURPOSE
============================================================
All configuration for exchange connectors.

SOURCES:
- Explicit dataclass construction
- Environment variables (optionally from a .env file)

ENVIRONMENT VARIABLES:
    <PREFIX>_API_KEY
    <PREFIX>_API_SECRET
    <PREFIX>_UID
    <PREFIX>_PASSWORD

where <PREFIX> is the connector's env prefix (e.g. COINBENE, COIN58).

============================================================
"""

import os
import re
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

import aiohttp
from dotenv import load_dotenv


# ============================================================
# TIMEOUT CONFIGURATION
# ============================================================

@dataclass
class TimeoutConfig:
    """
    Timeout configuration for HTTP requests.
    """

    connection_timeout_seconds: float = 5.0
    """Connection timeout."""

    read_timeout_seconds: float = 30.0
    """Read timeout for a single request."""

    @property
    def total_seconds(self) -> float:
        """Upper bound for a whole request."""
        return self.connection_timeout_seconds + self.read_timeout_seconds

    def to_client_timeout(self) -> aiohttp.ClientTimeout:
        """Build the aiohttp timeout object."""
        return aiohttp.ClientTimeout(
            total=self.total_seconds,
            connect=self.connection_timeout_seconds,
            sock_read=self.read_timeout_seconds,
        )


# ============================================================
# CONNECTOR CONFIGURATION
# ============================================================

@dataclass
class ConnectorConfig:
    """
    Configuration for a single exchange connector.

    Credentials are only needed for private endpoints.
    """

    # Credentials
    api_key: Optional[str] = None
    """API key."""

    secret: Optional[str] = None
    """API secret."""

    uid: Optional[str] = None
    """Numeric user id (some exchanges)."""

    password: Optional[str] = None
    """Trading password / passphrase (some exchanges)."""

    # Connection
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    """Request timeouts."""

    hostname: Optional[str] = None
    """Override for exchanges with templated hostnames."""

    user_agent: Optional[str] = None
    """User-Agent header sent with every request."""

    # Clock
    time_difference_ms: int = 0
    """Local clock minus server clock, as returned by calibrate_clock()."""

    # Exchange-specific options
    options: Dict[str, Any] = field(default_factory=dict)
    """Overrides for the connector's default options."""

    @classmethod
    def from_env(
        cls,
        exchange_id: str,
        env_prefix: Optional[str] = None,
        dotenv_path: Optional[str] = None,
    ) -> "ConnectorConfig":
        """
        Create config from environment variables.

        Args:
            exchange_id: Exchange identifier
            env_prefix: Variable prefix (default: derived from exchange_id)
            dotenv_path: Explicit .env file (default: search upwards)

        Returns:
            ConnectorConfig
        """
        load_dotenv(dotenv_path=dotenv_path, override=False)

        prefix = env_prefix or env_prefix_for(exchange_id)

        return cls(
            api_key=os.environ.get(f"{prefix}_API_KEY"),
            secret=os.environ.get(f"{prefix}_API_SECRET"),
            uid=os.environ.get(f"{prefix}_UID"),
            password=os.environ.get(f"{prefix}_PASSWORD"),
        )

    def has_credentials(self) -> bool:
        """Check if key and secret are both present."""
        return bool(self.api_key) and bool(self.secret)


def env_prefix_for(exchange_id: str) -> str:
    """
    Derive an environment variable prefix from an exchange id.

    Non-alphanumerics are dropped and a leading digit block moves
    to the end, so "58coin" becomes "COIN58".
    """
    cleaned = re.sub(r"[^A-Za-z0-9]", "", exchange_id).upper()
    match = re.match(r"^(\d+)(.*)$", cleaned)
    if match and match.group(2):
        return f"{match.group(2)}{match.group(1)}"
    return cleaned
