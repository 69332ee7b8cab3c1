"""RelayConfig: Typed settings for the server and each configured feed.

Settings are read from a TOML file:

.. code-block:: toml

    [server]
    port = 8080
    staleness_threshold_secs = 30

    [[feeds]]
    type = "jupiter"
    base_token = "SOL"
    quote_token = "USDC"
    interval_ms = 1500
    priority = 1
    enabled = true

Every key except a feed's ``type``, ``base_token`` and ``quote_token`` has a
default. Unknown feed types are not rejected here; the source factory skips
them at startup.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .TradingPair import TradingPair

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_STALENESS_THRESHOLD_SECS = 30
DEFAULT_INTERVAL_MS = 1500
MIN_INTERVAL_MS = 250
DEFAULT_PRIORITY = 100


class ConfigError(ValueError):
    """Raised when the configuration file is missing or malformed."""

    pass


@dataclass
class ServerConfig:
    """HTTP server and read-side settings.

    :ivar port: Port for the HTTP API.
    :ivar staleness_threshold_secs: Maximum age of a usable observation.
    """

    port: int = DEFAULT_PORT
    staleness_threshold_secs: float = DEFAULT_STALENESS_THRESHOLD_SECS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerConfig:
        port = _get_int(data, "port", DEFAULT_PORT, "server")
        if not 0 < port < 65536:
            raise ConfigError(f"server.port must be in 1..65535, got {port}")

        threshold = data.get("staleness_threshold_secs", DEFAULT_STALENESS_THRESHOLD_SECS)
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ConfigError(
                f"server.staleness_threshold_secs must be a number, got {threshold!r}"
            )
        if threshold <= 0:
            raise ConfigError("server.staleness_threshold_secs must be positive")

        return cls(port=port, staleness_threshold_secs=threshold)


@dataclass
class FeedConfig:
    """Settings for one polled source.

    :ivar feed_type: Registered source name (e.g., "jupiter").
    :ivar base_token: Base token symbol.
    :ivar quote_token: Quote token symbol.
    :ivar interval_ms: Delay between the end of one fetch and the next.
    :ivar priority: Preference rank, lower is preferred.
    :ivar enabled: Whether a scheduler is started for this feed.
    """

    feed_type: str
    base_token: str
    quote_token: str
    interval_ms: int = DEFAULT_INTERVAL_MS
    priority: int = DEFAULT_PRIORITY
    enabled: bool = True

    @property
    def pair(self) -> TradingPair:
        """Trading pair this feed is bound to."""
        return TradingPair(self.base_token, self.quote_token)

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> FeedConfig:
        """Build a feed config from one ``[[feeds]]`` table.

        Intervals below MIN_INTERVAL_MS are raised to it with a warning.

        :param data: Raw TOML table.
        :param index: Position in the feeds array (for error messages).
        :returns: New FeedConfig.
        :raises ConfigError: If a required key is missing or a value is invalid.
        """
        where = f"feeds[{index}]"
        for key in ("type", "base_token", "quote_token"):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{where}.{key} is required and must be a string")

        interval_ms = _get_int(data, "interval_ms", DEFAULT_INTERVAL_MS, where)
        if interval_ms < MIN_INTERVAL_MS:
            logger.warning(
                f"{where}: interval_ms={interval_ms} below minimum, "
                f"using {MIN_INTERVAL_MS}"
            )
            interval_ms = MIN_INTERVAL_MS

        priority = _get_int(data, "priority", DEFAULT_PRIORITY, where)
        if priority < 0:
            raise ConfigError(f"{where}.priority must be non-negative")

        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ConfigError(f"{where}.enabled must be a boolean")

        try:
            TradingPair(data["base_token"], data["quote_token"])
        except ValueError as e:
            raise ConfigError(f"{where}: {e}") from e

        return cls(
            feed_type=data["type"].strip().lower(),
            base_token=data["base_token"].strip().upper(),
            quote_token=data["quote_token"].strip().upper(),
            interval_ms=interval_ms,
            priority=priority,
            enabled=enabled,
        )


@dataclass
class RelayConfig:
    """Complete relay configuration.

    :ivar server: Server settings.
    :ivar feeds: All configured feeds, enabled or not.
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    feeds: list[FeedConfig] = field(default_factory=list)

    @property
    def enabled_feeds(self) -> list[FeedConfig]:
        return [f for f in self.feeds if f.enabled]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RelayConfig:
        """Build a configuration from parsed TOML data.

        :param data: Parsed TOML document.
        :returns: New RelayConfig.
        :raises ConfigError: If the document is malformed.
        """
        server_data = data.get("server", {})
        if not isinstance(server_data, dict):
            raise ConfigError("[server] must be a table")

        feeds_data = data.get("feeds", [])
        if not isinstance(feeds_data, list):
            raise ConfigError("feeds must be an array of tables ([[feeds]])")

        feeds = []
        for i, feed_data in enumerate(feeds_data):
            if not isinstance(feed_data, dict):
                raise ConfigError(f"feeds[{i}] must be a table")
            feeds.append(FeedConfig.from_dict(feed_data, index=i))

        return cls(server=ServerConfig.from_dict(server_data), feeds=feeds)

    @classmethod
    def load(cls, path: str | Path) -> RelayConfig:
        """Load configuration from a TOML file.

        :param path: Path to the TOML file.
        :returns: New RelayConfig.
        :raises ConfigError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        return cls.from_dict(data)


def _get_int(data: dict[str, Any], key: str, default: int, where: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where}.{key} must be an integer, got {value!r}")
    return value
