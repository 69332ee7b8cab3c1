"""
Price sources for the relay.

Each source is bound to one trading pair and produces one Observation per
fetch() call, or raises a SourceError describing why it could not.

Usage:
    from relay.src.sources import get_source, get_available_sources

    # Get list of available sources
    available = get_available_sources()
    # ['binance', 'jupiter', 'mock', 'pyth']

    # Create a source instance from a feed config entry
    source = get_source(feed_config)
    observation = await source.fetch()
"""

# Import base classes and utilities
from .base import (
    SOURCE_REGISTRY,
    BaseSource,
    ErrorKind,
    SourceError,
    SourceHTTPError,
    SourceParseError,
    SourceTransportError,
    SourceUnsupportedError,
    SourceValidationError,
    get_available_sources,
    get_source,
    register_source,
)

# Import all source implementations to trigger registration
from .binance import BinanceSource
from .jupiter import JupiterSource
from .mock import MockSource
from .pyth import PythSource

__all__ = [
    # Base classes
    "BaseSource",
    "ErrorKind",
    "SourceError",
    "SourceHTTPError",
    "SourceParseError",
    "SourceTransportError",
    "SourceUnsupportedError",
    "SourceValidationError",
    # Registry functions
    "register_source",
    "get_source",
    "get_available_sources",
    "SOURCE_REGISTRY",
    # Source implementations
    "BinanceSource",
    "JupiterSource",
    "MockSource",
    "PythSource",
]
