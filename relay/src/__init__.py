"""
Rate Relay - Prioritized Multi-Source Price Relay

This module provides the concurrent aggregation core and its wiring:
- TradingPair: BASE/QUOTE instrument identifier
- Observation: Single exact-decimal price reading
- PriceStore: Latest entry per (pair, source) with best-price selection
- FeedScheduler: Independent polling loop per source
- FeedMetrics: Prometheus recorder for fetch outcomes
- RelayConfig: Typed server and feed settings
- RateRelay: Orchestrator running schedulers and the HTTP API
- sources: Pluggable price source implementations
"""

from .FeedMetrics import FeedMetrics, MetricsRecorder
from .FeedScheduler import FeedScheduler
from .freshness import is_fresh
from .Observation import Observation
from .PriceStore import BestPrice, Entry, PriceStore
from .RateRelay import RateRelay
from .RelayConfig import ConfigError, FeedConfig, RelayConfig, ServerConfig
from .TradingPair import TradingPair

__all__ = [
    "BestPrice",
    "ConfigError",
    "Entry",
    "FeedConfig",
    "FeedMetrics",
    "FeedScheduler",
    "MetricsRecorder",
    "Observation",
    "PriceStore",
    "RateRelay",
    "RelayConfig",
    "ServerConfig",
    "TradingPair",
    "is_fresh",
]
