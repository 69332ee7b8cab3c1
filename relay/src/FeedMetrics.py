"""FeedMetrics: Prometheus recorder for fetch success/failure events.

Schedulers report every fetch outcome through the MetricsRecorder interface.
FeedMetrics keeps the counters in its own CollectorRegistry so several
instances (e.g., one per test) never collide on metric names.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from .sources.base import ErrorKind

logger = logging.getLogger(__name__)


class MetricsRecorder(ABC):
    """Sink for per-fetch outcome events."""

    @abstractmethod
    def record_success(self, source: str, pair: str, price: Decimal) -> None:
        """Record a successful fetch.

        :param source: Source identifier.
        :param pair: Canonical pair string.
        :param price: Fetched price.
        """

    @abstractmethod
    def record_failure(self, source: str, pair: str, kind: ErrorKind) -> None:
        """Record a failed fetch.

        :param source: Source identifier.
        :param pair: Canonical pair string.
        :param kind: Failure category.
        """


class FeedMetrics(MetricsRecorder):
    """Prometheus-backed metrics for feeds and the HTTP API.

    :ivar registry: Registry holding this instance's collectors.
    """

    CONTENT_TYPE = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize collectors.

        :param registry: Registry to register into (default: a fresh one).
        """
        self.registry = registry or CollectorRegistry()

        self.fetch_total = Counter(
            "price_fetch_total",
            "Total number of price fetch attempts",
            ["source", "pair", "result"],
            registry=self.registry,
        )
        self.fetch_errors = Counter(
            "price_fetch_errors_total",
            "Total number of failed price fetches",
            ["source", "pair", "error_type"],
            registry=self.registry,
        )
        self.last_fetch_timestamp = Gauge(
            "price_last_fetch_timestamp",
            "Unix timestamp of last successful fetch",
            ["source", "pair"],
            registry=self.registry,
        )
        # Export only; the store keeps the exact Decimal
        self.current_price = Gauge(
            "price_current_value",
            "Current price value",
            ["source", "pair"],
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests",
            "Total HTTP requests",
            registry=self.registry,
        )

    def record_success(self, source: str, pair: str, price: Decimal) -> None:
        self.fetch_total.labels(source, pair, "success").inc()
        self.last_fetch_timestamp.labels(source, pair).set(time.time())
        self.current_price.labels(source, pair).set(float(price))

    def record_failure(self, source: str, pair: str, kind: ErrorKind) -> None:
        self.fetch_total.labels(source, pair, "error").inc()
        self.fetch_errors.labels(source, pair, ErrorKind(kind).value).inc()

    def record_http_request(self, endpoint: str) -> None:
        """Count one API request.

        :param endpoint: Requested path (logged at DEBUG only).
        """
        logger.debug(f"HTTP request {endpoint}")
        self.http_requests.inc()

    def encode(self) -> bytes:
        """Render all collectors in Prometheus text exposition format."""
        return generate_latest(self.registry)
