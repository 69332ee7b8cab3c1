"""RateRelay: Main orchestrator for the price relay service.

This module builds one source and one FeedScheduler per enabled feed, runs
the schedulers as independent asyncio tasks writing into a shared
PriceStore, and serves the HTTP API that reads from it.

Architecture:
    - Sources are created through the registry; unknown feed types are
      skipped with a warning instead of aborting startup
    - Each source's configured priority is registered with the store so
      fallback detection compares against the per-pair minimum
    - Schedulers never block each other; the store's lock is the only
      synchronization point
    - Shutdown signals every scheduler, waits a grace period, then cancels
      whatever is still fetching
"""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from .api import create_app
from .FeedMetrics import FeedMetrics
from .FeedScheduler import FeedScheduler
from .PriceStore import PriceStore
from .RelayConfig import RelayConfig
from .sources import BaseSource, SourceUnsupportedError, get_source

logger = logging.getLogger(__name__)


class RateRelay:
    """Wires configuration, sources, schedulers, store and HTTP API.

    :ivar config: Relay configuration.
    :ivar store: Shared price store.
    :ivar metrics: Metrics recorder shared by all schedulers.
    :ivar schedulers: One scheduler per successfully created source.
    """

    SHUTDOWN_GRACE_SECONDS = 5.0

    def __init__(
        self,
        config: RelayConfig,
        api_keys: dict[str, str] | None = None,
        metrics: FeedMetrics | None = None,
    ) -> None:
        """Initialize the relay.

        :param config: Loaded configuration.
        :param api_keys: Dict mapping source names to API keys.
        :param metrics: Metrics shared by schedulers and the API (default: new instance).
        """
        self.config = config
        self.api_keys = api_keys or {}
        self.store = PriceStore(config.server.staleness_threshold_secs)
        self.metrics = metrics or FeedMetrics()
        self.schedulers: list[FeedScheduler] = []
        self._tasks: list[asyncio.Task] = []

        enabled = config.enabled_feeds
        if not enabled:
            logger.warning("No feeds enabled in configuration")

        for feed in enabled:
            try:
                source = get_source(feed, api_key=self.api_keys.get(feed.feed_type))
            except SourceUnsupportedError as e:
                logger.warning(f"[{feed.feed_type}] Failed to create feed, skipping: {e}")
                continue

            self.store.register_source(source.pair_name, source.priority)
            self.schedulers.append(
                FeedScheduler(source, feed.interval_ms, self.store, self.metrics)
            )

        logger.info(
            f"RateRelay initialized: "
            f"feeds={[f'{s.source.name}:{s.source.pair_name}' for s in self.schedulers]}, "
            f"staleness_threshold={config.server.staleness_threshold_secs}s"
        )

    @property
    def sources(self) -> list[BaseSource]:
        return [s.source for s in self.schedulers]

    def start(self) -> list[asyncio.Task]:
        """Spawn one task per scheduler on the running loop.

        :returns: The scheduler tasks.
        """
        for scheduler in self.schedulers:
            task = asyncio.create_task(
                scheduler.run(),
                name=f"feed-{scheduler.source.name}-{scheduler.source.pair_name}",
            )
            self._tasks.append(task)
            logger.info(
                f"[{scheduler.source.name}] Feed scheduler started for "
                f"{scheduler.source.pair_name}"
            )
        return list(self._tasks)

    async def stop(self) -> None:
        """Stop all schedulers and wait for their tasks to finish."""
        for scheduler in self.schedulers:
            scheduler.stop()

        if not self._tasks:
            return

        done, pending = await asyncio.wait(
            self._tasks, timeout=self.SHUTDOWN_GRACE_SECONDS
        )
        for task in pending:
            logger.warning(f"{task.get_name()} did not stop in time, cancelling")
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info(f"Stopped {len(done) + len(pending)} feed schedulers")

    async def run(self) -> None:
        """Run schedulers and the HTTP API until the server exits."""
        app = create_app(self.store, self.metrics)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host="0.0.0.0",
                port=self.config.server.port,
                log_config=None,
            )
        )

        self.start()
        logger.info(f"HTTP server listening on 0.0.0.0:{self.config.server.port}")
        try:
            await server.serve()
        finally:
            await self.stop()
            # Clean up shared HTTP client
            await BaseSource.close_shared_client()
