"""FeedScheduler: Independent polling loop for a single price source.

Each enabled feed gets its own scheduler running as its own asyncio task:

    Idle -> Waiting-for-tick -> Fetching -> (Success | Failure) -> Waiting-for-tick -> ...

The first tick fires immediately. After every fetch, success or failure, the
scheduler waits ``interval_ms`` before the next one, so a slow source only
stretches its own polling period. There is no retry and no backoff: a
failing source simply stops contributing fresh entries and the store's
freshness filter takes it out of selection.

Call stop() to end the loop; the wait between ticks is interrupted right
away, a fetch already in flight is left to finish.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .sources.base import SourceError

if TYPE_CHECKING:
    from .FeedMetrics import MetricsRecorder
    from .PriceStore import PriceStore
    from .sources.base import BaseSource

logger = logging.getLogger(__name__)


class FeedScheduler:
    """Polls one source and pushes its observations into the price store.

    :ivar source: Source being polled.
    :ivar interval_ms: Delay between fetches in milliseconds.
    :ivar store: Shared price store.
    :ivar metrics: Recorder for fetch outcomes.
    :ivar ticks: Number of completed fetch attempts.
    """

    def __init__(
        self,
        source: BaseSource,
        interval_ms: int,
        store: PriceStore,
        metrics: MetricsRecorder,
    ) -> None:
        """Initialize the scheduler.

        :param source: Source to poll.
        :param interval_ms: Delay between the end of one fetch and the next.
        :param store: Price store receiving successful observations.
        :param metrics: Recorder receiving success/failure events.
        """
        self.source = source
        self.interval_ms = interval_ms
        self.store = store
        self.metrics = metrics
        self.ticks = 0
        self._stop_event = asyncio.Event()

    @property
    def interval(self) -> float:
        """Polling interval in seconds."""
        return self.interval_ms / 1000

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Signal the polling loop to exit."""
        self._stop_event.set()

    async def tick(self) -> bool:
        """Run one fetch and record its outcome.

        :returns: True if the fetch succeeded and the store was updated.
        """
        name = self.source.name
        pair = self.source.pair_name
        self.ticks += 1

        try:
            observation = await self.source.fetch()
        except SourceError as e:
            logger.warning(f"[{name}] Failed to fetch {pair} ({e.kind.value}): {e}")
            self.metrics.record_failure(name, pair, e.kind)
            return False
        except Exception:
            logger.exception(f"[{name}] Unexpected error fetching {pair}")
            return False

        logger.info(f"[{name}] {pair}: {observation.price}")
        self.store.update(observation, self.source.priority)
        self.metrics.record_success(name, pair, observation.price)
        return True

    async def run(self) -> None:
        """Poll the source until stop() is called."""
        logger.info(
            f"[{self.source.name}] Starting scheduler for {self.source.pair_name} "
            f"(interval={self.interval_ms}ms, priority={self.source.priority})"
        )

        while not self._stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info(
            f"[{self.source.name}] Scheduler for {self.source.pair_name} stopped "
            f"after {self.ticks} ticks"
        )
