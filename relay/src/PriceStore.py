"""PriceStore: Latest observation per (pair, source) with best-price selection.

The store is the only mutable state shared between the feed schedulers
(writers) and the HTTP layer (readers). Every operation is synchronous and
runs under a single lock, so it can be called from coroutines on the event
loop or from other threads without ever suspending inside the critical
section.

Selection algorithm for ``get_best(pair)``:
    1. Collect every entry stored for the pair
    2. Keep only entries that are fresh at ``now``
    3. Pick the smallest ``(priority, source)``; source name breaks ties
    4. Flag ``fallback_used`` when the winner's priority is not the lowest
       priority configured for that pair

.. code-block:: python

    >>> store = PriceStore(staleness_threshold=30)
    >>> store.register_source("SOL/USDC", 1)
    >>> store.register_source("SOL/USDC", 2)
    >>> store.update(backup_observation, priority=2)
    >>> store.get_best("SOL/USDC").fallback_used
    True
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from .freshness import as_threshold, is_fresh, utc_now
from .Observation import Observation

# Key for identifying a price entry: (pair, source)
PriceKey = tuple[str, str]


@dataclass(frozen=True)
class Entry:
    """Most recent observation for one (pair, source) key.

    :ivar observation: Latest successful observation.
    :ivar priority: Configured priority of the producing source (lower wins).
    """

    observation: Observation
    priority: int


@dataclass(frozen=True)
class BestPrice:
    """Result of a best-price query.

    :ivar observation: Selected observation.
    :ivar fallback_used: True if the selected source is not one of the
        highest-preference sources configured for the pair.
    """

    observation: Observation
    fallback_used: bool


class PriceStore:
    """Concurrency-safe table of the latest price per (pair, source).

    :ivar staleness_threshold: Default maximum observation age for reads.
    """

    DEFAULT_STALENESS_THRESHOLD_SECS = 30

    def __init__(
        self,
        staleness_threshold: float | timedelta = DEFAULT_STALENESS_THRESHOLD_SECS,
    ) -> None:
        """Initialize an empty store.

        :param staleness_threshold: Default staleness threshold (seconds or
            timedelta) used when a read does not pass one explicitly.
        """
        self.staleness_threshold = as_threshold(staleness_threshold)
        self._lock = threading.Lock()
        self._entries: dict[PriceKey, Entry] = {}
        self._min_priority: dict[str, int] = {}

    def register_source(self, pair: str, priority: int) -> None:
        """Record a configured source priority for a pair.

        Called once per enabled source at startup. The store keeps the lowest
        configured priority per pair; ``get_best`` compares against it to
        decide whether a fallback source was used.

        :param pair: Canonical "BASE/QUOTE" pair string.
        :param priority: Configured priority of the source.
        """
        with self._lock:
            current = self._min_priority.get(pair)
            if current is None or priority < current:
                self._min_priority[pair] = priority

    def min_configured_priority(self, pair: str) -> int | None:
        """Get the lowest priority configured for a pair.

        :param pair: Canonical "BASE/QUOTE" pair string.
        :returns: Minimum registered priority, or None if nothing registered.
        """
        with self._lock:
            return self._min_priority.get(pair)

    def update(self, observation: Observation, priority: int) -> None:
        """Store an observation, replacing any previous one for its key.

        Last write wins; the previous entry's timestamp is not consulted.

        :param observation: Observation produced by a successful fetch.
        :param priority: Configured priority of the producing source.
        """
        key = (observation.pair, observation.source)
        entry = Entry(observation=observation, priority=priority)
        with self._lock:
            self._entries[key] = entry

    def get_best(
        self,
        pair: str,
        now: datetime | None = None,
        staleness_threshold: float | timedelta | None = None,
    ) -> BestPrice | None:
        """Get the best fresh price for a pair.

        :param pair: Canonical "BASE/QUOTE" pair string.
        :param now: Reference time (default: current UTC time).
        :param staleness_threshold: Override of the store's default threshold.
        :returns: BestPrice, or None if no fresh entry exists for the pair.
        """
        now = now or utc_now()
        threshold = self._threshold(staleness_threshold)

        with self._lock:
            stored = [
                entry for (p, _), entry in self._entries.items() if p == pair
            ]
            min_priority = self._min_priority.get(pair)

        candidates = [
            entry
            for entry in stored
            if is_fresh(entry.observation.timestamp, now, threshold)
        ]
        if not candidates:
            return None

        best = min(candidates, key=lambda e: (e.priority, e.observation.source))

        if min_priority is None:
            min_priority = min(entry.priority for entry in stored)

        return BestPrice(
            observation=best.observation,
            fallback_used=best.priority != min_priority,
        )

    def has_fresh_data(
        self,
        now: datetime | None = None,
        staleness_threshold: float | timedelta | None = None,
    ) -> bool:
        """Check whether any entry in the whole store is fresh.

        Used for process liveness only, not per-pair correctness.

        :param now: Reference time (default: current UTC time).
        :param staleness_threshold: Override of the store's default threshold.
        :returns: True if at least one entry is fresh.
        """
        now = now or utc_now()
        threshold = self._threshold(staleness_threshold)

        with self._lock:
            return any(
                is_fresh(entry.observation.timestamp, now, threshold)
                for entry in self._entries.values()
            )

    def get_entry(self, pair: str, source: str) -> Entry | None:
        """Get the stored entry for a key, fresh or not.

        :param pair: Canonical "BASE/QUOTE" pair string.
        :param source: Source identifier.
        :returns: Entry, or None if the source never succeeded for the pair.
        """
        with self._lock:
            return self._entries.get((pair, source))

    def snapshot(self) -> dict[PriceKey, Entry]:
        """Get a copy of all entries.

        :returns: Dict mapping (pair, source) to Entry.
        """
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _threshold(self, staleness_threshold: float | timedelta | None) -> timedelta:
        if staleness_threshold is None:
            return self.staleness_threshold
        return as_threshold(staleness_threshold)
