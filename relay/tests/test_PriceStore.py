"""Unit tests for PriceStore."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from relay.src.Observation import Observation
from relay.src.PriceStore import BestPrice, Entry, PriceStore

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
PAIR = "SOL/USDC"


def make_observation(
    source: str,
    price: str = "180.00",
    age_seconds: float = 0.0,
    pair: str = PAIR,
) -> Observation:
    return Observation(
        pair=pair,
        price=Decimal(price),
        source=source,
        timestamp=NOW - timedelta(seconds=age_seconds),
    )


class TestPriceStoreUpdate:
    """Test upsert semantics."""

    def test_empty_store(self) -> None:
        """A new store should hold no entries."""
        store = PriceStore()
        assert len(store) == 0
        assert store.get_entry(PAIR, "jupiter") is None

    def test_update_creates_entry(self) -> None:
        """First update should create the entry with the given priority."""
        store = PriceStore()
        obs = make_observation("jupiter")
        store.update(obs, priority=1)

        assert store.get_entry(PAIR, "jupiter") == Entry(observation=obs, priority=1)
        assert len(store) == 1

    def test_update_overwrites_entry(self) -> None:
        """Later update for the same key should replace the entry."""
        store = PriceStore()
        store.update(make_observation("jupiter", "180.00"), priority=1)
        store.update(make_observation("jupiter", "181.50"), priority=1)

        entry = store.get_entry(PAIR, "jupiter")
        assert entry.observation.price == Decimal("181.50")
        assert len(store) == 1

    def test_update_is_last_write_wins(self) -> None:
        """An older observation written later should still replace a newer one."""
        store = PriceStore()
        store.update(make_observation("jupiter", "181", age_seconds=0), priority=1)
        store.update(make_observation("jupiter", "179", age_seconds=10), priority=1)

        entry = store.get_entry(PAIR, "jupiter")
        assert entry.observation.price == Decimal("179")

    def test_update_is_idempotent(self) -> None:
        """Applying the same update twice should equal applying it once."""
        once = PriceStore()
        twice = PriceStore()
        obs = make_observation("jupiter")

        once.update(obs, priority=1)
        twice.update(obs, priority=1)
        twice.update(obs, priority=1)

        assert once.snapshot() == twice.snapshot()

    def test_keys_are_per_pair_and_source(self) -> None:
        """Different pairs or sources should produce distinct entries."""
        store = PriceStore()
        store.update(make_observation("jupiter"), priority=1)
        store.update(make_observation("binance"), priority=2)
        store.update(make_observation("jupiter", pair="BTC/USDC"), priority=1)

        assert set(store.snapshot()) == {
            (PAIR, "jupiter"),
            (PAIR, "binance"),
            ("BTC/USDC", "jupiter"),
        }

    def test_price_stays_decimal(self) -> None:
        """Stored prices should keep their exact decimal value."""
        store = PriceStore()
        store.update(make_observation("jupiter", "0.1000000000000000000001"), priority=1)

        best = store.get_best(PAIR, now=NOW)
        assert isinstance(best.observation.price, Decimal)
        assert str(best.observation.price) == "0.1000000000000000000001"


class TestPriceStoreFreshness:
    """Test freshness filtering in reads."""

    def test_age_equal_to_threshold_is_stale(self) -> None:
        """An entry aged exactly the threshold should not be returned."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("jupiter", age_seconds=30), priority=1)

        assert store.get_best(PAIR, now=NOW) is None
        assert store.has_fresh_data(now=NOW) is False

    def test_age_just_below_threshold_is_fresh(self) -> None:
        """An entry aged slightly less than the threshold should be returned."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("jupiter", age_seconds=29.999), priority=1)

        assert store.get_best(PAIR, now=NOW) is not None
        assert store.has_fresh_data(now=NOW) is True

    def test_threshold_override(self) -> None:
        """An explicit threshold should override the store default."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("jupiter", age_seconds=10), priority=1)

        assert store.get_best(PAIR, now=NOW, staleness_threshold=5) is None
        assert store.get_best(PAIR, now=NOW, staleness_threshold=timedelta(seconds=11))

    def test_stale_entry_is_kept(self) -> None:
        """Staleness should be evaluated at read time, never evicting entries."""
        store = PriceStore(staleness_threshold=1)
        store.update(make_observation("jupiter", age_seconds=100), priority=1)

        assert store.get_best(PAIR, now=NOW) is None
        assert store.get_entry(PAIR, "jupiter") is not None


class TestPriceStoreGetBest:
    """Test best-price selection."""

    def test_no_entries_for_pair(self) -> None:
        """Unknown pair should report no data."""
        store = PriceStore()
        store.update(make_observation("jupiter", pair="BTC/USDC"), priority=1)

        assert store.get_best(PAIR, now=NOW) is None

    def test_lowest_priority_wins(self) -> None:
        """The fresh entry with the smallest priority should be selected."""
        store = PriceStore()
        store.update(make_observation("binance", "181"), priority=2)
        store.update(make_observation("jupiter", "180"), priority=1)
        store.update(make_observation("mock", "182"), priority=10)

        best = store.get_best(PAIR, now=NOW)
        assert best.observation.source == "jupiter"
        assert best.observation.price == Decimal("180")

    def test_stale_primary_falls_back(self) -> None:
        """A stale high-priority entry should lose to a fresh lower-priority one."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("jupiter", "180", age_seconds=60), priority=1)
        store.update(make_observation("binance", "181"), priority=2)

        best = store.get_best(PAIR, now=NOW)
        assert best.observation.source == "binance"

    def test_tie_broken_by_source_name(self) -> None:
        """Equal priorities should resolve to the lexically smallest source."""
        for order in (["zeta", "alpha", "mid"], ["mid", "zeta", "alpha"]):
            store = PriceStore()
            for source in order:
                store.update(make_observation(source), priority=5)

            best = store.get_best(PAIR, now=NOW)
            assert best.observation.source == "alpha"

    def test_returns_best_price_type(self) -> None:
        """Result should be a BestPrice carrying the stored observation."""
        store = PriceStore()
        obs = make_observation("jupiter")
        store.update(obs, priority=1)

        assert store.get_best(PAIR, now=NOW) == BestPrice(
            observation=obs, fallback_used=False
        )


class TestPriceStoreFallback:
    """Test fallback_used against the per-pair minimum configured priority."""

    def test_only_backup_fresh(self) -> None:
        """Only B fresh: B's price with fallback_used=True."""
        store = PriceStore(staleness_threshold=30)
        store.register_source(PAIR, 1)
        store.register_source(PAIR, 2)
        store.update(make_observation("a", "180", age_seconds=45), priority=1)
        store.update(make_observation("b", "181"), priority=2)

        best = store.get_best(PAIR, now=NOW)
        assert best.observation.source == "b"
        assert best.observation.price == Decimal("181")
        assert best.fallback_used is True

    def test_both_fresh(self) -> None:
        """Both fresh: A's price with fallback_used=False."""
        store = PriceStore(staleness_threshold=30)
        store.register_source(PAIR, 1)
        store.register_source(PAIR, 2)
        store.update(make_observation("a", "180"), priority=1)
        store.update(make_observation("b", "181"), priority=2)

        best = store.get_best(PAIR, now=NOW)
        assert best.observation.source == "a"
        assert best.fallback_used is False

    def test_primary_never_fetched(self) -> None:
        """A configured but never-successful primary should still count."""
        store = PriceStore()
        store.register_source(PAIR, 1)
        store.register_source(PAIR, 2)
        store.update(make_observation("b"), priority=2)

        assert store.get_best(PAIR, now=NOW).fallback_used is True

    def test_minimum_priority_not_one(self) -> None:
        """A primary with priority other than 1 should not be a fallback."""
        store = PriceStore()
        store.register_source(PAIR, 5)
        store.register_source(PAIR, 7)
        store.update(make_observation("a"), priority=5)

        best = store.get_best(PAIR, now=NOW)
        assert best.fallback_used is False

    def test_minimum_priority_zero(self) -> None:
        """Priority 1 should be a fallback when a priority-0 source exists."""
        store = PriceStore()
        store.register_source(PAIR, 0)
        store.register_source(PAIR, 1)
        store.update(make_observation("b"), priority=1)

        assert store.get_best(PAIR, now=NOW).fallback_used is True

    def test_minimum_is_per_pair(self) -> None:
        """Registrations for one pair should not affect another."""
        store = PriceStore()
        store.register_source(PAIR, 1)
        store.register_source("BTC/USDC", 3)
        store.update(make_observation("x", pair="BTC/USDC"), priority=3)

        assert store.get_best("BTC/USDC", now=NOW).fallback_used is False
        assert store.min_configured_priority(PAIR) == 1
        assert store.min_configured_priority("BTC/USDC") == 3

    def test_register_keeps_minimum(self) -> None:
        """Registration order should not matter for the minimum."""
        store = PriceStore()
        store.register_source(PAIR, 4)
        store.register_source(PAIR, 2)
        store.register_source(PAIR, 9)

        assert store.min_configured_priority(PAIR) == 2
        assert store.min_configured_priority("ETH/USDC") is None

    def test_unregistered_pair_uses_stored_minimum(self) -> None:
        """Without registrations the lowest stored priority is the baseline."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("a", age_seconds=60), priority=1)
        store.update(make_observation("b"), priority=2)

        assert store.get_best(PAIR, now=NOW).fallback_used is True


class TestPriceStoreHasFreshData:
    """Test the global liveness check."""

    def test_empty_store(self) -> None:
        """Empty store should have no fresh data."""
        assert PriceStore().has_fresh_data(now=NOW) is False

    def test_single_fresh_entry_anywhere(self) -> None:
        """One fresh entry on any pair should be enough."""
        store = PriceStore(staleness_threshold=30)
        store.update(make_observation("a", age_seconds=100), priority=1)
        assert store.has_fresh_data(now=NOW) is False

        store.update(make_observation("b", pair="ETH/USDT"), priority=50)
        assert store.has_fresh_data(now=NOW) is True

    def test_default_now(self) -> None:
        """Reads without an explicit time should use the current time."""
        store = PriceStore(staleness_threshold=30)
        store.update(
            Observation(
                pair=PAIR,
                price=Decimal("1"),
                source="a",
                timestamp=datetime.now(timezone.utc),
            ),
            priority=1,
        )

        assert store.has_fresh_data() is True
        assert store.get_best(PAIR) is not None


class TestPriceStoreConcurrency:
    """Test concurrent access."""

    def test_concurrent_writers_disjoint_keys(self) -> None:
        """Many writers on disjoint keys should lose no writes."""
        store = PriceStore()
        writers = 16
        updates = 500
        barrier = threading.Barrier(writers)

        def write(worker: int) -> None:
            barrier.wait()
            for i in range(updates):
                store.update(
                    make_observation(f"src{worker}", price=str(i + 1)),
                    priority=worker,
                )

        with ThreadPoolExecutor(max_workers=writers) as pool:
            list(pool.map(write, range(writers)))

        snapshot = store.snapshot()
        assert len(snapshot) == writers
        for worker in range(writers):
            entry = snapshot[(PAIR, f"src{worker}")]
            assert entry.observation.price == Decimal(updates)
            assert entry.priority == worker

    def test_readers_during_writes(self) -> None:
        """Readers should always see a complete entry while writers run."""
        store = PriceStore()
        stop = threading.Event()
        seen: list[BestPrice] = []

        def write() -> None:
            for i in range(2000):
                store.update(make_observation("a", price=str(i + 1)), priority=1)
            stop.set()

        def read() -> None:
            while not stop.is_set():
                best = store.get_best(PAIR, now=NOW)
                if best is not None:
                    seen.append(best)

        with ThreadPoolExecutor(max_workers=4) as pool:
            readers = [pool.submit(read) for _ in range(3)]
            pool.submit(write).result()
            for r in readers:
                r.result()

        assert store.get_best(PAIR, now=NOW).observation.price == Decimal(2000)
        assert all(b.observation.source == "a" for b in seen)


class TestObservation:
    """Test Observation price typing."""

    def test_float_price_rejected(self) -> None:
        """Binary floating point prices should be refused."""
        with pytest.raises(TypeError, match="must be Decimal"):
            Observation(pair=PAIR, price=180.5, source="a", timestamp=NOW)
