"""Simulated source for local runs and tests.

Produces a price oscillating within +/-0.5% around a per-pair base price,
driven by an internal call counter. No network access.
"""

import itertools
from decimal import Decimal

from ..Observation import Observation
from ..TradingPair import TradingPair
from .base import BaseSource, register_source


@register_source
class MockSource(BaseSource):
    """Deterministic oscillating price generator.

    The n-th call (starting at 0) returns
    ``base_price * (1 + ((n % 100) - 50) / 10000)``.
    """

    name = "mock"

    BASE_PRICES = {
        "SOL": Decimal("180.0"),
        "BTC": Decimal("95000.0"),
        "ETH": Decimal("3200.0"),
    }
    STABLE_QUOTES = ("USDC", "USDT")
    DEFAULT_BASE_PRICE = Decimal("100.0")

    def __init__(
        self,
        pair: TradingPair,
        priority: int,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        super().__init__(pair, priority, api_key=api_key, timeout=timeout)
        self.base_price = self._base_price_for(pair)
        self._counter = itertools.count()

    @classmethod
    def _base_price_for(cls, pair: TradingPair) -> Decimal:
        if pair.quote in cls.STABLE_QUOTES:
            return cls.BASE_PRICES.get(pair.base, cls.DEFAULT_BASE_PRICE)
        return cls.DEFAULT_BASE_PRICE

    async def fetch(self) -> Observation:
        count = next(self._counter)
        multiplier = 1 + Decimal((count % 100) - 50) / Decimal(10000)
        return self._observation(self.base_price * multiplier)
