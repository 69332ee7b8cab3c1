"""Observation: a single price reading produced by one source."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Observation:
    """One successful fetch result.

    Prices are kept as :class:`~decimal.Decimal` end to end so repeated
    updates never pick up binary floating point representation error.

    :ivar pair: Canonical "BASE/QUOTE" pair string.
    :ivar price: Exact decimal price.
    :ivar source: Identifier of the source that produced it.
    :ivar timestamp: Timezone-aware time the price was observed.
    """

    pair: str
    price: Decimal
    source: str
    timestamp: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal):
            raise TypeError(
                f"Observation price must be Decimal, got {type(self.price).__name__}"
            )
