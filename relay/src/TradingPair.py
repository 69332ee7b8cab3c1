"""TradingPair: BASE/QUOTE instrument identifier.

Every source is bound to exactly one pair and every observation carries the
pair's canonical string form, which is the store key together with the source
name.

.. code-block:: python

    >>> pair = TradingPair("sol", "usdc")
    >>> str(pair)
    'SOL/USDC'
    >>> TradingPair.from_string("eth/usdt").base
    'ETH'
"""

from __future__ import annotations


class TradingPair:
    """A trading pair in canonical uppercase form.

    :ivar base: Base token symbol (uppercase).
    :ivar quote: Quote token symbol (uppercase).
    """

    def __init__(self, base: str, quote: str) -> None:
        """Initialize a trading pair.

        :param base: Base token symbol (e.g., "SOL", "btc").
        :param quote: Quote token symbol (e.g., "USDC").
        :raises ValueError: If either symbol is empty.
        """
        base = base.strip().upper()
        quote = quote.strip().upper()
        if not base or not quote:
            raise ValueError(
                f"Invalid pair '{base}/{quote}': base and quote must be non-empty"
            )
        self.base = base
        self.quote = quote

    def __str__(self) -> str:
        """Return the canonical "BASE/QUOTE" string used as the store key."""
        return f"{self.base}/{self.quote}"

    def __repr__(self) -> str:
        return f"TradingPair({self.base!r}, {self.quote!r})"

    def __hash__(self) -> int:
        return hash(str(self))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TradingPair):
            return NotImplemented
        return str(self) == str(other)

    @classmethod
    def from_string(cls, pair_str: str) -> TradingPair:
        """Parse a pair string in format "base/quote".

        :param pair_str: Pair string like "sol/usdc" or "BTC/USDT".
        :returns: New TradingPair instance.
        :raises ValueError: If pair string format is invalid.
        """
        parts = pair_str.split("/")
        if len(parts) != 2:
            raise ValueError(
                f"Invalid pair format '{pair_str}'. Expected 'BASE/QUOTE' (e.g., 'SOL/USDC')"
            )
        return cls(parts[0], parts[1])
