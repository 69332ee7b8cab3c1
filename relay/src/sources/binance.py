"""Binance spot ticker source.

Endpoint: https://api.binance.com/api/v3/ticker/price?symbol={BASE}{QUOTE}
Rate Limit: High (no key required for public endpoints)
"""

import logging

from ..Observation import Observation
from .base import BaseSource, SourceParseError, register_source

logger = logging.getLogger(__name__)


@register_source
class BinanceSource(BaseSource):
    """Source for the Binance public spot ticker.

    The pair is queried as a concatenated symbol (SOL/USDC -> SOLUSDC).
    No API key required.
    """

    name = "binance"
    BASE_URL = "https://api.binance.com/api/v3"

    @property
    def symbol(self) -> str:
        return f"{self.pair.base}{self.pair.quote}"

    async def fetch(self) -> Observation:
        """Fetch price from Binance.

        :returns: Observation for the bound pair.
        :raises SourceTransportError: On network failure or non-2xx status.
        :raises SourceParseError: If the response carries no price.
        :raises SourceValidationError: If the price is not positive.
        """
        response = await self._get(
            f"{self.BASE_URL}/ticker/price", params={"symbol": self.symbol}
        )
        data = self._json(response)

        if not isinstance(data, dict) or "price" not in data:
            logger.debug(f"[binance] No price for {self.symbol}: {data}")
            raise SourceParseError(f"No price in response for {self.symbol}")

        return self._observation(self._parse_decimal(data["price"]))
