"""Jupiter aggregator source.

Endpoint: https://api.jup.ag/price/v2?ids={BASE_MINT}&vsToken={QUOTE_MINT}
Rate Limit: Moderate (optional x-api-key header for higher limits)
Tokens: Solana SPL tokens, addressed by mint
"""

import logging

from ..Observation import Observation
from .base import BaseSource, SourceParseError, register_source

logger = logging.getLogger(__name__)


@register_source
class JupiterSource(BaseSource):
    """Source for the Jupiter price API on Solana.

    Token symbols are translated to mint addresses; anything not in
    MINTS is assumed to already be a mint address.
    """

    name = "jupiter"
    API_URL = "https://api.jup.ag/price/v2"

    MINTS = {
        "SOL": "So11111111111111111111111111111111111111112",
        "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    }

    @classmethod
    def token_to_mint(cls, token: str) -> str:
        """Map a token symbol to its Solana mint address.

        :param token: Token symbol or mint address.
        :returns: Mint address.
        """
        return cls.MINTS.get(token.upper(), token)

    @property
    def base_mint(self) -> str:
        return self.token_to_mint(self.pair.base)

    @property
    def quote_mint(self) -> str:
        return self.token_to_mint(self.pair.quote)

    async def fetch(self) -> Observation:
        """Fetch price from Jupiter.

        :returns: Observation for the bound pair.
        :raises SourceTransportError: On network failure or non-2xx status.
        :raises SourceParseError: If the token is missing from the response.
        :raises SourceValidationError: If the price is not positive.
        """
        headers = {"x-api-key": self.api_key} if self.has_api_key else None
        response = await self._get(
            self.API_URL,
            params={"ids": self.base_mint, "vsToken": self.quote_mint},
            headers=headers,
        )
        data = self._json(response)

        try:
            price_data = data["data"][self.base_mint]
            raw_price = price_data["price"]
        except (KeyError, TypeError) as e:
            logger.debug(f"[jupiter] Unexpected response for {self.pair}: {data}")
            raise SourceParseError(
                f"Token {self.base_mint} not found in response"
            ) from e

        return self._observation(self._parse_decimal(raw_price))
