"""Base price source interface and shared HTTP client management.

Every price source inherits from BaseSource, is bound to one trading pair at
construction, and implements fetch(). A shared httpx.AsyncClient is used
across all sources to avoid connection overhead; each request carries the
source's own timeout, which is the only bound on fetch latency.

.. code-block:: python

    @register_source
    class MySource(BaseSource):
        name = "mysource"

        async def fetch(self) -> Observation:
            response = await self._get(f"https://api.example.com/{self.pair.base}")
            return self._observation(self._parse_decimal(response.json()["price"]))
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from ..freshness import utc_now
from ..Observation import Observation
from ..TradingPair import TradingPair

if TYPE_CHECKING:
    from ..RelayConfig import FeedConfig

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Failure category reported to the metrics recorder."""

    TRANSPORT = "transport"
    PARSE = "parse"
    VALIDATION = "validation"
    UNSUPPORTED = "unsupported"


class SourceError(Exception):
    """Base exception for source errors.

    :cvar kind: Failure category of this error class.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.TRANSPORT


class SourceTransportError(SourceError):
    """Raised on network or timeout errors."""

    kind = ErrorKind.TRANSPORT


class SourceHTTPError(SourceTransportError):
    """Raised when the upstream answers with a non-2xx status.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        """Initialize the HTTP error.

        :param status_code: HTTP status code.
        :param message: Error message from response.
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class SourceParseError(SourceError):
    """Raised when a response does not match the expected schema."""

    kind = ErrorKind.PARSE


class SourceValidationError(SourceError):
    """Raised when a well-formed response is semantically invalid."""

    kind = ErrorKind.VALIDATION


class SourceUnsupportedError(SourceError):
    """Raised for capabilities or source types that are not implemented."""

    kind = ErrorKind.UNSUPPORTED


class BaseSource(ABC):
    """Abstract base class for price sources.

    Subclasses must implement:
        - name: Class variable identifying the source (e.g., "jupiter")
        - fetch(): Async method producing one Observation for the bound pair

    :cvar name: Unique identifier for this source.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar pair: Trading pair this instance is bound to.
    :ivar priority: Configured preference rank (lower is preferred).
    :ivar api_key: Optional API key for authenticated endpoints.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    name: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 5.0

    def __init__(
        self,
        pair: TradingPair,
        priority: int,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the source.

        :param pair: Trading pair to produce observations for.
        :param priority: Configured priority copied into every store entry.
        :param api_key: Optional API key for authenticated endpoints.
        :param timeout: Request timeout in seconds (default: 5).
        """
        self.pair = pair
        self.priority = priority
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @classmethod
    def from_config(
        cls, config: "FeedConfig", api_key: str | None = None
    ) -> "BaseSource":
        """Create a source bound to the pair and priority of a feed config.

        :param config: Feed configuration entry.
        :param api_key: Optional API key.
        :returns: Source instance.
        """
        return cls(config.pair, config.priority, api_key=api_key)

    @property
    def pair_name(self) -> str:
        """Canonical "BASE/QUOTE" string of the bound pair."""
        return str(self.pair)

    @property
    def has_api_key(self) -> bool:
        """Check if this source has an API key configured."""
        return self.api_key is not None and len(self.api_key) > 0

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(pair={self.pair_name!r}, "
            f"priority={self.priority})"
        )

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all source instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if (
            BaseSource._shared_client is None
            or BaseSource._shared_client.is_closed
        ):
            BaseSource._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(10.0, connect=5.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return BaseSource._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        client = BaseSource._shared_client
        if client is not None and not client.is_closed:
            await client.aclose()
        BaseSource._shared_client = None

    @abstractmethod
    async def fetch(self) -> Observation:
        """Fetch the current price for the bound pair.

        :returns: Fresh observation.
        :raises SourceError: One of the transport, parse, validation or
            unsupported subclasses.
        """

    def _observation(self, price: Decimal) -> Observation:
        """Build an observation for the bound pair stamped with the current time.

        :param price: Validated decimal price.
        :returns: New Observation.
        """
        return Observation(
            pair=self.pair_name,
            price=price,
            source=self.name,
            timestamp=utc_now(),
        )

    def _parse_decimal(self, value: Any) -> Decimal:
        """Convert an upstream price field to a positive Decimal.

        Floats are converted through their string form so no binary
        representation error leaks into the stored price.

        :param value: Price as string, int or float from a JSON payload.
        :returns: Decimal price.
        :raises SourceParseError: If the value is not a finite number.
        :raises SourceValidationError: If the price is not positive.
        """
        if value is None or isinstance(value, bool):
            raise SourceParseError(f"Invalid price value: {value!r}")
        try:
            price = Decimal(str(value))
        except InvalidOperation as e:
            raise SourceParseError(f"Invalid price format: {value!r}") from e
        if not price.is_finite():
            raise SourceParseError(f"Invalid price format: {value!r}")
        if price <= 0:
            raise SourceValidationError(f"Price must be positive, got {price}")
        return price

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON response body.

        :param response: Successful HTTP response.
        :returns: Decoded JSON value.
        :raises SourceParseError: If the body is not valid JSON.
        """
        try:
            return response.json()
        except ValueError as e:
            raise SourceParseError(f"Response is not valid JSON: {e}") from e

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises SourceHTTPError: On non-2xx response.
        :raises SourceTransportError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise SourceTransportError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise SourceTransportError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise SourceHTTPError(response.status_code, response.text[:200])
        return response


# Registry of available sources (populated by subclass imports)
SOURCE_REGISTRY: dict[str, type[BaseSource]] = {}


def register_source(cls: type[BaseSource]) -> type[BaseSource]:
    """Decorator to register a source class in the global registry.

    :param cls: Source class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If source has no name defined.

    .. code-block:: python

        @register_source
        class JupiterSource(BaseSource):
            name = "jupiter"
            ...
    """
    if not cls.name:
        raise ValueError(f"Source {cls.__name__} must define a 'name' class variable")
    SOURCE_REGISTRY[cls.name] = cls
    return cls


def get_source(config: "FeedConfig", api_key: str | None = None) -> BaseSource:
    """Create a source instance for a feed configuration entry.

    :param config: Feed configuration (type, pair, priority).
    :param api_key: Optional API key.
    :returns: Source instance bound to the configured pair.
    :raises SourceUnsupportedError: If the feed type is unknown.
    """
    source_cls = SOURCE_REGISTRY.get(config.feed_type)
    if source_cls is None:
        available = ", ".join(sorted(SOURCE_REGISTRY.keys()))
        raise SourceUnsupportedError(
            f"Unknown feed type '{config.feed_type}'. Available: {available}"
        )
    return source_cls.from_config(config, api_key=api_key)


def get_available_sources() -> list[str]:
    """Get list of available source names.

    :returns: Sorted list of registered source names.
    """
    return sorted(SOURCE_REGISTRY.keys())
