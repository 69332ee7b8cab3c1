"""Pyth network source (not yet implemented).

Registered so configurations may list it; every fetch reports an
unsupported error and the pair falls back to other sources.
"""

from ..Observation import Observation
from .base import BaseSource, SourceUnsupportedError, register_source


@register_source
class PythSource(BaseSource):
    """Placeholder for Pyth price feeds."""

    name = "pyth"

    async def fetch(self) -> Observation:
        raise SourceUnsupportedError("Pyth feed not yet implemented")
