from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .entities import KeySet


class Clock(Protocol):
    """
    Source of the current instant.

    Every time-based check reads the time through this port so tests can
    pin it.
    """

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class KeySetFetcher(Protocol):
    """
    Port for retrieving an authority's published signing keys.

    Implementations live in the adapters layer (e.g. HTTP JWKS fetcher).
    """

    def fetch(self, authority: str, fetched_at: datetime) -> KeySet:
        """
        Fetch and parse the key-set document of ``authority``.

        Raises:
          - KeyRetrievalError on any transport or parse failure
        """
        ...
