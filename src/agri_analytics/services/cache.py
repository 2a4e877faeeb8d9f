"""
Prediction Cache
=================
Time-bounded key/value cache used for inventory predictions and market
snapshots.

Entries are stored as ``(value, stored_at)`` tuples and are only ever
replaced whole, so a reader never observes a partially built value. An
entry is fresh while ``now - stored_at < ttl``.
"""

import time
from typing import Callable, Dict, Generic, Hashable, Optional, Protocol, Tuple, TypeVar

from ..utils.logger import get_logger

logger = get_logger(__name__)

V = TypeVar("V")


class PredictionCache(Protocol[V]):
    """Interface a cache backend must provide"""

    def get(self, key: Hashable) -> Optional[V]:
        ...

    def set(self, key: Hashable, value: V) -> None:
        ...

    def evict(self, key: Hashable) -> None:
        ...

    def clear(self) -> None:
        ...


class TTLCache(Generic[V]):
    """
    In-memory cache with a fixed time-to-live.

    Parameters
    ----------
    ttl_seconds : float
        How long an entry stays fresh
    clock : callable, optional
        Returns the current time in seconds. Defaults to ``time.monotonic``;
        tests inject a fake clock.

    Usage
    -----
    >>> cache = TTLCache(ttl_seconds=3600)
    >>> cache.set(("P1", 50), prediction)
    >>> cache.get(("P1", 50)) is prediction
    True
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Optional[Callable[[], float]] = None
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[Hashable, Tuple[V, float]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the fresh value for ``key``, or None. Expired entries are dropped."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, stored_at = entry
        if self._clock() - stored_at < self.ttl_seconds:
            return value

        logger.debug(f"Cache entry expired: {key!r}")
        del self._entries[key]
        return None

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (value, self._clock())

    def evict(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
