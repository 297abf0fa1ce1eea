"""Time-boxed in-memory cache keyed by request URL.

Each provider client owns one :class:`EphemeralCache`.  A read past the
stored expiry behaves as a miss; the stale entry stays in the mapping until
the same key is written again.  There is no background eviction.

Unbounded by default: the process is expected to be short-lived.  Pass
``max_entries`` to cap the number of distinct keys for long-running
deployments.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored payload and the absolute (clock) time it stops being valid."""

    payload: Any
    expires_at: float


class EphemeralCache:
    """Mapping from cache key to payload with per-entry TTL.

    Parameters
    ----------
    default_ttl:
        TTL in seconds used by :meth:`put` when none is given.
    clock:
        Monotonic time source.  Injectable for tests.
    max_entries:
        Optional bound on distinct keys.  ``None`` means unbounded.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int | None = None,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._default_ttl = default_ttl
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, CacheEntry] = {}

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Any | None:
        """Return the payload stored under *key*, or ``None`` if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            return None
        return entry.payload

    def put(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """Store *payload* under *key* for *ttl* seconds (default TTL when ``None``)."""
        effective_ttl = self._default_ttl if ttl is None else ttl
        if key not in self._entries:
            self._make_room()
        self._entries[key] = CacheEntry(payload=payload, expires_at=self._clock() + effective_ttl)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if now < entry.expires_at)

    def _make_room(self) -> None:
        if self._max_entries is None or len(self._entries) < self._max_entries:
            return

        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

        # dicts preserve insertion order, so the first key is the oldest write
        while len(self._entries) >= self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Cache full; dropped oldest entry %s", oldest)
