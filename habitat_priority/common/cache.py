"""Caller-owned result cache with explicit time-to-live checks."""

from __future__ import annotations

import time
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class TtlCache:
    """Maps key -> (value, stored_at) and expires entries older than ``ttl_seconds``.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at < self.ttl_seconds:
            return value
        del self._entries[key]
        return None

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
