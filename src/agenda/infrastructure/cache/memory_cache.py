"""In-process TTL cache implementing ContactCache."""

import copy
import threading
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any

DEFAULT_PURGE_INTERVAL = 60.0


class InMemoryContactCache:
    """
    Dict-backed cache. An expired entry is dropped when it is read, and `set`
    sweeps all expired entries at most once per `purge_interval` seconds, so
    keys that are never read again do not accumulate.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        purge_interval: float = DEFAULT_PURGE_INTERVAL,
    ) -> None:
        self._clock = clock
        self._purge_interval = purge_interval
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[Any, float]] = {}  # key -> (value, expires_at)
        self._next_purge = clock() + purge_interval

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl: timedelta) -> None:
        seconds = ttl.total_seconds()
        if seconds <= 0:
            return
        with self._lock:
            now = self._clock()
            if now >= self._next_purge:
                self._purge(now)
            self._entries[key] = (copy.deepcopy(value), now + seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        with self._lock:
            return self._purge(self._clock())

    def _purge(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        self._next_purge = now + self._purge_interval
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
