"""
In-process key/value store with per-entry expiry.

Backs the failed-login counters, the token blacklist and the rate-limit
windows. Expired entries are evicted lazily: the accessed key is checked on
every read, and a full sweep runs at most once per ``sweep_interval``.
State lives in a single process only; deployments with several workers need
an external cache instead.
"""

import threading
import time
from collections.abc import Callable
from typing import Any


class TTLStore:
    """Timestamped map whose entries disappear after their time-to-live."""

    def __init__(
        self,
        default_ttl: float,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[Any, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + sweep_interval

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._maybe_sweep()
            if ttl <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = (value, self._clock() + ttl)

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            self._maybe_sweep()
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def expires_in(self, key: Any) -> float | None:
        """Seconds until ``key`` expires, or None if it is absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry[1] - self._clock()
            if remaining <= 0:
                del self._entries[key]
                return None
            return remaining

    def delete(self, key: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            return self._sweep()

    def __contains__(self, key: Any) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        with self._lock:
            self._sweep()
            return len(self._entries)

    def _maybe_sweep(self) -> None:
        if self._clock() >= self._next_sweep:
            self._sweep()

    def _sweep(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.sweep_interval
        return len(expired)
