"""Thread-safe in-memory TTL cache for provider responses."""

import threading
import time
from collections.abc import Callable
from typing import Any


def make_cache_key(*parts: Any) -> str:
    """Join parts into a stable string key."""
    return ":".join(str(p) for p in parts)


class TTLCache:
    """Key/value cache whose entries expire after a per-entry TTL."""

    def __init__(self, default_ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self._default_ttl = default_ttl
        self._clock = clock
        self._data: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._data[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
