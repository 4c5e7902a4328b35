"""In-process cache store."""

import threading
import time

from beaver.cache.base import BaseCache


class MemoryCache(BaseCache):
    """Dictionary-backed cache with per-key expiry.

    Suitable for tests and single-process applications. Expired entries are
    dropped lazily on read, or in bulk by ``cleanup_expired``.
    """

    def __init__(self, max_entries: int | None = None):
        """Initialize cache.

        Args:
            max_entries: Evict the oldest entry once this many keys are stored (unbounded if None)
        """
        self.max_entries = max_entries
        self._data: dict[str, tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Cache values must be bytes, got {type(value).__name__}")
        with self._lock:
            self._data.pop(key, None)
            self._data[key] = (value, time.monotonic() + ttl_seconds)
            if self.max_entries is not None:
                while len(self._data) > self.max_entries:
                    del self._data[next(iter(self._data))]

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def cleanup_expired(self) -> int:
        """Drop expired entries.

        Returns:
            Number of entries removed
        """
        now = time.monotonic()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
            for key in expired:
                del self._data[key]
        return len(expired)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
