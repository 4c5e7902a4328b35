"""Base cache interface."""

from abc import ABC, abstractmethod


class BaseCache(ABC):
    """Abstract cache store.

    Values are opaque bytes. Implementations wrap memcached, redis or an
    in-process dictionary; expiry is entirely the store's concern.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Get cached value, or None when absent or expired."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store value for ``ttl_seconds`` seconds."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        raise NotImplementedError
