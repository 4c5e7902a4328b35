"""Cache store abstraction layer."""

from beaver.cache.base import BaseCache
from beaver.cache.memory import MemoryCache

__all__ = ["BaseCache", "MemoryCache"]
