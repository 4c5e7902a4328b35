"""Beaver: lightweight object-to-table mapper with cached dynamic finders."""

__version__ = "0.3.0"

from beaver.cache import BaseCache, MemoryCache
from beaver.core.context import Context, get_current_context, set_current_context
from beaver.core.entity import Entity, persistable_fields
from beaver.core.gateway import Gateway
from beaver.core.predicate import Operator, Predicate, parse_token, where
from beaver.core.query import QueryBuilder, QueryOptions
from beaver.errors import BadMethodCallError, BeaverError, ConfigurationError, InvalidArgumentError

__all__ = [
    "BadMethodCallError",
    "BaseCache",
    "BeaverError",
    "ConfigurationError",
    "Context",
    "DuckDBAdapter",
    "Entity",
    "Gateway",
    "InvalidArgumentError",
    "MemoryCache",
    "Operator",
    "PostgreSQLAdapter",
    "Predicate",
    "QueryBuilder",
    "QueryOptions",
    "SQLiteAdapter",
    "get_current_context",
    "parse_token",
    "persistable_fields",
    "set_current_context",
    "where",
]


def __getattr__(name):  # Lazy import to avoid importing drivers on package import
    if name in ("DuckDBAdapter", "SQLiteAdapter", "PostgreSQLAdapter"):
        from beaver import db

        return getattr(db, name)
    raise AttributeError(name)
