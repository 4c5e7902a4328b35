"""Database adapter abstraction layer."""

from beaver.db.base import BaseDatabaseAdapter, BaseStatement

__all__ = ["BaseDatabaseAdapter", "BaseStatement"]


def __getattr__(name):
    """Lazy import database adapters to avoid importing optional dependencies."""
    if name == "DuckDBAdapter":
        from beaver.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    if name == "SQLiteAdapter":
        from beaver.db.sqlite import SQLiteAdapter

        return SQLiteAdapter
    if name == "PostgreSQLAdapter":
        from beaver.db.postgres import PostgreSQLAdapter

        return PostgreSQLAdapter
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
