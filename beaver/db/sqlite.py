"""SQLite database adapter."""

import sqlite3
from typing import Any

from beaver.db.base import BaseDatabaseAdapter, CursorStatement


class SQLiteAdapter(BaseDatabaseAdapter):
    """SQLite database adapter.

    Uses the standard library driver in autocommit mode. Generated keys are
    read back with ``last_insert_rowid()``.
    """

    supports_returning = False

    def __init__(self, path: str = ":memory:", **kwargs):
        """Initialize SQLite adapter.

        Args:
            path: Database file path or ":memory:" for in-memory database
            **kwargs: Additional sqlite3.connect parameters
        """
        kwargs.setdefault("isolation_level", None)
        self.conn = sqlite3.connect(path, **kwargs)

    def prepare(self, sql: str) -> CursorStatement:
        """Prepare SQL on a new cursor."""
        return CursorStatement(self.conn.cursor(), sql)

    def last_generated_id(self) -> Any:
        """Get rowid of the last INSERT on this connection."""
        return self.conn.execute("SELECT last_insert_rowid()").fetchone()[0]

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    @property
    def dialect(self) -> str:
        return "sqlite"

    @property
    def raw_connection(self) -> Any:
        """Get underlying sqlite3 connection."""
        return self.conn

    @classmethod
    def from_url(cls, url: str) -> "SQLiteAdapter":
        """Create adapter from connection URL.

        Args:
            url: Connection URL (e.g., "sqlite:///:memory:" or "sqlite:///path/to/app.db")

        Returns:
            SQLiteAdapter instance
        """
        if not url.startswith("sqlite://"):
            raise ValueError(f"Invalid SQLite URL: {url}")

        db_path = url[len("sqlite://") :]
        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path)
