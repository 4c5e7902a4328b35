"""DuckDB database adapter."""

from typing import Any

import duckdb

from beaver.db.base import BaseDatabaseAdapter, CursorStatement


class DuckDBAdapter(BaseDatabaseAdapter):
    """DuckDB database adapter.

    Wraps DuckDB connection to provide unified adapter interface. DuckDB
    reports generated keys through INSERT ... RETURNING.
    """

    supports_returning = True

    def __init__(self, path: str = ":memory:"):
        """Initialize DuckDB adapter.

        Args:
            path: Database file path or ":memory:" for in-memory database
        """
        self.conn = duckdb.connect(path)

    def prepare(self, sql: str) -> CursorStatement:
        """Prepare SQL on a fresh cursor of this connection."""
        return CursorStatement(self.conn.cursor(), sql)

    def last_generated_id(self) -> Any:
        """DuckDB has no last-insert-id facility."""
        raise NotImplementedError("DuckDB returns generated keys via RETURNING")

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    @property
    def dialect(self) -> str:
        return "duckdb"

    @property
    def raw_connection(self) -> Any:
        """Get underlying DuckDB connection."""
        return self.conn

    @classmethod
    def from_url(cls, url: str) -> "DuckDBAdapter":
        """Create adapter from connection URL.

        Args:
            url: Connection URL (e.g., "duckdb:///:memory:" or "duckdb:///path/to/db.duckdb")

        Returns:
            DuckDBAdapter instance
        """
        if not url.startswith("duckdb://"):
            raise ValueError(f"Invalid DuckDB URL: {url}")

        # duckdb:///:memory: -> :memory:
        # duckdb:///tmp/app.db -> /tmp/app.db
        # duckdb:/// -> :memory:
        db_path = url[len("duckdb://") :]

        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path)
