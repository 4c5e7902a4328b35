"""Base database adapter interface."""

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from beaver.core.entity import Entity

# Pattern for valid SQL identifiers: starts with letter or underscore,
# followed by letters, digits, or underscores. Also allows dots for
# qualified names (schema.table).
_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$")


def validate_identifier(value: str, name: str = "identifier") -> str:
    """Validate that a value is a safe SQL identifier.

    Table and column names are substituted into SQL text, so they must only
    contain safe characters. Allows: letters, digits, underscores, and dots
    (for qualified names). Must start with a letter or underscore.

    Args:
        value: The identifier value to validate
        name: Human-readable name for error messages (e.g., "table name", "column")

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not value:
        raise ValueError(f"Invalid {name}: cannot be empty")

    if not _IDENTIFIER_PATTERN.match(value):
        raise ValueError(
            f"Invalid {name}: '{value}'. "
            f"Identifiers must start with a letter or underscore and contain only "
            f"letters, digits, underscores, and dots."
        )

    return value


class BaseStatement(ABC):
    """A prepared statement bound to one SQL string.

    Statements are single use: execute once, then fetch.
    """

    @abstractmethod
    def execute(self, params: list | tuple | None = None) -> None:
        """Execute the statement with positional parameters.

        Args:
            params: Ordered values for the ``?`` placeholders
        """
        raise NotImplementedError

    @abstractmethod
    def fetch_next_as(self, entity_type: type["Entity"]) -> "Entity | None":
        """Fetch the next row materialized as an entity, or None when exhausted."""
        raise NotImplementedError

    @abstractmethod
    def fetch_scalar_column(self) -> Any:
        """Fetch the first column of the next row (RETURNING results)."""
        raise NotImplementedError


class CursorStatement(BaseStatement):
    """Statement backed by a DB-API 2.0 cursor.

    Shared by every adapter whose driver follows PEP 249.
    """

    def __init__(self, cursor: Any, sql: str):
        """Initialize statement.

        Args:
            cursor: Driver cursor object
            sql: SQL text in the driver's placeholder style
        """
        self.cursor = cursor
        self.sql = sql

    def execute(self, params: list | tuple | None = None) -> None:
        """Execute SQL on the cursor."""
        if params:
            self.cursor.execute(self.sql, list(params))
        else:
            self.cursor.execute(self.sql)

    def _columns(self) -> list[str]:
        description = self.cursor.description
        if not description:
            return []
        return [col[0] for col in description]

    def fetch_next_as(self, entity_type: type["Entity"]) -> "Entity | None":
        """Fetch next row and validate it into ``entity_type``."""
        row = self.cursor.fetchone()
        if row is None:
            return None
        return entity_type.model_validate(dict(zip(self._columns(), row)))

    def fetch_scalar_column(self) -> Any:
        """Fetch first column of next row."""
        row = self.cursor.fetchone()
        return row[0] if row is not None else None


class BaseDatabaseAdapter(ABC):
    """Abstract base class for database adapters.

    Adapters provide a unified interface for different database backends,
    allowing beaver to work with DuckDB, SQLite, PostgreSQL and others.
    All SQL handed to an adapter uses ``?`` positional placeholders.
    """

    #: Whether INSERT ... RETURNING yields the generated primary key.
    #: Class-level so callers can inspect a dialect without connecting.
    supports_returning: ClassVar[bool] = False

    @abstractmethod
    def prepare(self, sql: str) -> BaseStatement:
        """Prepare a statement.

        Args:
            sql: SQL with ``?`` placeholders

        Returns:
            Statement ready to execute
        """
        raise NotImplementedError

    @abstractmethod
    def last_generated_id(self) -> Any:
        """Get the key generated by the most recent INSERT on this connection.

        Only used when ``supports_returning`` is False.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        raise NotImplementedError

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Get dialect name.

        Returns:
            Dialect name (e.g., 'duckdb', 'sqlite', 'postgres')
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def raw_connection(self) -> Any:
        """Get underlying database connection object.

        Returns:
            Raw connection (DuckDBPyConnection, sqlite3.Connection, psycopg.Connection)
        """
        raise NotImplementedError

    def execute(self, sql: str, params: list | tuple | None = None) -> BaseStatement:
        """Prepare and execute SQL in one step.

        Args:
            sql: SQL with ``?`` placeholders
            params: Positional parameter values

        Returns:
            The executed statement, ready for fetching
        """
        statement = self.prepare(sql)
        statement.execute(params)
        return statement
