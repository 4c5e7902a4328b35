"""Error types raised by beaver.

Driver errors (duckdb.Error, sqlite3.Error, psycopg.Error) are never wrapped;
they reach the caller exactly as the database raised them.
"""


class BeaverError(Exception):
    """Base class for errors raised by beaver itself."""

    pass


class ConfigurationError(BeaverError):
    """Raised when an entity or context is not configured for use."""

    pass


class BadMethodCallError(BeaverError, AttributeError):
    """Raised when a dynamic query token or its arguments cannot be resolved."""

    pass


class InvalidArgumentError(BeaverError, ValueError):
    """Raised when query arguments do not fit the requested operation."""

    pass
