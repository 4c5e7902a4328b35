"""Process-wide configuration for gateways.

A :class:`Context` is built once at startup and never mutated. Gateways take
it explicitly; entity convenience methods (``User.get(1)``) read the current
context from a context variable.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass, field

from beaver.cache.base import BaseCache
from beaver.db.base import BaseDatabaseAdapter, validate_identifier
from beaver.errors import ConfigurationError


@dataclass(frozen=True)
class Context:
    """Database handle, cache handle and naming prefixes.

    Attributes:
        database: Database adapter (required before the first query)
        cache: Cache store, or None to disable caching entirely
        table_prefix: Prepended to every entity's table name
        cache_prefix: Prepended to every cache key
        supports_returning: Detected from the adapter when the context is built
    """

    database: BaseDatabaseAdapter | None = None
    cache: BaseCache | None = None
    table_prefix: str = ""
    cache_prefix: str = ""
    supports_returning: bool = field(init=False, default=False)

    def __post_init__(self):
        if self.table_prefix:
            try:
                validate_identifier(self.table_prefix, "table prefix")
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        if self.database is not None:
            object.__setattr__(self, "supports_returning", bool(self.database.supports_returning))

    def require_database(self) -> BaseDatabaseAdapter:
        """Get the database adapter.

        Raises:
            ConfigurationError: If no database was configured
        """
        if self.database is None:
            raise ConfigurationError("Database handle is not set")
        return self.database

    def __enter__(self):
        """Context manager entry - set as current context."""
        token = _current_context.set(self)
        _entered_tokens.set(_entered_tokens.get() + (token,))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - restore previous context."""
        tokens = _entered_tokens.get()
        _entered_tokens.set(tokens[:-1])
        _current_context.reset(tokens[-1])


_current_context: ContextVar["Context | None"] = ContextVar("current_context", default=None)
# Reset tokens of the enclosing `with context:` blocks, innermost last
_entered_tokens: ContextVar[tuple[Token, ...]] = ContextVar("entered_context_tokens", default=())


def get_current_context() -> "Context | None":
    """Get the current context."""
    return _current_context.get()


def set_current_context(context: "Context | None"):
    """Set the current context."""
    _current_context.set(context)


def require_current_context() -> Context:
    """Get the current context.

    Raises:
        ConfigurationError: If no context has been set
    """
    context = _current_context.get()
    if context is None:
        raise ConfigurationError("No beaver context configured; call set_current_context() first")
    return context
