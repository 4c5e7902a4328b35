"""Configuration file format for beaver."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from beaver.core.context import Context
from beaver.db.base import BaseDatabaseAdapter

CONFIG_FILENAMES = ["beaver.yaml", "beaver.yml", "beaver.json"]


class DuckDBConnection(BaseModel):
    """DuckDB connection configuration."""

    type: Literal["duckdb"] = "duckdb"
    path: str = Field(..., description="Path to DuckDB database file or :memory:")


class SQLiteConnection(BaseModel):
    """SQLite connection configuration."""

    type: Literal["sqlite"] = "sqlite"
    path: str = Field(..., description="Path to SQLite database file or :memory:")


class PostgreSQLConnection(BaseModel):
    """PostgreSQL connection configuration."""

    type: Literal["postgres"] = "postgres"
    host: str = Field(..., description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    database: str = Field(..., description="Database name")
    username: str = Field(..., description="Username")
    password: str | None = Field(default=None, description="Password")


class MemoryCacheConfig(BaseModel):
    """In-process cache configuration."""

    type: Literal["memory"] = "memory"
    max_entries: int | None = Field(default=None, ge=1, description="Evict oldest entries beyond this count")


Connection = DuckDBConnection | SQLiteConnection | PostgreSQLConnection


class BeaverConfig(BaseModel):
    """Beaver configuration file format.

    Can be saved as beaver.yaml or beaver.json.

    Example YAML:
        connection:
          type: duckdb
          path: data/app.duckdb
        cache:
          type: memory
          max_entries: 10000
        table_prefix: app_
        cache_prefix: myapp
    """

    connection: Connection | None = Field(default=None, description="Database connection configuration")
    cache: MemoryCacheConfig | None = Field(default=None, description="Cache store (caching disabled if unset)")
    table_prefix: str = Field(default="", description="Prefix prepended to every table name")
    cache_prefix: str = Field(default="", description="Prefix prepended to every cache key")

    def resolve_paths(self, base_dir: Path | None = None) -> "BeaverConfig":
        """Resolve relative database paths.

        Args:
            base_dir: Base directory for resolving relative paths (defaults to cwd)

        Returns:
            New config with resolved paths
        """
        base = base_dir or Path.cwd()

        connection = self.connection
        if isinstance(connection, (DuckDBConnection, SQLiteConnection)) and connection.path != ":memory:":
            db_p = Path(connection.path)
            if not db_p.is_absolute():
                db_p = (base / db_p).resolve()
            connection = connection.model_copy(update={"path": str(db_p)})

        return self.model_copy(update={"connection": connection})


def load_config(config_path: Path) -> BeaverConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to config file (beaver.yaml or beaver.json)

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid
    """
    import json

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        import yaml

        with open(config_path) as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with open(config_path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    config = BeaverConfig(**(data or {}))

    # Relative database paths are relative to the config file
    return config.resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Find config file by searching up the directory tree.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for name in CONFIG_FILENAMES:
            config_path = current / name
            if config_path.exists():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def build_connection_string(config: BeaverConfig, mask_password: bool = False) -> str:
    """Build database connection string from config.

    Args:
        config: Beaver configuration
        mask_password: Replace the password with ``***`` (for display)

    Returns:
        Connection URL understood by :func:`create_adapter`
    """
    if not config.connection:
        return "duckdb:///:memory:"

    if isinstance(config.connection, DuckDBConnection):
        return f"duckdb:///{config.connection.path}"
    elif isinstance(config.connection, SQLiteConnection):
        return f"sqlite:///{config.connection.path}"
    elif isinstance(config.connection, PostgreSQLConnection):
        password = config.connection.password
        if password and mask_password:
            password = "***"
        password_part = f":{password}" if password else ""
        return (
            f"postgres://{config.connection.username}{password_part}@"
            f"{config.connection.host}:{config.connection.port}/{config.connection.database}"
        )
    else:
        raise ValueError(f"Unknown connection type: {type(config.connection)}")


def get_adapter_class(url: str) -> type[BaseDatabaseAdapter]:
    """Resolve the adapter class for a connection URL without connecting.

    Args:
        url: ``duckdb://``, ``sqlite://`` or ``postgres://`` URL

    Returns:
        Adapter class

    Raises:
        ValueError: If the URL scheme is not supported
    """
    if url.startswith("duckdb://"):
        from beaver.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    if url.startswith("sqlite://"):
        from beaver.db.sqlite import SQLiteAdapter

        return SQLiteAdapter
    if url.startswith(("postgres://", "postgresql://")):
        from beaver.db.postgres import PostgreSQLAdapter

        return PostgreSQLAdapter
    raise ValueError(f"Unsupported connection URL: {url}")


def create_adapter(url: str) -> BaseDatabaseAdapter:
    """Create a database adapter from a connection URL.

    Args:
        url: ``duckdb://``, ``sqlite://`` or ``postgres://`` URL

    Returns:
        Connected adapter
    """
    return get_adapter_class(url).from_url(url)


def build_context(config: BeaverConfig) -> Context:
    """Connect to the configured database and build a context.

    Args:
        config: Beaver configuration

    Returns:
        Context with database adapter, cache and prefixes
    """
    cache = None
    if config.cache is not None:
        from beaver.cache.memory import MemoryCache

        cache = MemoryCache(max_entries=config.cache.max_entries)

    return Context(
        database=create_adapter(build_connection_string(config)),
        cache=cache,
        table_prefix=config.table_prefix,
        cache_prefix=config.cache_prefix,
    )
