"""Tests for configuration loading and context construction."""

import json

import pytest
from pydantic import ValidationError

from beaver import Context, MemoryCache
from beaver.config import (
    BeaverConfig,
    DuckDBConnection,
    PostgreSQLConnection,
    SQLiteConnection,
    build_connection_string,
    build_context,
    create_adapter,
    find_config,
    get_adapter_class,
    load_config,
)
from beaver.db.duckdb import DuckDBAdapter
from beaver.db.postgres import PostgreSQLAdapter
from beaver.db.sqlite import SQLiteAdapter


def test_load_yaml_config(tmp_path):
    config_file = tmp_path / "beaver.yaml"
    config_file.write_text(
        """
connection:
  type: sqlite
  path: data/app.db
cache:
  type: memory
  max_entries: 100
table_prefix: app_
cache_prefix: myapp
"""
    )

    config = load_config(config_file)

    assert isinstance(config.connection, SQLiteConnection)
    assert config.connection.path == str((tmp_path / "data" / "app.db").resolve())
    assert config.cache.max_entries == 100
    assert config.table_prefix == "app_"
    assert config.cache_prefix == "myapp"


def test_load_json_config(tmp_path):
    config_file = tmp_path / "beaver.json"
    config_file.write_text(json.dumps({"connection": {"type": "duckdb", "path": ":memory:"}}))

    config = load_config(config_file)

    assert isinstance(config.connection, DuckDBConnection)
    assert config.connection.path == ":memory:"
    assert config.cache is None


def test_load_empty_config(tmp_path):
    config_file = tmp_path / "beaver.yaml"
    config_file.write_text("")

    config = load_config(config_file)

    assert config.connection is None
    assert config.table_prefix == ""


def test_load_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "beaver.yaml")


def test_load_unsupported_format(tmp_path):
    config_file = tmp_path / "beaver.toml"
    config_file.write_text("")

    with pytest.raises(ValueError, match="Unsupported config format"):
        load_config(config_file)


def test_invalid_connection_type():
    with pytest.raises(ValidationError):
        BeaverConfig(connection={"type": "oracle", "path": "x"})


def test_resolve_paths_keeps_memory_and_absolute(tmp_path):
    memory = BeaverConfig(connection=DuckDBConnection(path=":memory:")).resolve_paths(tmp_path)
    absolute = BeaverConfig(connection=SQLiteConnection(path="/var/app.db")).resolve_paths(tmp_path)

    assert memory.connection.path == ":memory:"
    assert absolute.connection.path == "/var/app.db"


def test_find_config_searches_parents(tmp_path):
    (tmp_path / "beaver.yml").write_text("table_prefix: app_\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config(nested) == (tmp_path / "beaver.yml").resolve()


def test_build_connection_string():
    assert build_connection_string(BeaverConfig()) == "duckdb:///:memory:"
    assert (
        build_connection_string(BeaverConfig(connection=SQLiteConnection(path=":memory:")))
        == "sqlite:///:memory:"
    )

    postgres = PostgreSQLConnection(host="db", database="app", username="beaver", password="secret")
    assert build_connection_string(BeaverConfig(connection=postgres)) == "postgres://beaver:secret@db:5432/app"

    no_password = PostgreSQLConnection(host="db", port=6543, database="app", username="beaver")
    assert build_connection_string(BeaverConfig(connection=no_password)) == "postgres://beaver@db:6543/app"


def test_create_adapter():
    duck = create_adapter("duckdb:///:memory:")
    lite = create_adapter("sqlite:///:memory:")
    try:
        assert isinstance(duck, DuckDBAdapter)
        assert isinstance(lite, SQLiteAdapter)
    finally:
        duck.close()
        lite.close()


def test_create_adapter_unknown_scheme():
    with pytest.raises(ValueError, match="Unsupported connection URL"):
        create_adapter("mysql://localhost/app")


def test_build_context():
    config = BeaverConfig(
        connection=SQLiteConnection(path=":memory:"),
        cache={"type": "memory", "max_entries": 5},
        table_prefix="app_",
        cache_prefix="myapp",
    )

    context = build_context(config)
    try:
        assert isinstance(context, Context)
        assert isinstance(context.database, SQLiteAdapter)
        assert isinstance(context.cache, MemoryCache)
        assert context.cache.max_entries == 5
        assert context.supports_returning is False
        assert context.table_prefix == "app_"
        assert context.cache_prefix == "myapp"
    finally:
        context.database.close()


def test_build_context_without_cache():
    context = build_context(BeaverConfig())
    try:
        assert context.cache is None
        assert context.supports_returning is True
    finally:
        context.database.close()


def test_build_connection_string_masks_password():
    postgres = PostgreSQLConnection(host="db", database="app", username="beaver", password="secret")
    config = BeaverConfig(connection=postgres)

    assert build_connection_string(config, mask_password=True) == "postgres://beaver:***@db:5432/app"
    assert "secret" in build_connection_string(config)


def test_get_adapter_class_does_not_connect():
    assert get_adapter_class("duckdb:///:memory:") is DuckDBAdapter
    assert get_adapter_class("sqlite:///app.db") is SQLiteAdapter
    assert get_adapter_class("postgresql://localhost/app") is PostgreSQLAdapter
    assert PostgreSQLAdapter.supports_returning is True
    assert SQLiteAdapter.supports_returning is False
