"""Tests for DuckDB adapter."""

import pytest

from beaver.db.duckdb import DuckDBAdapter
from tests.models import User


def test_duckdb_adapter_memory():
    """Test DuckDB adapter with in-memory database."""
    adapter = DuckDBAdapter(":memory:")
    assert adapter.dialect == "duckdb"
    assert adapter.supports_returning is True
    assert adapter.raw_connection is not None


def test_duckdb_adapter_execute_with_params():
    adapter = DuckDBAdapter()
    statement = adapter.execute("SELECT 40 + ?", [2])
    assert statement.fetch_scalar_column() == 42


def test_duckdb_adapter_fetch_next_as():
    adapter = DuckDBAdapter()
    adapter.execute("CREATE TABLE users (id INTEGER, name VARCHAR, age INTEGER, email VARCHAR)")
    adapter.execute("INSERT INTO users VALUES (1, 'Ada', 36, NULL), (2, 'Linus', 54, NULL)")

    statement = adapter.prepare("SELECT * FROM users ORDER BY id")
    statement.execute()
    first = statement.fetch_next_as(User)
    second = statement.fetch_next_as(User)

    assert isinstance(first, User)
    assert (first.id, first.name, first.age) == (1, "Ada", 36)
    assert second.name == "Linus"
    assert statement.fetch_next_as(User) is None


def test_duckdb_adapter_returning():
    adapter = DuckDBAdapter()
    adapter.execute("CREATE SEQUENCE seq START 10")
    adapter.execute("CREATE TABLE t (id INTEGER DEFAULT nextval('seq'), x INTEGER)")
    statement = adapter.execute("INSERT INTO t (x) VALUES (?) RETURNING id", [5])
    assert statement.fetch_scalar_column() == 10


def test_duckdb_adapter_like_escape():
    adapter = DuckDBAdapter()
    statement = adapter.execute("SELECT CAST(? AS VARCHAR) LIKE ? ESCAPE '\\'", ["50%_off", "%50\\%\\_off%"])
    assert statement.fetch_scalar_column() is True
    statement = adapter.execute("SELECT CAST(? AS VARCHAR) LIKE ? ESCAPE '\\'", ["50Xoff", "%50\\%\\_off%"])
    assert statement.fetch_scalar_column() is False


def test_duckdb_adapter_has_no_last_insert_id():
    with pytest.raises(NotImplementedError):
        DuckDBAdapter().last_generated_id()


def test_duckdb_adapter_from_url_variations():
    """Test various memory URL formats."""
    urls = [
        "duckdb:///:memory:",
        "duckdb:///",
    ]
    for url in urls:
        adapter = DuckDBAdapter.from_url(url)
        assert adapter.execute("SELECT 1").fetch_scalar_column() == 1


def test_duckdb_adapter_from_url_file(tmp_path):
    path = tmp_path / "app.duckdb"
    adapter = DuckDBAdapter.from_url(f"duckdb://{path}")
    adapter.execute("CREATE TABLE t (x INT)")
    adapter.close()
    assert path.exists()


def test_duckdb_adapter_rejects_other_urls():
    with pytest.raises(ValueError):
        DuckDBAdapter.from_url("sqlite:///:memory:")


def test_duckdb_adapter_close():
    """Test closing connection."""
    adapter = DuckDBAdapter()
    adapter.execute("SELECT 1")
    adapter.close()
    # After close, new queries should fail
    with pytest.raises(Exception):
        adapter.execute("SELECT 1")
