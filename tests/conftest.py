"""Pytest configuration and fixtures."""

import pytest

from beaver import Context
from beaver.core.context import set_current_context
from beaver.db.duckdb import DuckDBAdapter
from beaver.db.sqlite import SQLiteAdapter
from tests.caches import RecordingCache
from tests.models import ARTICLES_DDL, SEED_USERS, USERS_DDL


def _seed(adapter, dialect):
    for statement in USERS_DDL[dialect]:
        adapter.execute(statement)
    adapter.execute(ARTICLES_DDL)
    for name, age, email in SEED_USERS:
        adapter.execute("INSERT INTO users (name, age, email) VALUES (?, ?, ?)", [name, age, email])


@pytest.fixture(autouse=True)
def reset_context():
    """Clear the current context before and after each test."""
    set_current_context(None)
    yield
    set_current_context(None)


@pytest.fixture
def duckdb_adapter():
    adapter = DuckDBAdapter()
    _seed(adapter, "duckdb")
    yield adapter
    adapter.close()


@pytest.fixture
def sqlite_adapter():
    adapter = SQLiteAdapter()
    _seed(adapter, "sqlite")
    yield adapter
    adapter.close()


@pytest.fixture(params=["duckdb", "sqlite"])
def adapter(request):
    """Seeded adapter for each supported local dialect."""
    return request.getfixturevalue(f"{request.param}_adapter")


@pytest.fixture
def cache():
    return RecordingCache()


@pytest.fixture
def context(adapter, cache):
    return Context(database=adapter, cache=cache)
