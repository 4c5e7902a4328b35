"""Tests for entity convenience methods bound to the current context."""

import pytest

from beaver import ConfigurationError, Context, QueryOptions, set_current_context
from tests.models import User


@pytest.fixture
def current(context):
    set_current_context(context)
    return context


def test_methods_require_a_context():
    with pytest.raises(ConfigurationError, match="No beaver context configured"):
        User.get(1)


def test_get(current):
    user = User.get(1)

    assert user.name == "Alice"
    assert user.is_persisted


def test_save_and_delete(current):
    user = User(name="Eve", age=30).save()

    assert user.id is not None
    assert User.get(user.id).name == "Eve"

    user.delete()

    assert User.get(user.id) is None
    assert not user.is_persisted


def test_partial_save(current):
    user = User.get(2)
    user.save({"email": "bob@example.com"})

    assert User.get(2).email == "bob@example.com"


def test_get_array(current):
    result = User.get_array([3, 1])

    assert list(result) == [3, 1]
    assert result[1].name == "Alice"


def test_select(current):
    result = User.select("WHERE age < ?", 18)

    assert list(result) == [2]


def test_find_by(current):
    result = User.find_by("age__gte", 18, QueryOptions(order_by="age-"))

    assert [user.name for user in result.values()] == ["Charlie", "Alice", "Dana"]


def test_dynamic_predicate(current):
    result = User.dynamic_predicate("name__starts_with", "D")

    assert [user.name for user in result.values()] == ["Dana"]


def test_with_context_block(adapter):
    with Context(database=adapter):
        assert User.get(1).name == "Alice"

    with pytest.raises(ConfigurationError):
        User.get(1)
