"""Search predicates and the ``<field>__<operator>`` token grammar."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from beaver.core.entity import RESERVED_PREFIX
from beaver.errors import BadMethodCallError, InvalidArgumentError

TOKEN_SEPARATOR = "__"


class Operator(str, Enum):
    """Comparison operators understood by the query builder."""

    EQ = "eq"
    NOT_EQ = "not_eq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    BETWEEN = "between"
    EXCLUSIVE_BETWEEN = "exclusive_between"
    IN = "in"
    NOT_IN = "not_in"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    CONTAINS = "contains"

    @classmethod
    def from_suffix(cls, suffix: str) -> "Operator | None":
        """Look up an operator by token suffix, ignoring case and ``-``/``_`` spelling."""
        try:
            return cls(suffix.lower().replace("-", "_"))
        except ValueError:
            return None

    @property
    def arity(self) -> int | None:
        """Exact number of values required, or None for one-or-more."""
        if self in (Operator.IN, Operator.NOT_IN):
            return None
        if self in (Operator.BETWEEN, Operator.EXCLUSIVE_BETWEEN):
            return 2
        return 1


@dataclass(frozen=True)
class Predicate:
    """A single ``field operator values`` search condition."""

    field: str
    operator: Operator
    values: tuple = ()

    def with_values(self, values: Sequence[Any]) -> "Predicate":
        return Predicate(self.field, self.operator, tuple(values))

    def check_arity(self) -> None:
        """Raise InvalidArgumentError if the value count does not fit the operator."""
        count = len(self.values)
        arity = self.operator.arity
        if arity is None:
            if count < 1:
                raise InvalidArgumentError(
                    f"Operator '{self.operator.value}' on '{self.field}' requires at least one value"
                )
        elif count != arity:
            raise InvalidArgumentError(
                f"Operator '{self.operator.value}' on '{self.field}' requires exactly {arity} "
                f"value{'s' if arity > 1 else ''}, got {count}"
            )


class _Where:
    """Fluent predicate constructor returned by :func:`where`."""

    def __init__(self, field: str):
        self.field = field

    def _make(self, operator: Operator, values: tuple) -> Predicate:
        return Predicate(self.field, operator, values)

    def eq(self, value: Any) -> Predicate:
        return self._make(Operator.EQ, (value,))

    def not_eq(self, value: Any) -> Predicate:
        return self._make(Operator.NOT_EQ, (value,))

    def gt(self, value: Any) -> Predicate:
        return self._make(Operator.GT, (value,))

    def lt(self, value: Any) -> Predicate:
        return self._make(Operator.LT, (value,))

    def gte(self, value: Any) -> Predicate:
        return self._make(Operator.GTE, (value,))

    def lte(self, value: Any) -> Predicate:
        return self._make(Operator.LTE, (value,))

    def between(self, low: Any, high: Any) -> Predicate:
        return self._make(Operator.BETWEEN, (low, high))

    def exclusive_between(self, low: Any, high: Any) -> Predicate:
        return self._make(Operator.EXCLUSIVE_BETWEEN, (low, high))

    def in_(self, *values: Any) -> Predicate:
        return self._make(Operator.IN, values)

    def not_in(self, *values: Any) -> Predicate:
        return self._make(Operator.NOT_IN, values)

    def starts_with(self, value: str) -> Predicate:
        return self._make(Operator.STARTS_WITH, (value,))

    def ends_with(self, value: str) -> Predicate:
        return self._make(Operator.ENDS_WITH, (value,))

    def contains(self, value: str) -> Predicate:
        return self._make(Operator.CONTAINS, (value,))


def where(field: str) -> _Where:
    """Start a predicate on ``field``.

    Example:
        >>> where("age").between(18, 30)
        Predicate(field='age', operator=<Operator.BETWEEN: 'between'>, values=(18, 30))
    """
    return _Where(field)


def _is_field(name: str, fields: Sequence[str]) -> bool:
    return bool(name) and not name.startswith(RESERVED_PREFIX) and name in fields


def parse_token(token: str, fields: Sequence[str]) -> Predicate:
    """Decode a ``<field>[__<operator>]`` token into a value-less predicate.

    A token that names a field outright is an equality test on that field, so
    field names containing ``__`` still resolve. Otherwise the text after the
    last ``__`` must be a known operator and the text before it a known field.

    Args:
        token: Query token, e.g. ``"age__gte"`` or ``"name"``
        fields: Persistable field names of the entity

    Returns:
        Predicate with no values attached

    Raises:
        BadMethodCallError: If the token does not resolve to a field
    """
    if _is_field(token, fields):
        return Predicate(token, Operator.EQ)

    if TOKEN_SEPARATOR in token:
        candidate, suffix = token.rsplit(TOKEN_SEPARATOR, 1)
        operator = Operator.from_suffix(suffix)
        if operator is not None and _is_field(candidate, fields):
            return Predicate(candidate, operator)

    raise BadMethodCallError(f"Property not found: {token}")


def parse_ordering(spec: str | Sequence[str] | None, fields: Sequence[str]) -> tuple[tuple[str, str], ...]:
    """Parse ordering directives such as ``"name-, age"``.

    A trailing ``+`` (or nothing) sorts ascending, a trailing ``-`` descending.

    Args:
        spec: Comma-separated string or sequence of entries
        fields: Persistable field names of the entity

    Returns:
        Tuple of (field, "ASC" | "DESC") pairs

    Raises:
        InvalidArgumentError: If an entry names an unknown field
    """
    if not spec:
        return ()

    entries = spec.split(",") if isinstance(spec, str) else list(spec)

    ordering = []
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        direction = "ASC"
        if entry[-1] in ("+", "-"):
            direction = "ASC" if entry[-1] == "+" else "DESC"
            entry = entry[:-1].strip()
        if not _is_field(entry, fields):
            raise InvalidArgumentError(f"Unknown ordering field: {entry!r}")
        ordering.append((entry, direction))

    return tuple(ordering)
