"""SQL fragment generation.

Values never enter the SQL text: every builder returns the SQL together with
the ordered parameter list to bind to its ``?`` placeholders.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from beaver.core.predicate import Operator, Predicate, parse_ordering
from beaver.errors import InvalidArgumentError

LIKE_ESCAPE = "\\"

_COMPARISONS = {
    Operator.EQ: "=",
    Operator.NOT_EQ: "!=",
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GTE: ">=",
    Operator.LTE: "<=",
}


class QueryOptions(BaseModel):
    """Ordering, paging and caching options for a predicate query."""

    order_by: str | list[str] | None = Field(None, description="Ordering spec, e.g. 'name-, age'")
    limit: int | None = Field(None, ge=0, description="Maximum rows to return")
    offset: int = Field(0, ge=0, description="Rows to skip (only applied with a limit)")
    cache_ttl: int | None = Field(None, ge=0, description="Cache lifetime in seconds (None or 0 disables)")


def escape_like(value: Any) -> str:
    """Escape LIKE wildcards so ``value`` matches literally.

    Backslash, ``%`` and ``_`` are each prefixed with a backslash.
    """
    text = str(value)
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _paging_value(value: Any, name: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError, OverflowError):
            raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidArgumentError(f"{name} must not be negative, got {value}")
    return value


class QueryBuilder:
    """Render statements for one table.

    The table name is validated once by the caller (see
    :func:`beaver.core.entity.get_table_binding`) and substituted here.
    """

    def __init__(self, fields: Sequence[str], table: str | None = None, primary_key: str = "id"):
        """Initialize builder.

        Args:
            fields: Persistable field names, used to validate predicates and ordering
            table: Prefixed table name (needed only for full statements)
            primary_key: Primary key column
        """
        self.fields = list(fields)
        self.table = table
        self.primary_key = primary_key

    def build(
        self,
        predicate: Predicate,
        order_by: str | Sequence[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[str, list]:
        """Build a WHERE / ORDER BY / LIMIT fragment.

        Args:
            predicate: Search condition with values attached
            order_by: Ordering spec ("name-, age") or sequence of entries
            limit: Maximum rows; paging is omitted entirely without it
            offset: Rows to skip, only applied together with ``limit``

        Returns:
            Tuple of (sql_fragment, params)

        Raises:
            InvalidArgumentError: On unknown fields, wrong value counts or bad paging values
        """
        if predicate.field not in self.fields:
            raise InvalidArgumentError(f"Unknown field: {predicate.field!r}")
        predicate.check_arity()

        condition, params = self._condition(predicate)
        sql = f"WHERE {condition}"

        ordering = parse_ordering(order_by, self.fields)
        if ordering:
            sql += " ORDER BY " + ", ".join(f"{field} {direction}" for field, direction in ordering)

        if limit is not None:
            limit = _paging_value(limit, "limit")
            offset = _paging_value(offset or 0, "offset")
            sql += f" LIMIT {limit} OFFSET {offset}"

        return sql, params

    def _condition(self, predicate: Predicate) -> tuple[str, list]:
        field = predicate.field
        op = predicate.operator
        values = list(predicate.values)

        if op in _COMPARISONS:
            return f"{field} {_COMPARISONS[op]} ?", values
        if op == Operator.BETWEEN:
            return f"{field} BETWEEN ? AND ?", values
        if op == Operator.EXCLUSIVE_BETWEEN:
            return f"{field} > ? AND {field} < ?", values
        if op in (Operator.IN, Operator.NOT_IN):
            keyword = "IN" if op == Operator.IN else "NOT IN"
            return f"{field} {keyword} ({', '.join('?' * len(values))})", values

        escaped = escape_like(values[0])
        if op == Operator.STARTS_WITH:
            pattern = f"{escaped}%"
        elif op == Operator.ENDS_WITH:
            pattern = f"%{escaped}"
        else:
            pattern = f"%{escaped}%"
        return f"{field} LIKE ? ESCAPE '{LIKE_ESCAPE}'", [pattern]

    # Full statements used by the gateway

    def select_sql(self, where: str = "") -> str:
        sql = f"SELECT * FROM {self.table}"
        return f"{sql} {where}" if where else sql

    def select_by_pk_sql(self) -> str:
        return self.select_sql(f"WHERE {self.primary_key} = ?")

    def select_by_pks_sql(self, count: int) -> str:
        return self.select_sql(f"WHERE {self.primary_key} IN ({', '.join('?' * count)})")

    def insert_sql(self, columns: Sequence[str], returning: bool = False) -> str:
        if columns:
            placeholders = ", ".join("?" * len(columns))
            sql = f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {self.table} DEFAULT VALUES"
        if returning:
            sql += f" RETURNING {self.primary_key}"
        return sql

    def update_sql(self, columns: Sequence[str]) -> str:
        assignments = ", ".join(f"{column} = ?" for column in columns)
        return f"UPDATE {self.table} SET {assignments} WHERE {self.primary_key} = ?"

    def delete_sql(self) -> str:
        return f"DELETE FROM {self.table} WHERE {self.primary_key} = ?"
