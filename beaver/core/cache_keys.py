"""Cache key derivation.

Keys look like ``<prefix>_BEAVER::<table>:<kind>:<identity>``:

* ``pk``  - single entity, identity is the primary key as text
* ``arr`` - id-list fetch, identity is a digest of the ordered id list
* ``sel`` - predicate fetch, identity is a digest of the SQL and ordered params

Only ``pk`` keys are invalidated on write; ``arr`` and ``sel`` entries live
until their TTL runs out.
"""

import hashlib
import json
from collections.abc import Iterable, Sequence
from typing import Any

KEY_NAMESPACE = "_BEAVER::"


def _tag(value: Any) -> Any:
    # Non-JSON scalars keep their type name so 1, "1" and Decimal("1") stay distinct.
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"__type__": "bytes", "value": bytes(value).hex()}
    if hasattr(value, "isoformat"):
        return {"__type__": type(value).__name__, "value": value.isoformat()}
    return {"__type__": type(value).__name__, "value": str(value)}


def canonical(values: Sequence[Any]) -> str:
    """Serialize a sequence to compact, order-preserving JSON."""
    return json.dumps(list(values), separators=(",", ":"), sort_keys=True, default=_tag)


def content_hash(text: str) -> str:
    """Hex SHA-1 digest of ``text``."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


class CacheKeys:
    """Derive cache keys for one table."""

    def __init__(self, table: str, prefix: str = ""):
        """Initialize key scheme.

        Args:
            table: Prefixed table name
            prefix: Application-wide cache key prefix
        """
        self.table = table
        self.prefix = prefix

    @property
    def base(self) -> str:
        return f"{self.prefix}{KEY_NAMESPACE}{self.table}"

    def pk(self, pk: Any) -> str:
        return f"{self.base}:pk:{pk}"

    def id_list(self, ids: Sequence[Any]) -> str:
        return f"{self.base}:arr:{content_hash(canonical(ids))}"

    def select(self, sql: str, params: Sequence[Any]) -> str:
        digest = content_hash(sql + "\n" + canonical(params))
        return f"{self.base}:sel:{digest}"

    def invalidation_keys(self, pks: Iterable[Any]) -> list[str]:
        """Single-entity keys to delete after writing ``pks``."""
        return [self.pk(pk) for pk in pks]
