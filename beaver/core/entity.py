"""Entity base model and table binding."""

from collections.abc import Mapping
from dataclasses import dataclass
from functools import cache
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict, PrivateAttr

from beaver.db.base import validate_identifier
from beaver.errors import ConfigurationError

if TYPE_CHECKING:
    from beaver.core.gateway import Gateway
    from beaver.core.query import QueryOptions

# Attributes starting with this marker are internal and never mapped to columns.
RESERVED_PREFIX = "_"


@dataclass(frozen=True)
class TableBinding:
    """Table name and primary key column of an entity type."""

    table: str
    primary_key: str


class Entity(BaseModel):
    """Base class for mapped entities.

    Subclasses declare their columns as pydantic fields and bind a table::

        class User(Entity):
            __table__ = "users"

            id: int | None = None
            name: str
            age: int

    ``__primary_key__`` defaults to ``"id"``.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    __table__: ClassVar[str | None] = None
    __primary_key__: ClassVar[str] = "id"

    _persisted: bool = PrivateAttr(default=False)
    # Primary key value as last written to or read from storage
    _stored_pk: Any = PrivateAttr(default=None)

    @property
    def is_persisted(self) -> bool:
        """Whether this entity was written to or loaded from storage."""
        return self._persisted

    @property
    def primary_key_value(self) -> Any:
        return getattr(self, get_table_binding(type(self)).primary_key)

    def _flag_as_saved(self) -> "Entity":
        self._persisted = True
        self._stored_pk = self.primary_key_value
        return self

    def _flag_as_unsaved(self) -> "Entity":
        self._persisted = False
        self._stored_pk = None
        return self

    @classmethod
    def _gateway(cls) -> "Gateway":
        from beaver.core.context import require_current_context
        from beaver.core.gateway import Gateway

        return Gateway(cls, require_current_context())

    @classmethod
    def get(cls, pk: Any, cache_ttl: int | None = None) -> "Entity | None":
        """Fetch one entity by primary key using the current context."""
        return cls._gateway().get(pk, cache_ttl=cache_ttl)

    @classmethod
    def get_array(cls, ids: Any, *more_ids: Any, cache_ttl: int | None = None) -> dict[Any, "Entity | None"]:
        """Fetch entities by primary key, keyed in request order."""
        return cls._gateway().get_array(ids, *more_ids, cache_ttl=cache_ttl)

    @classmethod
    def select(cls, where: str, params: list | tuple | None = None, cache_ttl: int | None = None) -> dict:
        """Fetch entities matching a pre-built WHERE fragment."""
        return cls._gateway().select(where, params, cache_ttl=cache_ttl)

    @classmethod
    def find_by(cls, token: str, values: Any, options: "QueryOptions | None" = None) -> dict:
        """Fetch entities matching a ``<field>[__<operator>]`` token."""
        return cls._gateway().find_by(token, values, options)

    @classmethod
    def dynamic_predicate(cls, token: str, *args: Any) -> dict:
        """Positional form of :meth:`find_by`."""
        return cls._gateway().dynamic_predicate(token, *args)

    def save(self, partial: Mapping[str, Any] | None = None) -> "Entity":
        """Insert or update this entity using the current context."""
        return self._gateway().save(self, partial)

    def delete(self) -> None:
        """Delete this entity's row using the current context."""
        self._gateway().delete(self)


@cache
def get_table_binding(entity_type: type[Entity]) -> TableBinding:
    """Resolve and validate the table binding of an entity type.

    The result is memoized, so a binding never changes after first use.

    Raises:
        ConfigurationError: If no table is declared, an identifier is unsafe,
            or the primary key is not a declared field
    """
    table = getattr(entity_type, "__table__", None)
    if not table:
        raise ConfigurationError(f"Entity '{entity_type.__name__}' does not declare a __table__")

    primary_key = entity_type.__primary_key__
    try:
        validate_identifier(table, "table name")
        validate_identifier(primary_key, "primary key")
    except ValueError as e:
        raise ConfigurationError(f"Entity '{entity_type.__name__}': {e}") from e

    if primary_key not in entity_type.model_fields:
        raise ConfigurationError(
            f"Entity '{entity_type.__name__}': primary key '{primary_key}' is not a declared field"
        )

    for name in entity_type.model_fields:
        if name.startswith(RESERVED_PREFIX):
            continue
        try:
            validate_identifier(name, "column")
        except ValueError as e:
            raise ConfigurationError(f"Entity '{entity_type.__name__}': {e}") from e

    return TableBinding(table=table, primary_key=primary_key)


def persistable_fields(entity_type: type[Entity], instance: Entity | None = None) -> list[str]:
    """List the columns an entity type maps, in declaration order.

    Args:
        entity_type: Entity class
        instance: Pass an entity to apply insert rules: an unpersisted entity
            whose primary key is None omits the primary key so the database
            can generate it

    Returns:
        Field names

    Raises:
        ConfigurationError: If the entity type has no table binding
    """
    binding = get_table_binding(entity_type)
    fields = [name for name in entity_type.model_fields if not name.startswith(RESERVED_PREFIX)]

    if instance is not None and not instance.is_persisted and getattr(instance, binding.primary_key) is None:
        fields.remove(binding.primary_key)

    return fields
