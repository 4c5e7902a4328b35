"""Persistence gateway: save, delete and cached fetches for one entity type."""

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from beaver.core.cache_keys import CacheKeys
from beaver.core.context import Context
from beaver.core.entity import Entity, get_table_binding, persistable_fields
from beaver.core.predicate import parse_token
from beaver.core.query import QueryBuilder, QueryOptions
from beaver.db.base import BaseStatement
from beaver.errors import BadMethodCallError, InvalidArgumentError

logger = logging.getLogger(__name__)

# Positional order accepted by Gateway.dynamic_predicate
_DYNAMIC_ARGS = ("values", "order_by", "limit", "offset", "cache_ttl")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray, Mapping))


class Gateway:
    """Map one entity type onto its table.

    Example:
        >>> context = Context(database=DuckDBAdapter(), cache=MemoryCache())
        >>> users = Gateway(User, context)
        >>> users.save(User(name="Ada", age=36))
        >>> users.find_by("age__gte", 18, QueryOptions(order_by="name", limit=10))
    """

    def __init__(self, entity_type: type[Entity], context: Context):
        """Initialize gateway.

        Args:
            entity_type: Entity class with a table binding
            context: Database, cache and prefix configuration

        Raises:
            ConfigurationError: If the entity type has no valid table binding
        """
        self.entity_type = entity_type
        self.context = context
        self.binding = get_table_binding(entity_type)
        self.table = f"{context.table_prefix}{self.binding.table}"
        self.fields = persistable_fields(entity_type)
        self.builder = QueryBuilder(self.fields, self.table, self.binding.primary_key)
        self.keys = CacheKeys(self.table, context.cache_prefix)

    @property
    def primary_key(self) -> str:
        return self.binding.primary_key

    # Writes

    def save(self, entity: Entity, partial: Mapping[str, Any] | None = None) -> Entity:
        """Insert or update an entity.

        Unpersisted entities are inserted and receive their generated primary
        key; persisted entities are updated by primary key and their cache
        entry is dropped.

        Args:
            entity: Entity to write
            partial: Write only these field values; they are applied to
                ``entity`` once the statement succeeds

        Returns:
            The same entity

        Raises:
            InvalidArgumentError: If ``partial`` names unknown fields, fails
                validation, or the primary key of a persisted entity was changed
        """
        self._check_entity(entity)
        pk_name = self.primary_key

        if entity.is_persisted and entity.primary_key_value != entity._stored_pk:
            raise InvalidArgumentError(
                f"Primary key '{pk_name}' of a persisted entity cannot change "
                f"({entity._stored_pk!r} -> {entity.primary_key_value!r})"
            )

        if partial:
            probe = self._validate_partial(entity, partial)
            columns = list(partial)
            values = [getattr(probe, column) for column in columns]
        else:
            probe = None
            columns = persistable_fields(self.entity_type, entity)
            values = [getattr(entity, column) for column in columns]

        if not entity.is_persisted:
            new_pk = self._insert(columns, values)
            self._apply_partial(entity, partial, probe)
            setattr(entity, pk_name, new_pk)
            entity._flag_as_saved()
            return entity

        pk = entity.primary_key_value
        if pk_name in columns:
            index = columns.index(pk_name)
            columns.pop(index)
            values.pop(index)

        if columns:
            self._execute(self.builder.update_sql(columns), values + [pk])
        self._apply_partial(entity, partial, probe)
        self.invalidate(pk)
        return entity

    def delete(self, entity: Entity) -> None:
        """Delete an entity's row and mark the entity unpersisted."""
        self._check_entity(entity)
        pk = entity.primary_key_value
        self._execute(self.builder.delete_sql(), [pk])
        entity._flag_as_unsaved()
        self.invalidate(pk)

    def invalidate(self, *pks: Any) -> None:
        """Drop the single-entity cache entries for ``pks``."""
        for key in self.keys.invalidation_keys(pks):
            self._cache_delete(key)

    def _check_entity(self, entity: Entity) -> None:
        if not isinstance(entity, self.entity_type):
            raise InvalidArgumentError(
                f"Expected {self.entity_type.__name__} instance, got {type(entity).__name__}"
            )

    def _validate_partial(self, entity: Entity, partial: Mapping[str, Any]) -> Entity:
        unknown = [name for name in partial if name not in self.fields]
        if unknown:
            raise InvalidArgumentError(f"Unknown fields for {self.entity_type.__name__}: {', '.join(unknown)}")

        pk_name = self.primary_key
        if entity.is_persisted and pk_name in partial and partial[pk_name] != entity.primary_key_value:
            raise InvalidArgumentError(f"Primary key '{pk_name}' of a persisted entity cannot change")

        # Validate on a copy so a rejected value leaves the entity untouched
        probe = entity.model_copy()
        try:
            for name, value in partial.items():
                setattr(probe, name, value)
        except ValidationError as e:
            raise InvalidArgumentError(str(e)) from e
        return probe

    @staticmethod
    def _apply_partial(entity: Entity, partial: Mapping[str, Any] | None, probe: Entity | None) -> None:
        if not partial:
            return
        for name in partial:
            setattr(entity, name, getattr(probe, name))

    def _insert(self, columns: list[str], values: list) -> Any:
        database = self.context.require_database()
        returning = self.context.supports_returning
        statement = self._execute(self.builder.insert_sql(columns, returning=returning), values)

        if returning:
            return statement.fetch_scalar_column()
        if self.primary_key in columns and values[columns.index(self.primary_key)] is not None:
            return values[columns.index(self.primary_key)]
        return database.last_generated_id()

    # Reads

    def get(self, pk: Any, cache_ttl: int | None = None) -> Entity | None:
        """Fetch one entity by primary key.

        Args:
            pk: Primary key value
            cache_ttl: Cache the entity for this many seconds (None or 0 disables)

        Returns:
            Entity, or None if no row matches
        """
        caching = self._caching(cache_ttl)
        key = self.keys.pk(pk)

        if caching:
            cached = self._cache_get(key)
            if cached is not None:
                entity = self._decode(key, cached, self._decode_entity)
                if entity is not None:
                    return entity

        statement = self._execute(self.builder.select_by_pk_sql(), [pk])
        entity = statement.fetch_next_as(self.entity_type)
        if entity is None:
            return None
        entity._flag_as_saved()

        if caching:
            self._cache_set(key, self._encode_entity(entity), cache_ttl)
        return entity

    def get_array(self, ids: Any, *more_ids: Any, cache_ttl: int | None = None) -> dict[Any, Entity | None]:
        """Fetch several entities by primary key with one IN query.

        ``get_array([3, 1, 2])`` returns a dict keyed 3, 1, 2 in that order,
        with None for ids that have no row. Duplicate ids collapse into one
        entry. ``get_array(3, 1, 2)`` is the same lookup without caching.

        Args:
            ids: Sequence of primary keys, or the first of several positional ids
            *more_ids: Further positional ids
            cache_ttl: Cache the whole result for this many seconds (sequence form only)

        Returns:
            Dict of primary key to entity or None
        """
        if more_ids or not _is_sequence(ids):
            ids = [ids, *more_ids]
            cache_ttl = None
        ids = list(ids)

        result: dict[Any, Entity | None] = dict.fromkeys(ids)
        if not result:
            return result

        caching = self._caching(cache_ttl)
        key = self.keys.id_list(ids)

        if caching:
            cached = self._cache_get(key)
            if cached is not None:
                decoded = self._decode(key, cached, self._decode_map)
                if decoded is not None:
                    return decoded

        requested = list(result)
        by_text = {str(pk): pk for pk in requested}
        statement = self._execute(self.builder.select_by_pks_sql(len(requested)), requested)
        for entity in self._fetch_all(statement):
            pk = entity.primary_key_value
            if pk not in result:
                pk = by_text.get(str(pk), pk)
            if pk in result:
                result[pk] = entity

        if caching:
            self._cache_set(key, self._encode_map(result), cache_ttl)
        return result

    def select(self, where: str, params: Any = None, cache_ttl: int | None = None) -> dict[Any, Entity]:
        """Fetch entities matching a WHERE fragment.

        Args:
            where: SQL after ``SELECT * FROM <table>``, e.g. ``"WHERE age > ? ORDER BY name"``
            params: Values for the fragment's ``?`` placeholders (a scalar is wrapped)
            cache_ttl: Cache the whole result for this many seconds (None or 0 disables)

        Returns:
            Dict of primary key to entity in database order
        """
        if params is None:
            params = []
        elif _is_sequence(params):
            params = list(params)
        else:
            params = [params]
        where = where.strip()

        caching = self._caching(cache_ttl)
        key = self.keys.select(where, params)

        if caching:
            cached = self._cache_get(key)
            if cached is not None:
                decoded = self._decode(key, cached, self._decode_map)
                if decoded is not None:
                    return decoded

        statement = self._execute(self.builder.select_sql(where), params)
        result = {entity.primary_key_value: entity for entity in self._fetch_all(statement)}

        if caching:
            self._cache_set(key, self._encode_map(result), cache_ttl)
        return result

    def find_by(self, token: str, values: Any, options: QueryOptions | None = None) -> dict[Any, Entity]:
        """Fetch entities matching a ``<field>[__<operator>]`` token.

        Args:
            token: Field name with optional operator suffix, e.g. ``"age__gte"``
            values: Search value, or sequence of values for multi-value operators
            options: Ordering, paging and caching options

        Returns:
            Dict of primary key to entity

        Raises:
            BadMethodCallError: If the token does not resolve to a field
            InvalidArgumentError: On wrong value counts or unknown ordering fields
        """
        options = options or QueryOptions()
        predicate = parse_token(token, self.fields)
        values = list(values) if _is_sequence(values) else [values]

        where, params = self.builder.build(
            predicate.with_values(values),
            order_by=options.order_by,
            limit=options.limit,
            offset=options.offset,
        )
        return self.select(where, params, cache_ttl=options.cache_ttl)

    def dynamic_predicate(self, token: str, *args: Any) -> dict[Any, Entity]:
        """Positional form of :meth:`find_by`.

        Arguments are, in order: values, ordering spec, limit, offset, cache ttl.
        Only the values are required.

        Raises:
            BadMethodCallError: If the token is unknown or no values are given
        """
        predicate = parse_token(token, self.fields)
        if not args:
            raise BadMethodCallError("Missing arguments")
        if len(args) > len(_DYNAMIC_ARGS):
            raise BadMethodCallError(f"Too many arguments for {predicate.field}: {len(args)}")

        named = dict(zip(_DYNAMIC_ARGS, args))
        values = named.pop("values")
        named = {name: value for name, value in named.items() if value is not None}
        try:
            options = QueryOptions(**named)
        except ValidationError as e:
            raise InvalidArgumentError(str(e)) from e
        return self.find_by(token, values, options)

    # Statement helpers

    def _execute(self, sql: str, params: list | None = None) -> BaseStatement:
        database = self.context.require_database()
        params = params or []
        logger.debug("Executing on %s: %s (%d params)", self.table, sql, len(params))
        statement = database.prepare(sql)
        statement.execute(params)
        return statement

    def _fetch_all(self, statement: BaseStatement) -> list[Entity]:
        entities = []
        while True:
            entity = statement.fetch_next_as(self.entity_type)
            if entity is None:
                return entities
            entities.append(entity._flag_as_saved())

    # Cache helpers. The cache is an optimization: failures are logged and
    # treated as misses.

    def _caching(self, cache_ttl: int | None) -> bool:
        if cache_ttl is not None and cache_ttl < 0:
            raise InvalidArgumentError(f"cache_ttl must not be negative, got {cache_ttl}")
        return bool(cache_ttl) and self.context.cache is not None

    def _cache_get(self, key: str) -> bytes | None:
        try:
            value = self.context.cache.get(key)
        except Exception:
            logger.warning("Cache get failed for %s", key, exc_info=True)
            return None
        logger.debug("Cache %s: %s", "hit" if value is not None else "miss", key)
        return value

    def _cache_set(self, key: str, value: bytes, ttl: int) -> None:
        try:
            self.context.cache.set(key, value, int(ttl))
        except Exception:
            logger.warning("Cache set failed for %s", key, exc_info=True)

    def _cache_delete(self, key: str) -> None:
        if self.context.cache is None:
            return
        try:
            self.context.cache.delete(key)
        except Exception:
            logger.warning("Cache delete failed for %s", key, exc_info=True)

    def _decode(self, key: str, payload: bytes, decoder):
        try:
            return decoder(payload)
        except (ValueError, TypeError, KeyError):
            logger.warning("Discarding unreadable cache entry %s", key, exc_info=True)
            return None

    def _encode_entity(self, entity: Entity) -> bytes:
        return entity.model_dump_json().encode("utf-8")

    def _decode_entity(self, payload: bytes) -> Entity:
        return self.entity_type.model_validate_json(payload)._flag_as_saved()

    def _encode_map(self, result: Mapping[Any, Entity | None]) -> bytes:
        rows = [[pk, entity.model_dump(mode="json") if entity is not None else None] for pk, entity in result.items()]
        return json.dumps(rows, default=str).encode("utf-8")

    def _decode_map(self, payload: bytes) -> dict[Any, Entity | None]:
        result = {}
        for pk, data in json.loads(payload):
            result[pk] = self.entity_type.model_validate(data)._flag_as_saved() if data is not None else None
        return result
