"""Table-scoped repository mapping rows to items and collections."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, Type, TypeVar

from .conditions import merge_where
from .dao import Dao
from .errors import ConfigurationError
from .models import RowMapper, to_values
from .stream import RowStream
from .types import Row, StaticProvider, WhereMapping

T = TypeVar("T")


@dataclass(frozen=True)
class RepositoryConfig:
    """Immutable repository settings.

    Attributes:
        table: Target table name.
        item_factory: Callable building an item from a row. Takes precedence
            over `item_class`.
        item_class: Class called with each row as its only argument. Use
            `item_factory` to map columns onto keyword arguments instead.
        collection_class: Callable receiving the list of items.
        static: Constraints merged into every where clause and write payload.
        callable_static: Zero-argument callable producing extra constraints,
            evaluated on every call and merged after `static`.
    """

    table: Optional[str] = None
    item_factory: Optional[RowMapper[Any]] = None
    item_class: Optional[Type[Any]] = None
    collection_class: Optional[Callable[[list[Any]], Any]] = None
    static: Mapping[str, Any] = field(default_factory=dict)
    callable_static: Optional[StaticProvider] = None


class Repository(Generic[T]):
    """Row-mapped facade over `Dao` for one table.

    Instances are immutable: every `with_*` builder returns a new repository
    sharing the same `Dao`.

    Example::

        users = Repository(dao).with_table("users").with_item_class(User)
        user = users.find({"id": 1})
    """

    def __init__(self, dao: Dao, config: Optional[RepositoryConfig] = None, **options: Any):
        """Create repository.

        Args:
            dao: Shared data access object.
            config: Full configuration; individual fields may also be passed as
                keyword arguments (`table=...`, `item_class=...`).
        """

        base = config if config is not None else RepositoryConfig()
        self.dao = dao
        self.config = replace(base, **options) if options else base

    def _with(self, **changes: Any) -> Repository[Any]:
        return type(self)(self.dao, replace(self.config, **changes))

    def with_table(self, table: str) -> Repository[T]:
        return self._with(table=table)

    def with_item_class(self, item_class: Type[Any]) -> Repository[Any]:
        return self._with(item_class=item_class)

    def with_item_factory(self, item_factory: RowMapper[Any]) -> Repository[Any]:
        return self._with(item_factory=item_factory)

    def with_collection_class(self, collection_class: Callable[[list[Any]], Any]) -> Repository[T]:
        return self._with(collection_class=collection_class)

    def with_static(self, static: Mapping[str, Any]) -> Repository[T]:
        return self._with(static=dict(static))

    def with_callable_static(self, callable_static: StaticProvider) -> Repository[T]:
        return self._with(callable_static=callable_static)

    @property
    def table(self) -> str:
        """Configured table name.

        Raises:
            ConfigurationError: If no table was configured.
        """

        if not self.config.table:
            raise ConfigurationError("Repository table is not set; use with_table().")
        return self.config.table

    def find(
        self,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> Optional[T]:
        """Return the first matching item, or `None`."""

        row = self.dao.record(self.table, self._where(where), order=order, offset=offset)
        return self._item(row) if row else None

    def find_all(
        self,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Any:
        """Return all matching items wrapped in the configured collection."""

        rows = self.dao.records(
            self.table, self._where(where), order=order, offset=offset, limit=limit
        )
        return self._items(rows)

    def stream(
        self,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> RowStream[T]:
        """Return a lazy stream of items; close it when abandoning early."""

        rows = self.dao.stream_records(
            self.table, self._where(where), order=order, offset=offset, limit=limit
        )
        return rows.map(self._item)

    def count(
        self,
        where: Optional[WhereMapping] = None,
        group: Optional[str] = None,
        count_expr: Optional[str] = None,
    ) -> int:
        descriptor: dict[str, Any] = {"from": self.table}
        where = self._where(where)
        if where:
            descriptor["where"] = where
        if group:
            descriptor["group"] = group
        return self.dao.count(descriptor, count_expr)

    def exists(self, where: Optional[WhereMapping] = None) -> bool:
        return self.dao.exists(self.table, self._where(where))

    def insert(self, values: Mapping[str, Any] | Any) -> int:
        return self.dao.insert(self.table, self._values(to_values(values)))

    def insert_bulk(self, rows: Sequence[Mapping[str, Any] | Any]) -> int:
        return self.dao.insert_bulk(self.table, [self._values(to_values(row)) for row in rows])

    def update(
        self,
        set: Mapping[str, Any] | Any,
        where: Optional[WhereMapping],
        patch: bool = False,
    ) -> int:
        """Update matching rows.

        With `patch=True`, `None` values are dropped from `set`; when nothing
        remains no statement is issued and `0` is returned.
        """

        values = to_values(set)
        if patch:
            values = {key: value for key, value in values.items() if value is not None}
            if not values:
                return 0
        return self.dao.update(self.table, self._values(values), self._where(where))

    def upsert(self, set: Mapping[str, Any], where: WhereMapping) -> int:
        return self.dao.upsert(
            self.table, self._values(to_values(set)), self._where(where) or {}
        )

    def delete(self, where: WhereMapping) -> int:
        return self.dao.delete(self.table, self._where(where))

    def patch(self, set: Mapping[str, Any] | Any, where: WhereMapping) -> int:
        return self.update(set, where, patch=True)

    def patch_id(self, id: Any, set: Mapping[str, Any] | Any) -> int:
        return self.patch(set, {"id": id})

    def _static(self) -> list[Mapping[str, Any]]:
        parts = [self.config.static]
        if self.config.callable_static is not None:
            parts.append(self.config.callable_static())
        return parts

    def _where(self, where: Optional[WhereMapping]) -> Optional[dict[str, Any]]:
        return merge_where(where, *self._static()) or None

    def _values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return merge_where(values, *self._static())

    def _item(self, row: Row) -> Any:
        if self.config.item_factory is not None:
            return self.config.item_factory(row)
        if self.config.item_class is not None:
            return self.config.item_class(row)
        return row

    def _items(self, rows: list[Row]) -> Any:
        items = [self._item(row) for row in rows]
        if self.config.collection_class is not None:
            return self.config.collection_class(items)
        return items
