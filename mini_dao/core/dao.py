"""Descriptor-driven data access facade over an adapter."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

from .contracts import AdapterPort, CompilerPort
from .errors import PreconditionError
from .query_builder import CompiledQuery, QueryCompiler
from .stream import RowStream
from .types import Descriptor, MaybeRow, Row, Rows, Values, WhereMapping

R = TypeVar("R")


def _present(**clauses: Any) -> dict[str, Any]:
    """Build a descriptor keeping only clauses that carry a value."""

    return {key: value for key, value in clauses.items() if value is not None and value != {}}


class Dao:
    """Compile query/command descriptors and run them on an adapter.

    A descriptor is a mapping of clause name to value, for example::

        {"select": "*", "from": "users", "where": {"active": True}, "limit": 10}

    Args:
        adapter: Driver-backed adapter (`Database`, `SQLAlchemyDatabase`, ...).
        compiler: Callable turning a descriptor into `CompiledQuery`. Defaults
            to `QueryCompiler(adapter.dialect)`.
    """

    def __init__(self, adapter: AdapterPort, compiler: Optional[CompilerPort] = None):
        self.adapter = adapter
        self.compiler = compiler if compiler is not None else QueryCompiler(adapter.dialect)

    def query(self, descriptor: Descriptor) -> Rows:
        """Run a read descriptor and return all rows."""

        return list(self.adapter.query(*self.sql(descriptor)))

    def command(self, descriptor: Descriptor) -> int:
        """Run a write descriptor and return the affected row count."""

        return self.adapter.command(*self.sql(descriptor))

    def stream(self, descriptor: Descriptor) -> RowStream[Row]:
        """Run a read descriptor and return a lazy row stream."""

        return self.adapter.stream(*self.sql(descriptor))

    def first(self, descriptor: Descriptor) -> MaybeRow:
        rows = self.query(descriptor)
        return rows[0] if rows else None

    def val(self, descriptor: Descriptor) -> Any:
        row = self.first(descriptor)
        if not row:
            return None
        return next(iter(row.values()))

    def any(self, descriptor: Descriptor) -> bool:
        return bool(self.first(descriptor))

    def count(self, descriptor: Descriptor, count_expr: Optional[str] = None) -> int:
        """Replace `select` with `COUNT(count_expr)` and return the number."""

        counted = {**descriptor, "select": f"COUNT({count_expr or '*'})"}
        return int(self.val(counted) or 0)

    def records(
        self,
        table: str,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Rows:
        """Select whole rows from `table`; absent clauses are omitted."""

        return self.query(
            _present(select="*", **{"from": table}, where=where, order=order, offset=offset, limit=limit)
        )

    def record(
        self,
        table: str,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> MaybeRow:
        rows = self.records(table, where, order, offset, 1)
        return rows[0] if rows else None

    def stream_records(
        self,
        table: str,
        where: Optional[WhereMapping] = None,
        order: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RowStream[Row]:
        """Lazy variant of `records`."""

        return self.stream(
            _present(select="*", **{"from": table}, where=where, order=order, offset=offset, limit=limit)
        )

    def amount(
        self,
        table: str,
        where: Optional[WhereMapping] = None,
        group: Optional[str] = None,
    ) -> int:
        return self.count(_present(**{"from": table}, where=where, group=group))

    def exists(self, table: str, where: Optional[WhereMapping]) -> bool:
        return self.any(_present(select="*", **{"from": table}, where=where, limit=1))

    def insert(self, table: str, values: Values) -> int:
        return self.command({"insert": table, "values": dict(values)})

    def insert_bulk(self, table: str, rows: Sequence[Values]) -> int:
        """Insert many rows with one multi-row statement."""

        if not rows:
            return 0
        return self.command({"insert": table, "values_bulk": [dict(row) for row in rows]})

    def update(self, table: str, set: Values, where: Optional[WhereMapping]) -> int:
        return self.command(_present(update=table, set=dict(set), where=where))

    def upsert(self, table: str, set: Values, where: WhereMapping) -> int:
        """Update rows matching `where`, or insert `where` merged with `set`.

        The existence check and the write are separate statements, so two
        concurrent callers can both insert. Run it inside `transaction()` with
        a unique constraint when that matters.
        """

        if self.exists(table, where):
            return self.update(table, set, where)
        return self.insert(table, {**where, **set})

    def delete(self, table: str, where: Optional[WhereMapping]) -> int:
        """Delete rows matching `where`.

        Raises:
            PreconditionError: If `where` is empty; unconditional deletes are refused.
        """

        if not where:
            raise PreconditionError(f"Refusing unconditional delete from {table!r}.")
        return self.command({"delete": table, "where": where})

    def transaction(self, work: Callable[[], R]) -> R:
        return self.adapter.transaction(work)

    def quote(self, value: Any) -> str:
        return self.adapter.quote(value)

    def descriptor(self, descriptor: Descriptor) -> Mapping[str, Any]:
        """Hook for subclasses to rewrite descriptors before compilation."""

        return descriptor

    def sql(self, descriptor: Descriptor) -> CompiledQuery:
        """Compile a descriptor into SQL and ordered binds."""

        compiled = self.compiler(self.descriptor(descriptor))
        if isinstance(compiled, CompiledQuery):
            return compiled
        sql, binds = compiled
        return CompiledQuery(sql, list(binds))
