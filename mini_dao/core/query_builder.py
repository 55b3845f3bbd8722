"""Descriptor-to-SQL compilation.

This module turns a query/command descriptor (a mapping of clause name to
value) into a SQL string and an ordered list of bind values. It keeps `Dao`
focused on orchestration while making SQL generation replaceable: any callable
with the same signature as `QueryCompiler.__call__` can be injected instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from .conditions import Condition, ConditionGroup, NotCondition, WhereExpression, parse_where
from .contracts import DialectPort
from .types import Descriptor

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

CLAUSES = (
    "select",
    "from",
    "where",
    "group",
    "order",
    "offset",
    "limit",
    "insert",
    "values",
    "values_bulk",
    "update",
    "set",
    "delete",
)


@dataclass(frozen=True)
class CompiledQuery:
    """Compiled SQL statement with its positional bind values."""

    sql: str
    binds: List[Any] = field(default_factory=list)

    def __iter__(self):
        # Allows `sql, binds = compiled`.
        yield self.sql
        yield self.binds


class _BindCollector:
    """Collects bind values and hands out dialect placeholders in order."""

    def __init__(self, dialect: DialectPort) -> None:
        self._dialect = dialect
        self.binds: List[Any] = []

    def add(self, value: Any) -> str:
        self.binds.append(value)
        return self._dialect.placeholder(len(self.binds))


class QueryCompiler:
    """Default descriptor compiler for a given dialect."""

    def __init__(self, dialect: DialectPort):
        self.dialect = dialect

    def __call__(self, descriptor: Descriptor) -> CompiledQuery:
        unknown = [key for key in descriptor if key not in CLAUSES]
        if unknown:
            raise ValueError(f"Unsupported descriptor clauses: {unknown}")

        collector = _BindCollector(self.dialect)
        if "insert" in descriptor:
            sql = self._insert(descriptor, collector)
        elif "update" in descriptor:
            sql = self._update(descriptor, collector)
        elif "delete" in descriptor:
            sql = self._delete(descriptor, collector)
        else:
            sql = self._select(descriptor, collector)
        return CompiledQuery(sql, collector.binds)

    def ident(self, name: str) -> str:
        """Quote a plain or dotted identifier; leave expressions untouched."""

        if not _IDENT.match(name):
            return name
        return ".".join(self.dialect.q(part) for part in name.split("."))

    def _select(self, descriptor: Descriptor, collector: _BindCollector) -> str:
        sql = f"SELECT {descriptor.get('select') or '*'}"
        if descriptor.get("from"):
            sql += f" FROM {self.ident(descriptor['from'])}"
        sql += compile_where(descriptor.get("where"), self, collector)
        if descriptor.get("group"):
            sql += f" GROUP BY {descriptor['group']}"
        if descriptor.get("order"):
            sql += f" ORDER BY {descriptor['order']}"
        sql += self._limit_offset(descriptor.get("limit"), descriptor.get("offset"), collector)
        return sql

    def _insert(self, descriptor: Descriptor, collector: _BindCollector) -> str:
        table = self.ident(descriptor["insert"])
        if descriptor.get("values_bulk"):
            rows = list(descriptor["values_bulk"])
            columns = list(rows[0].keys())
            for row in rows[1:]:
                if set(row.keys()) != set(columns):
                    raise ValueError("values_bulk rows must share the same columns.")
            groups = [
                "(" + ", ".join(collector.add(row[col]) for col in columns) + ")"
                for row in rows
            ]
            return f"INSERT INTO {table} ({self._columns(columns)}) VALUES {', '.join(groups)}"

        values: Optional[Mapping[str, Any]] = descriptor.get("values")
        if not values:
            raise ValueError("insert requires non-empty values or values_bulk.")
        placeholders = ", ".join(collector.add(value) for value in values.values())
        return f"INSERT INTO {table} ({self._columns(values.keys())}) VALUES ({placeholders})"

    def _update(self, descriptor: Descriptor, collector: _BindCollector) -> str:
        set_values: Optional[Mapping[str, Any]] = descriptor.get("set")
        if not set_values:
            raise ValueError("update requires non-empty set.")
        assignments = ", ".join(
            f"{self.ident(col)} = {collector.add(value)}" for col, value in set_values.items()
        )
        sql = f"UPDATE {self.ident(descriptor['update'])} SET {assignments}"
        return sql + compile_where(descriptor.get("where"), self, collector)

    def _delete(self, descriptor: Descriptor, collector: _BindCollector) -> str:
        sql = f"DELETE FROM {self.ident(descriptor['delete'])}"
        return sql + compile_where(descriptor.get("where"), self, collector)

    def _columns(self, columns: Iterable[str]) -> str:
        return ", ".join(self.ident(col) for col in columns)

    def _limit_offset(
        self,
        limit: Optional[int],
        offset: Optional[int],
        collector: _BindCollector,
    ) -> str:
        sql = ""
        if limit is not None:
            sql += f" LIMIT {collector.add(int(limit))}"
        elif offset is not None and self.dialect.no_limit is not None:
            sql += f" LIMIT {self.dialect.no_limit}"
        if offset is not None:
            sql += f" OFFSET {collector.add(int(offset))}"
        return sql


def compile_where(
    where: Optional[Mapping[str, Any]],
    compiler: QueryCompiler,
    collector: _BindCollector,
) -> str:
    """Compile a `where` mapping into a SQL `WHERE` fragment.

    Returns:
        The fragment with a leading space, or an empty string if no condition.
    """

    expressions = parse_where(where)
    if not expressions:
        return ""
    clauses = [_compile_expression(item, compiler, collector) for item in expressions]
    return f" WHERE {' AND '.join(clauses)}"


def _compile_expression(
    expression: WhereExpression,
    compiler: QueryCompiler,
    collector: _BindCollector,
) -> str:
    if isinstance(expression, ConditionGroup):
        parts = [
            f"({_compile_expression(item, compiler, collector)})" for item in expression.items
        ]
        return "(" + f" {expression.operator} ".join(parts) + ")"
    if isinstance(expression, NotCondition):
        return f"NOT ({_compile_expression(expression.item, compiler, collector)})"
    return _compile_condition(expression, compiler, collector)


def _compile_condition(
    condition: Condition,
    compiler: QueryCompiler,
    collector: _BindCollector,
) -> str:
    col_sql = compiler.ident(condition.col)

    if condition.is_unary:
        return f"{col_sql} {condition.op}"

    if condition.op in ("IN", "NOT IN"):
        values = list(condition.values or [])
        if not values:
            return "1=0" if condition.op == "IN" else "1=1"
        placeholders = ", ".join(collector.add(value) for value in values)
        return f"{col_sql} {condition.op} ({placeholders})"

    if condition.op == "BETWEEN":
        low, high = condition.values or (None, None)
        return f"{col_sql} BETWEEN {collector.add(low)} AND {collector.add(high)}"

    return f"{col_sql} {condition.op} {collector.add(condition.value)}"
