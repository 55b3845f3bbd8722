"""Where-clause primitives parsed from descriptor mappings.

A `where` mapping is read as follows:

- `{"col": value}` compares for equality; `None` becomes `IS NULL` and a
  list/tuple becomes `IN (...)`.
- `{"col:op": value}` applies a named operator (see `OPERATORS`).
- keys starting with `:and`, `:or` or `:not` hold a nested mapping or a list
  of nested mappings. Anything after the group name (`:or_2`) only keeps the
  key unique.

Top-level entries are combined with `AND`.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .types import WhereMapping


@dataclass(frozen=True)
class Condition:
    """Represents one SQL condition expression.

    Attributes:
        col: Raw column name.
        op: SQL operator (for example `=`, `IN`, `IS NULL`).
        value: Scalar value for binary operators.
        values: Sequence value for `IN`/`NOT IN`/`BETWEEN`.
        is_unary: Whether the operator is unary (`IS NULL`, `IS NOT NULL`).
    """

    col: str
    op: str
    value: Any = None
    values: Optional[Sequence[Any]] = None
    is_unary: bool = False


@dataclass(frozen=True)
class ConditionGroup:
    """Represents a grouped logical expression (`AND`/`OR`)."""

    operator: str
    items: tuple["WhereExpression", ...]


@dataclass(frozen=True)
class NotCondition:
    """Represents a negated expression."""

    item: "WhereExpression"


WhereExpression = Condition | ConditionGroup | NotCondition

OPERATORS = {
    "eq": "=",
    "neq": "<>",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "like": "LIKE",
    "notlike": "NOT LIKE",
    "in": "IN",
    "notin": "NOT IN",
    "between": "BETWEEN",
    "null": "IS NULL",
    "notnull": "IS NOT NULL",
}

_GROUPS = (":and", ":or", ":not")


def parse_where(where: Optional[WhereMapping]) -> list[WhereExpression]:
    """Parse a `where` mapping into condition expressions.

    Returns:
        Top-level expressions to be joined with `AND`. Empty for `None` or `{}`.

    Raises:
        ValueError: On an unknown operator or a malformed group.
    """

    if not where:
        return []
    if not isinstance(where, MappingABC):
        raise TypeError(f"where must be a mapping, got {type(where).__name__}.")
    return [_parse_entry(key, value) for key, value in where.items()]


def _parse_entry(key: str, value: Any) -> WhereExpression:
    if key.startswith(":"):
        return _parse_group(key, value)

    col, _, op_name = key.partition(":")
    if not col:
        raise ValueError(f"Where key {key!r} has no column name.")

    if not op_name:
        if value is None:
            return Condition(col=col, op="IS NULL", is_unary=True)
        if isinstance(value, (list, tuple)):
            return Condition(col=col, op="IN", values=list(value))
        return Condition(col=col, op="=", value=value)

    op = OPERATORS.get(op_name.lower())
    if op is None:
        raise ValueError(f"Unsupported where operator {op_name!r} in {key!r}.")

    if op in ("IS NULL", "IS NOT NULL"):
        # `col:null => False` reads as "col is not null".
        if value is False:
            op = "IS NOT NULL" if op == "IS NULL" else "IS NULL"
        return Condition(col=col, op=op, is_unary=True)
    if op in ("IN", "NOT IN"):
        if not isinstance(value, (list, tuple)):
            value = [value]
        return Condition(col=col, op=op, values=list(value))
    if op == "BETWEEN":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValueError(f"{key!r} expects a pair of bounds.")
        return Condition(col=col, op=op, values=list(value))
    if op == "=" and value is None:
        return Condition(col=col, op="IS NULL", is_unary=True)
    if op == "<>" and value is None:
        return Condition(col=col, op="IS NOT NULL", is_unary=True)
    return Condition(col=col, op=op, value=value)


def _parse_group(key: str, value: Any) -> WhereExpression:
    name = next((group for group in _GROUPS if key.lower().startswith(group)), None)
    if name is None:
        raise ValueError(f"Unsupported where group {key!r}.")

    items = _group_items(key, value)
    if name == ":not":
        inner = items[0] if len(items) == 1 else ConditionGroup("AND", items)
        return NotCondition(item=inner)
    return ConditionGroup(operator=name[1:].upper(), items=items)


def _group_items(key: str, value: Any) -> tuple[WhereExpression, ...]:
    if isinstance(value, MappingABC):
        items = parse_where(value)
    elif isinstance(value, (list, tuple)):
        items = []
        for part in value:
            if not isinstance(part, MappingABC):
                raise ValueError(f"{key!r} expects mappings, got {type(part).__name__}.")
            nested = parse_where(part)
            if len(nested) == 1:
                items.append(nested[0])
            elif nested:
                items.append(ConditionGroup("AND", tuple(nested)))
    else:
        raise ValueError(f"{key!r} expects a mapping or a list of mappings.")

    if not items:
        raise ValueError(f"Grouped condition {key!r} must contain at least one expression.")
    return tuple(items)


def merge_where(*parts: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge where mappings left to right; later keys win."""

    merged: dict[str, Any] = {}
    for part in parts:
        if part:
            merged.update(part)
    return merged
