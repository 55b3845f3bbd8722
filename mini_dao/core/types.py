"""Shared core type aliases used across contracts, dao, repository, and ports."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

BindValue = Union[None, bool, int, str]
Binds = Sequence[Any]

Row = Dict[str, Any]
Rows = List[Row]
MaybeRow = Optional[Row]

Descriptor = Mapping[str, Any]
WhereMapping = Mapping[str, Any]
Values = Mapping[str, Any]

StaticProvider = Callable[[], Mapping[str, Any]]
