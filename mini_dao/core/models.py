"""Write-payload conversion and row mapper types used by `Repository`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, Dict, TypeVar

from .types import Row

T = TypeVar("T")

RowMapper = Callable[[Row], T]


def to_values(obj: Any) -> Dict[str, Any]:
    """Convert a write payload (mapping or dataclass instance) to a dict."""

    if isinstance(obj, Mapping):
        return dict(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    raise TypeError(
        f"Write payload must be a mapping or dataclass instance, got {type(obj).__name__}."
    )
