"""Four-way classification of bind values."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Sequence

from .errors import BindTypeError


class BindType(str, Enum):
    """Backend-neutral parameter type tag."""

    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRING = "string"


def bind_type(value: Any) -> BindType:
    """Return the type tag for one bind value.

    `bool` is checked before `int` because it is an `int` subclass.

    Raises:
        BindTypeError: If the value is not `None`, `bool`, `int` or `str`.
    """

    if value is None:
        return BindType.NULL
    if isinstance(value, bool):
        return BindType.BOOLEAN
    if isinstance(value, int):
        return BindType.INTEGER
    if isinstance(value, str):
        return BindType.STRING
    raise BindTypeError(value)


def bind_types(binds: Sequence[Any]) -> List[BindType]:
    """Classify every bind value, failing on the first unsupported one."""

    return [bind_type(value) for value in binds]
