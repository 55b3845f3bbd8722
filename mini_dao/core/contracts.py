"""Core port contracts used by adapters, the query compiler, and the dao."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Callable, Optional, Protocol, TypeVar

from .types import Binds, Descriptor, Rows

R = TypeVar("R")


class DialectPort(Protocol):
    """Dialect behavior required by query compilation and literal quoting."""

    name: str
    paramstyle: str
    no_limit: Optional[str]

    def q(self, ident: str) -> str: ...

    def placeholder(self, position: int) -> str: ...

    def quote_literal(self, value: Any) -> str: ...


class RowStreamPort(Protocol):
    """Lazy forward-only row iterator with explicit release."""

    def __iter__(self) -> "RowStreamPort": ...

    def __next__(self) -> Any: ...

    def close(self) -> None: ...


class AdapterPort(Protocol):
    """Execution contract implemented by every driver-backed adapter."""

    dialect: DialectPort

    def query(self, sql: str, binds: Binds = ()) -> Rows: ...

    def stream(self, sql: str, binds: Binds = ()) -> RowStreamPort: ...

    def command(self, sql: str, binds: Binds = ()) -> int: ...

    def atomic(self) -> AbstractContextManager[None]: ...

    def transaction(self, work: Callable[[], R]) -> R: ...

    def quote(self, value: Any) -> str: ...


class CompilerPort(Protocol):
    """Turns a query/command descriptor into SQL plus ordered binds."""

    def __call__(self, descriptor: Descriptor) -> Any: ...
