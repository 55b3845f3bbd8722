"""Exception types raised by adapters, the dao, and repositories."""

from __future__ import annotations

from typing import Any, Optional


class DaoError(Exception):
    """Base class for data-access errors raised by this package."""


class ExecutionError(DaoError):
    """Backend rejected a statement or the connection failed.

    Attributes:
        orig: Driver exception that caused the failure.
        sql: Statement that was being executed.
    """

    def __init__(self, message: str, *, orig: Optional[BaseException] = None, sql: str = ""):
        super().__init__(message)
        self.orig = orig
        self.sql = sql


class PreconditionError(DaoError, ValueError):
    """Operation refused because a safety precondition does not hold."""


class ConfigurationError(DaoError, RuntimeError):
    """Repository used before it was fully configured."""


class BindTypeError(TypeError):
    """Bind or quoted value is not one of `None`, `bool`, `int`, `str`."""

    def __init__(self, value: Any):
        super().__init__(
            f"Unexpected bind type {type(value).__name__}; "
            "only None, bool, int and str can be bound."
        )
        self.value = value
