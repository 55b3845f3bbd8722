"""Concrete SQL dialect implementations for adapters and the query compiler."""

from __future__ import annotations

from typing import Any, Optional

from ...core.binds import BindType, bind_type


class Dialect:
    """Base dialect that defines quoting, placeholder, and literal behavior."""

    name: str = "generic"
    paramstyle: str = "qmark"
    quote_char: str = '"'
    no_limit: Optional[str] = None
    true_literal: str = "TRUE"
    false_literal: str = "FALSE"
    escape_backslash: bool = False

    def __init__(self, *, paramstyle: Optional[str] = None):
        if paramstyle is not None:
            self.paramstyle = paramstyle

    def q(self, ident: str) -> str:
        """Quote SQL identifier."""

        return f"{self.quote_char}{ident}{self.quote_char}"

    def placeholder(self, position: int) -> str:
        """Return parameter placeholder for the 1-based bind position."""

        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "format":
            return "%s"
        if self.paramstyle == "named":
            return f":b{position}"
        if self.paramstyle == "numeric":
            return f":{position}"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def quote_literal(self, value: Any) -> str:
        """Render one bind value as an escaped SQL literal."""

        tag = bind_type(value)
        if tag is BindType.NULL:
            return "NULL"
        if tag is BindType.BOOLEAN:
            return self.true_literal if value else self.false_literal
        if tag is BindType.INTEGER:
            return str(int(value))
        escaped = value.replace("'", "''")
        if self.escape_backslash:
            escaped = escaped.replace("\\", "\\\\")
        return f"'{escaped}'"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(paramstyle={self.paramstyle!r})"


class SQLiteDialect(Dialect):
    """SQLite dialect (`?` parameters, `LIMIT -1` for offset-only paging)."""

    name = "sqlite"
    paramstyle = "qmark"
    quote_char = '"'
    no_limit = "-1"
    true_literal = "1"
    false_literal = "0"


class PostgresDialect(Dialect):
    """PostgreSQL dialect (`%s` positional parameters)."""

    name = "postgres"
    paramstyle = "format"
    quote_char = '"'


class MySQLDialect(Dialect):
    """MySQL dialect (`%s` positional parameters, backtick identifiers)."""

    name = "mysql"
    paramstyle = "format"
    quote_char = "`"
    no_limit = "18446744073709551615"
    escape_backslash = True


_DIALECTS = {
    "sqlite": SQLiteDialect,
    "postgres": PostgresDialect,
    "postgresql": PostgresDialect,
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
}


def dialect_for(name: str, *, paramstyle: Optional[str] = None) -> Dialect:
    """Return the dialect registered under a backend name.

    Unknown names fall back to the generic `Dialect`.
    """

    dialect_cls = _DIALECTS.get(name.lower(), Dialect)
    return dialect_cls(paramstyle=paramstyle)
