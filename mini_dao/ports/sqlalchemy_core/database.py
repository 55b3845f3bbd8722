"""SQLAlchemy Core adapter implementation for the core adapter port."""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import Boolean, Connection, Engine, Integer, String, bindparam, exc, text
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.types import NullType, TypeEngine

from ...core.binds import BindType, bind_type, bind_types
from ...core.errors import ExecutionError
from ...core.stream import RowStream
from ...core.types import Binds, MaybeRow, Row, Rows
from ..db_api.dialects import Dialect, dialect_for

logger = logging.getLogger(__name__)

R = TypeVar("R")

_TYPES: dict[BindType, Callable[[], TypeEngine[Any]]] = {
    BindType.NULL: NullType,
    BindType.BOOLEAN: Boolean,
    BindType.INTEGER: Integer,
    BindType.STRING: String,
}


class SQLAlchemyDatabase:
    """SQLAlchemy Core wrapper implementing query, stream, command and transactions.

    SQL handed to this adapter uses named placeholders `:b1`, `:b2`, ...
    numbered in bind order; the default compiler produces them from
    `self.dialect`. Each bind is typed from its four-way classification.

    Args:
        bind: SQLAlchemy `Connection`, or an `Engine` to open (and own) one.
        dialect: Optional dialect override; derived from the engine otherwise.
    """

    def __init__(self, bind: Connection | Engine, dialect: Dialect | None = None):
        self._owns_connection = isinstance(bind, Engine)
        self.conn: Connection | None = bind.connect() if isinstance(bind, Engine) else bind
        self.dialect = dialect or dialect_for(self.conn.dialect.name, paramstyle="named")
        self._closed = False
        self._scope_depth = 0

    def _require_open_connection(self) -> Connection:
        if self._closed or self.conn is None:
            raise RuntimeError("connection is closed")
        return self.conn

    def in_transaction(self) -> bool:
        """Return whether a transaction is open on the connection."""

        if self._scope_depth:
            return True
        return self._require_open_connection().in_transaction()

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """Provide a flattened commit/rollback transaction scope."""

        conn = self._require_open_connection()
        if self.in_transaction():
            self._scope_depth += 1
            try:
                yield
            finally:
                self._scope_depth -= 1
            return

        trans = conn.begin()
        logger.debug("transaction begin")
        self._scope_depth += 1
        try:
            yield
        except BaseException:
            self._scope_depth -= 1
            if trans.is_active:
                logger.debug("transaction rollback")
                try:
                    trans.rollback()
                except exc.SQLAlchemyError:
                    logger.debug("rollback failed", exc_info=True)
            raise
        self._scope_depth -= 1
        try:
            trans.commit()
        except exc.DBAPIError as err:
            raise _execution_error(err) from err
        logger.debug("transaction commit")

    def transaction(self, work: Callable[[], R]) -> R:
        """Run `work` inside `atomic()` and return its result."""

        with self.atomic():
            return work()

    def query(self, sql: str, binds: Binds = ()) -> Rows:
        """Execute a read and return all rows as dictionaries."""

        with self._statement(sql, binds) as result:
            return [dict(row._mapping) for row in result]

    def command(self, sql: str, binds: Binds = ()) -> int:
        """Execute a write and return the affected row count."""

        with self._statement(sql, binds) as result:
            return max(result.rowcount or 0, 0)

    def stream(self, sql: str, binds: Binds = ()) -> RowStream[Row]:
        """Execute a read with server-side cursor hints and stream rows lazily."""

        conn = self._require_open_connection()
        owned = not self.in_transaction()
        statement = self._text(sql, binds).execution_options(stream_results=True)
        try:
            result = conn.execute(statement)
        except exc.DBAPIError as err:
            if owned:
                self._discard(conn)
            raise _execution_error(err) from err

        failed = False

        def fetch() -> MaybeRow:
            nonlocal failed
            try:
                row = result.fetchone()
            except exc.DBAPIError as err:
                failed = True
                raise _execution_error(err) from err
            return None if row is None else dict(row._mapping)

        def release() -> None:
            result.close()
            if not owned or self._closed or self._scope_depth:
                return
            if failed:
                self._discard(conn)
            else:
                conn.commit()

        return RowStream(fetch, release)

    def quote(self, value: Any) -> str:
        """Return `value` as a literal rendered by the backend's type processors."""

        tag = bind_type(value)
        if tag is BindType.NULL:
            return "NULL"
        conn = self._require_open_connection()
        processor = _TYPES[tag]().literal_processor(conn.dialect)
        if processor is None:
            return self.dialect.quote_literal(value)
        return processor(value)

    def _text(self, sql: str, binds: Binds) -> TextClause:
        params = list(binds)
        tags = bind_types(params)
        logger.debug("execute %s (%d binds)", sql, len(params))
        statement = text(sql)
        if not params:
            return statement
        return statement.bindparams(
            *(
                bindparam(f"b{index}", value, type_=_TYPES[tag]())
                for index, (value, tag) in enumerate(zip(params, tags), start=1)
            )
        )

    @contextlib.contextmanager
    def _statement(self, sql: str, binds: Binds) -> Iterator[CursorResult[Any]]:
        conn = self._require_open_connection()
        owned = not self.in_transaction()
        statement = self._text(sql, binds)
        try:
            result = conn.execute(statement)
            try:
                yield result
            finally:
                result.close()
        except exc.DBAPIError as err:
            logger.debug("execute failed: %s", err)
            if owned:
                self._discard(conn)
            raise _execution_error(err) from err
        if owned:
            conn.commit()

    def _discard(self, conn: Connection) -> None:
        try:
            conn.rollback()
        except exc.SQLAlchemyError:
            logger.debug("rollback failed", exc_info=True)

    def close(self) -> None:
        """Close the connection when this adapter opened it from an engine."""

        if self._closed:
            return
        conn = self.conn
        self._closed = True
        self.conn = None
        if conn is not None and self._owns_connection:
            conn.close()

    def __enter__(self) -> SQLAlchemyDatabase:
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, tb: Any) -> None:
        self.close()


def _execution_error(err: exc.DBAPIError) -> ExecutionError:
    return ExecutionError(
        str(err.orig) if err.orig is not None else str(err),
        orig=err.orig if err.orig is not None else err,
        sql=str(err.statement or ""),
    )
