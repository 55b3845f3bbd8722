"""DB-API adapter implementation for the core adapter port."""

from __future__ import annotations

import contextlib
import logging
import sys
from typing import Any, Callable, Iterator, Mapping, Sequence, Type, TypeVar

from ...core.binds import bind_types
from ...core.errors import ExecutionError
from ...core.stream import RowStream
from ...core.types import Binds, MaybeRow, Row, Rows
from .dialects import Dialect

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Database:
    """Thin DB-API wrapper implementing query, stream, command and transactions.

    Statements issued outside `atomic()`/`transaction()` on an idle connection
    are committed right after they run, so the connection is never left inside
    an implicit driver transaction. Inside a transaction the caller opened on
    the connection, nothing is committed by this adapter.
    """

    def __init__(self, conn: Any, dialect: Dialect):
        """Create database adapter.

        Args:
            conn: DB-API connection object (`sqlite3`, `psycopg`, `psycopg2`,
                `pymysql`, ...).
            dialect: Concrete SQL dialect instance.
        """

        self.conn: Any | None = conn
        self.dialect = dialect
        self._closed = False
        self._scope_depth = 0
        self._driver_error = _driver_error_class(conn)

    def _require_open_connection(self) -> Any:
        if self._closed or self.conn is None:
            raise RuntimeError("connection is closed")
        return self.conn

    def _should_begin_explicitly(self, conn: Any) -> bool:
        mode = _autocommit_mode(conn)
        if mode is not None:
            return mode
        if getattr(self.dialect, "name", "").lower() == "sqlite":
            return getattr(conn, "isolation_level", "") is None
        return False

    def in_transaction(self) -> bool:
        """Return whether a transaction is open on the connection."""

        if self._scope_depth:
            return True
        return _connection_in_transaction(self._require_open_connection())

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """Provide a flattened commit/rollback transaction scope.

        Reentrant use, or use while the caller already holds a transaction on
        the connection, runs inline without beginning anything new.
        """

        conn = self._require_open_connection()
        if self.in_transaction():
            self._scope_depth += 1
            try:
                yield
            finally:
                self._scope_depth -= 1
            return

        explicit = self._should_begin_explicitly(conn)
        if explicit:
            self._run(conn, "BEGIN")
        logger.debug("transaction begin")
        self._scope_depth += 1
        try:
            yield
        except BaseException:
            self._scope_depth -= 1
            if _connection_in_transaction(conn, default=True):
                logger.debug("transaction rollback")
                try:
                    self._finish(conn, explicit, commit=False)
                except ExecutionError:
                    logger.debug("rollback failed", exc_info=True)
            raise
        self._scope_depth -= 1
        self._finish(conn, explicit, commit=True)
        logger.debug("transaction commit")

    def transaction(self, work: Callable[[], R]) -> R:
        """Run `work` inside `atomic()` and return its result."""

        with self.atomic():
            return work()

    def query(self, sql: str, binds: Binds = ()) -> Rows:
        """Execute a read and return all rows as dictionaries."""

        with self._statement(sql, binds) as cur:
            rows = cur.fetchall()
            return [self._row_to_mapping(cur, row) for row in rows]

    def command(self, sql: str, binds: Binds = ()) -> int:
        """Execute a write and return the affected row count."""

        with self._statement(sql, binds) as cur:
            return max(int(getattr(cur, "rowcount", 0) or 0), 0)

    def stream(self, sql: str, binds: Binds = ()) -> RowStream[Row]:
        """Execute a read and return a lazy stream fetching one row per step.

        The cursor stays open until the stream is exhausted or closed; some
        drivers do not allow other statements on the connection meanwhile.
        """

        bind_types(binds)
        conn = self._require_open_connection()
        owned = not self.in_transaction()
        try:
            cur = self._execute(conn, sql, binds)
        except ExecutionError:
            if owned:
                self._discard(conn)
            raise

        failed = False

        def fetch() -> MaybeRow:
            nonlocal failed
            try:
                row = cur.fetchone()
            except self._driver_error as exc:
                failed = True
                raise ExecutionError(str(exc), orig=exc, sql=sql) from exc
            return None if row is None else self._row_to_mapping(cur, row)

        def release() -> None:
            _close_cursor(cur)
            if not owned or self._closed or self._scope_depth:
                return
            if failed:
                self._discard(conn)
            else:
                conn.commit()

        return RowStream(fetch, release)

    def quote(self, value: Any) -> str:
        """Return `value` as an escaped SQL literal for this dialect."""

        return self.dialect.quote_literal(value)

    @contextlib.contextmanager
    def _statement(self, sql: str, binds: Binds) -> Iterator[Any]:
        bind_types(binds)
        conn = self._require_open_connection()
        owned = not self.in_transaction()
        try:
            cur = self._execute(conn, sql, binds)
            try:
                yield cur
            finally:
                _close_cursor(cur)
        except ExecutionError:
            if owned:
                self._discard(conn)
            raise
        except self._driver_error as exc:
            if owned:
                self._discard(conn)
            raise ExecutionError(str(exc), orig=exc, sql=sql) from exc
        if owned:
            conn.commit()

    def _execute(self, conn: Any, sql: str, binds: Binds) -> Any:
        params = tuple(binds)
        logger.debug("execute %s (%d binds)", sql, len(params))
        cur = conn.cursor()
        try:
            if params:
                cur.execute(sql, self._params(params))
            else:
                cur.execute(sql)
        except self._driver_error as exc:
            _close_cursor(cur)
            logger.debug("execute failed: %s", exc)
            raise ExecutionError(str(exc), orig=exc, sql=sql) from exc
        return cur

    def _params(self, binds: Sequence[Any]) -> Sequence[Any] | Mapping[str, Any]:
        if self.dialect.paramstyle == "named":
            return {f"b{index}": value for index, value in enumerate(binds, start=1)}
        return tuple(binds)

    def _run(self, conn: Any, sql: str) -> None:
        cur = conn.cursor()
        try:
            cur.execute(sql)
        except self._driver_error as exc:
            raise ExecutionError(str(exc), orig=exc, sql=sql) from exc
        finally:
            _close_cursor(cur)

    def _finish(self, conn: Any, explicit: bool, *, commit: bool) -> None:
        if explicit:
            self._run(conn, "COMMIT" if commit else "ROLLBACK")
            return
        try:
            if commit:
                conn.commit()
            else:
                conn.rollback()
        except self._driver_error as exc:
            raise ExecutionError(str(exc), orig=exc) from exc

    def _discard(self, conn: Any) -> None:
        if not _connection_in_transaction(conn, default=True):
            return
        try:
            conn.rollback()
        except self._driver_error:
            logger.debug("rollback failed", exc_info=True)

    def _row_to_mapping(self, cursor: Any, row: Any) -> Row:
        """Normalize row object to a dictionary.

        Supports mapping rows directly, `sqlite3.Row`-like objects, and
        tuple/list rows via `cursor.description`.
        """

        if isinstance(row, Mapping):
            return dict(row)

        if isinstance(row, (tuple, list)):
            desc = getattr(cursor, "description", None)
            if not desc:
                raise TypeError(
                    "Cursor has no description; cannot map tuple rows to dict."
                )
            cols = [d[0] for d in desc]
            return dict(zip(cols, row))

        keys = getattr(row, "keys", None)
        if callable(keys):
            return {key: row[key] for key in keys()}

        raise TypeError(f"Unsupported row type: {type(row)}")

    def close(self) -> None:
        """Close underlying connection."""

        if self._closed:
            return
        conn = self.conn
        self._closed = True
        self.conn = None
        close = getattr(conn, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


def _driver_error_class(conn: Any) -> Type[Exception]:
    """Resolve the driver's DB-API `Error` base class from the connection type."""

    module_name = type(conn).__module__.split(".")[0].lstrip("_")
    module = sys.modules.get(module_name)
    error = getattr(module, "Error", None)
    if isinstance(error, type) and issubclass(error, Exception):
        return error
    return Exception


def _connection_in_transaction(conn: Any, *, default: bool = False) -> bool:
    in_tx = getattr(conn, "in_transaction", None)
    if isinstance(in_tx, bool):
        if in_tx and getattr(conn, "autocommit", None) is False:
            # sqlite3 with autocommit=False keeps a transaction open at all times.
            return default
        return in_tx
    if callable(in_tx):
        value = in_tx()
        if isinstance(value, bool):
            return value

    info = getattr(conn, "info", None)
    tx_status = getattr(info, "transaction_status", None)
    if tx_status is not None:
        # psycopg3: 0 = idle.
        return tx_status != 0

    module_name = type(conn).__module__.lower()
    status = getattr(conn, "status", None)
    if status is not None and "psycopg2" in module_name:
        # psycopg2: STATUS_READY == 1 means idle.
        return status != 1

    return default


def _autocommit_mode(conn: Any) -> bool | None:
    """Return the driver's autocommit mode, or `None` when it does not say.

    Handles PyMySQL/MySQLdb (`get_autocommit()`, `autocommit_mode`), psycopg
    and psycopg2 (`autocommit` attribute) and sqlite3 on Python 3.12+
    (`autocommit` attribute; the legacy `-1` setting is not a mode).
    """

    get_autocommit = getattr(conn, "get_autocommit", None)
    if callable(get_autocommit):
        return bool(get_autocommit())
    mode = getattr(conn, "autocommit_mode", None)
    if isinstance(mode, bool):
        return mode
    flag = getattr(conn, "autocommit", None)
    if isinstance(flag, bool):
        return flag
    return None


def _close_cursor(cur: Any) -> None:
    close = getattr(cur, "close", None)
    if callable(close):
        close()
