"""Public port exports for concrete adapter implementations."""

from .db_api import Database, Dialect, MySQLDialect, PostgresDialect, SQLiteDialect, dialect_for
from .sqlalchemy_core import SQLAlchemyDatabase

__all__ = [
    "Database",
    "SQLAlchemyDatabase",
    "Dialect",
    "SQLiteDialect",
    "PostgresDialect",
    "MySQLDialect",
    "dialect_for",
]
