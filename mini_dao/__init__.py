"""mini_dao: descriptor-driven DAO and repositories over DB-API and SQLAlchemy."""

import logging

from .core import (
    BindType,
    BindTypeError,
    CompiledQuery,
    ConfigurationError,
    Dao,
    DaoError,
    ExecutionError,
    PreconditionError,
    QueryCompiler,
    Repository,
    RepositoryConfig,
    RowStream,
    bind_type,
)
from .ports import (
    Database,
    Dialect,
    MySQLDialect,
    PostgresDialect,
    SQLAlchemyDatabase,
    SQLiteDialect,
    dialect_for,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BindType",
    "BindTypeError",
    "CompiledQuery",
    "ConfigurationError",
    "Dao",
    "DaoError",
    "Database",
    "Dialect",
    "ExecutionError",
    "MySQLDialect",
    "PostgresDialect",
    "PreconditionError",
    "QueryCompiler",
    "Repository",
    "RepositoryConfig",
    "RowStream",
    "SQLAlchemyDatabase",
    "SQLiteDialect",
    "bind_type",
    "dialect_for",
]
