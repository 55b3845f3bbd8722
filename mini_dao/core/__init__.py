"""Public core API for descriptor compilation, the dao, and repositories."""

from .binds import BindType, bind_type, bind_types
from .conditions import Condition, ConditionGroup, NotCondition, WhereExpression, parse_where
from .dao import Dao
from .errors import BindTypeError, ConfigurationError, DaoError, ExecutionError, PreconditionError
from .models import RowMapper, to_values
from .query_builder import CompiledQuery, QueryCompiler
from .repository import Repository, RepositoryConfig
from .stream import RowStream

__all__ = [
    "BindType",
    "BindTypeError",
    "CompiledQuery",
    "Condition",
    "ConditionGroup",
    "ConfigurationError",
    "Dao",
    "DaoError",
    "ExecutionError",
    "NotCondition",
    "PreconditionError",
    "QueryCompiler",
    "Repository",
    "RepositoryConfig",
    "RowMapper",
    "RowStream",
    "WhereExpression",
    "bind_type",
    "bind_types",
    "parse_where",
    "to_values",
]
