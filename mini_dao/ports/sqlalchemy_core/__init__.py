"""SQLAlchemy Core adapter export."""

from .database import SQLAlchemyDatabase

__all__ = ["SQLAlchemyDatabase"]
