"""Database-backed record store package."""

from .database import DatabaseManager

from .record_store import (
    SqlAlchemyRecordStore,
    SqlAlchemyQuery,
    declared_type
)

__all__ = [
    "DatabaseManager",
    "SqlAlchemyRecordStore",
    "SqlAlchemyQuery",
    "declared_type"
]
