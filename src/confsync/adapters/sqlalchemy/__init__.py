"""SQLAlchemy adapter for the backend event database."""

from __future__ import annotations

from .backend import SqlAlchemyBackendDatabase, create_backend_engine
from .tables import create_all_tables, metadata, people_table, talks_table

__all__ = [
    "SqlAlchemyBackendDatabase",
    "create_all_tables",
    "create_backend_engine",
    "metadata",
    "people_table",
    "talks_table",
]
