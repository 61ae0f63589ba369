"""Relational persistence: ORM tables, engine setup and the database service."""

from .engine import create_engine, create_session_factory, init_db
from .service import DatabaseService
from .tables import Base

__all__ = [
    "Base",
    "DatabaseService",
    "create_engine",
    "create_session_factory",
    "init_db",
]
