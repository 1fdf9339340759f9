"""Database layer for the SQL-backed key-value store."""

from fieldsales_kernel.db.base import Base, TrackedBase, UUIDString
from fieldsales_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from fieldsales_kernel.db.models import StoreEntry

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "StoreEntry",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
