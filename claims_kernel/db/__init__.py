"""Database layer - engine, base classes, and types."""

from claims_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from claims_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
