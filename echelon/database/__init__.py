"""Database package for connection and session management."""

from echelon.database.database import (
    DatabaseConfig,
    dispose_engine,
    ensure_admin,
    get_db,
    get_db_context,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    "DatabaseConfig",
    "dispose_engine",
    "ensure_admin",
    "get_db",
    "get_db_context",
    "get_engine",
    "get_session_factory",
    "init_db",
]
