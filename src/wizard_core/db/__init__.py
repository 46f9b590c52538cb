"""Database connectivity: async SQLAlchemy engine and session management."""

from wizard_core.db.engine import create_async_engine_factory, get_async_session_factory
from wizard_core.db.tables import Base

__all__ = [
    "Base",
    "create_async_engine_factory",
    "get_async_session_factory",
]
