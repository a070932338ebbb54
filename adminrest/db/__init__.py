"""Database package."""
from adminrest.db.database import (
    Base,
    create_primary_engine,
    create_session_maker,
    init_db,
)

__all__ = [
    "Base",
    "create_primary_engine",
    "create_session_maker",
    "init_db",
]
