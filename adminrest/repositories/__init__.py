"""Repositories package."""
from adminrest.repositories.base import ResourceStore, SortKey
from adminrest.repositories.sqlalchemy_store import SQLAlchemyStore

__all__ = [
    "ResourceStore",
    "SortKey",
    "SQLAlchemyStore",
]
