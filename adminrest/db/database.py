"""Database connection and session management."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from adminrest.config.settings import Settings, get_settings
from adminrest.core.logging import get_logger

if TYPE_CHECKING:
    from adminrest.resources.registry import ResourceRegistry

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for models that ship with an admin deployment."""


def create_primary_engine(url: str | None = None, settings: Settings | None = None) -> AsyncEngine:
    """Create the database engine used by every resource store."""
    settings = settings or get_settings()
    url = url or settings.database_url

    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(
            url,
            echo=settings.debug,
            connect_args={"timeout": 30},
        )

        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_async_engine(
        url,
        echo=settings.debug,
        pool_size=20,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=300,
        pool_pre_ping=True,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, expire_on_commit=False)


async def init_db(registry: ResourceRegistry, bind: AsyncEngine):
    """Create the tables of every registered model."""
    metadatas = []
    for resource in registry:
        metadata = resource.model.metadata
        if metadata not in metadatas:
            metadatas.append(metadata)

    async with bind.begin() as conn:
        for metadata in metadatas:
            await conn.run_sync(metadata.create_all)

    logger.info("tables_created", metadata_count=len(metadatas))
