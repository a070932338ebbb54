"""
Shared fixtures for the admin layer tests.

Each test gets its own SQLite database file so that the concurrent
operations of the admin layer run against separate connections.
"""
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from adminrest.config.settings import Settings
from adminrest.db.database import Base, create_primary_engine, create_session_maker
from adminrest.main import create_app
from adminrest.resources.registry import ResourceRegistry
from adminrest.security.jwt_utils import create_access_token
from adminrest.services.resource_controller import ResourceController
from adminrest.storage.object_storage import ObjectStorage
from tests.models import Article, Author


@pytest.fixture
def settings():
    return Settings(database_url="sqlite+aiosqlite://", create_tables=False)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_primary_engine(f"sqlite+aiosqlite:///{tmp_path / 'admin.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def registry(session_maker):
    registry = ResourceRegistry(session_maker)
    registry.register(Author)
    registry.register(Article, populate=("author",))
    return registry


@pytest.fixture
def object_storage():
    storage = AsyncMock(spec=ObjectStorage)
    storage.get_file.return_value = b""
    return storage


@pytest.fixture
def controller(settings, object_storage):
    return ResourceController(settings, object_storage)


@pytest_asyncio.fixture
async def seeded(registry):
    """Two authors and three articles."""
    authors = registry.get("Author").store
    articles = registry.get("Article").store

    ada = await authors.create(
        {"name": "Ada Lovelace", "email": "ada@example.com", "password": "s3cret", "salt": "pepper"}
    )
    alan = await authors.create(
        {"name": "Alan Turing", "email": "alan@example.com", "password": "hunter2", "salt": "salt"}
    )
    first = await articles.create(
        {"title": "Notes", "views": 10, "published": True, "tags": ["math"], "author_id": ada["id"]}
    )
    second = await articles.create(
        {"title": "Computing Machinery", "views": 250, "published": True, "tags": ["ai"], "author_id": alan["id"]}
    )
    draft = await articles.create(
        {"title": "Draft", "views": 0, "published": False, "author_id": alan["id"]}
    )
    return {
        "ada": ada,
        "alan": alan,
        "articles": [first, second, draft],
    }


@pytest.fixture
def admin_token(settings):
    return create_access_token({"sub": "1", "role": "admin"}, settings=settings)


@pytest.fixture
def app(settings, registry, object_storage, engine):
    return create_app(
        settings=settings,
        registry=registry,
        object_storage=object_storage,
        engine=engine,
    )


@pytest_asyncio.fixture
async def client(app, admin_token):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as client:
        yield client
