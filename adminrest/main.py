"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from adminrest.config.settings import Settings, get_settings
from adminrest.core.error_handlers import register_error_handlers
from adminrest.core.logging import configure_logging, get_logger
from adminrest.db.database import create_primary_engine, create_session_maker, init_db
from adminrest.middleware.request_id import RequestIDMiddleware
from adminrest.resources.registry import ResourceRegistry, load_registry
from adminrest.security.authorizer import JWTRoleAuthorizer, RoleAuthorizer
from adminrest.services.resource_controller import ResourceController
from adminrest.storage.object_storage import HttpObjectStorage, ObjectStorage

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: ResourceRegistry | None = None,
    authorizer: RoleAuthorizer | None = None,
    object_storage: ObjectStorage | None = None,
    engine: AsyncEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator can be injected; anything left out is built from
    settings. The resource registry comes from ``admin_registry`` when not
    passed in.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    if engine is None:
        engine = create_primary_engine(settings=settings)
    if registry is None:
        registry = load_registry(settings.admin_registry) if settings.admin_registry else ResourceRegistry()
    registry.bind(create_session_maker(engine))

    object_storage = object_storage or HttpObjectStorage(settings.object_storage_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        if settings.create_tables:
            await init_db(registry, engine)
        logger.info("admin_started", resources=[resource.name for resource in registry])

        yield

        await object_storage.close()
        await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Generic admin REST layer over registered SQLAlchemy models",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.registry = registry
    app.state.authorizer = authorizer or JWTRoleAuthorizer(settings)
    app.state.controller = ResourceController(settings, object_storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name, "resources": len(registry)}

    from adminrest.api.routes import admin_router

    app.include_router(admin_router, prefix=settings.admin_prefix, tags=["Admin"])

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("adminrest.main:create_app", factory=True, host="0.0.0.0", port=8000)
