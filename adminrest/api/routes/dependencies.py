"""Shared dependencies for the admin routes."""
from fastapi import Depends, Request

from adminrest.config.settings import Settings
from adminrest.core.exceptions import NotFoundError
from adminrest.core.logging import add_log_context
from adminrest.resources.registry import Resource, ResourceRegistry
from adminrest.security.authorizer import RoleAuthorizer
from adminrest.services.resource_controller import ResourceController


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ResourceRegistry:
    return request.app.state.registry


def get_controller(request: Request) -> ResourceController:
    return request.app.state.controller


def get_authorizer(request: Request) -> RoleAuthorizer:
    return request.app.state.authorizer


async def require_admin_role(
    request: Request,
    authorizer: RoleAuthorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Let the request through only when the caller holds the configured admin role.

    Raises:
        AuthenticationError: If the caller cannot be identified (401)
        AuthorizationError: If the caller lacks the role (403)
    """
    await authorizer.require_role(request, settings.admin_role)


async def get_resource(
    resource_name: str,
    _: None = Depends(require_admin_role),
    registry: ResourceRegistry = Depends(get_registry),
) -> Resource:
    """Resolve the ``resource_name`` path segment, after the role check.

    Raises:
        NotFoundError: If no resource is registered under that name (404)
    """
    resource = registry.get(resource_name)
    if resource is None:
        raise NotFoundError(
            "resource",
            f"Could not find resource: {resource_name}",
            {"resource": resource_name},
        )
    add_log_context(resource=resource.name)
    return resource
