"""Role checks guarding the admin routes."""
from abc import ABC, abstractmethod
from collections.abc import Collection

from fastapi import Request

from adminrest.config.settings import Settings, get_settings
from adminrest.core.exceptions import AuthenticationError, AuthorizationError
from adminrest.security.jwt_utils import decode_access_token


class RoleAuthorizer(ABC):
    """Grants or refuses a named role for the caller of a request."""

    @abstractmethod
    async def require_role(self, request: Request, role: str) -> None:
        """Return when the caller holds ``role``.

        Raises:
            AuthenticationError: If the caller cannot be identified
            AuthorizationError: If the caller lacks the role
        """


class JWTRoleAuthorizer(RoleAuthorizer):
    """Reads the ``role`` (or ``roles``) claim of a bearer token."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def require_role(self, request: Request, role: str) -> None:
        authorization = request.headers.get("Authorization")
        if not authorization:
            raise AuthenticationError("No authorization header provided")

        try:
            scheme, token = authorization.split()
        except ValueError:
            raise AuthenticationError("Invalid authorization header format")
        if scheme.lower() != "bearer":
            raise AuthenticationError("Invalid authentication scheme")

        payload = decode_access_token(token, self.settings)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        roles = _claimed_roles(payload)
        if role not in roles:
            raise AuthorizationError(
                f"Requires role: {role}",
                details={"required_role": role, "user_roles": sorted(roles)},
            )


def _claimed_roles(payload: dict) -> set[str]:
    roles: set[str] = set()
    role = payload.get("role")
    if isinstance(role, str):
        roles.add(role)
    claimed = payload.get("roles")
    if isinstance(claimed, Collection) and not isinstance(claimed, str):
        roles.update(str(item) for item in claimed)
    return roles
