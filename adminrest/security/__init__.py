"""Security utilities for the admin role check."""
from .authorizer import JWTRoleAuthorizer, RoleAuthorizer
from .jwt_utils import create_access_token, decode_access_token

__all__ = [
    "JWTRoleAuthorizer",
    "RoleAuthorizer",
    "create_access_token",
    "decode_access_token",
]
