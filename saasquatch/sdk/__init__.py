"""Typed async client for the auth and user services of a generated project.

Quick usage::

    from saasquatch.sdk import SaaSQuatchClient

    client = SaaSQuatchClient({"authServiceUrl": "http://localhost:3001"})
    await client.auth.login({"email": "user@example.com", "password": "secret"})
    me = await client.auth.get_me()
"""

from saasquatch.sdk.auth import AuthClient
from saasquatch.sdk.base import ApiError, BaseClient, TokenStore
from saasquatch.sdk.client import SaaSQuatchClient
from saasquatch.sdk.models import (
    AuthResponse,
    CreateUserRequest,
    LoginRequest,
    PaginatedResponse,
    PaginationParams,
    RegisterRequest,
    SDKConfig,
    Tokens,
    UpdateUserRequest,
    User,
    UserFilters,
    UserProfile,
)
from saasquatch.sdk.users import UserClient

__all__ = [
    "ApiError",
    "AuthClient",
    "AuthResponse",
    "BaseClient",
    "CreateUserRequest",
    "LoginRequest",
    "PaginatedResponse",
    "PaginationParams",
    "RegisterRequest",
    "SDKConfig",
    "SaaSQuatchClient",
    "TokenStore",
    "Tokens",
    "UpdateUserRequest",
    "User",
    "UserClient",
    "UserFilters",
    "UserProfile",
]
