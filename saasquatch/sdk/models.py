"""Pydantic models for the SaaSQuatch service APIs.

Field names are snake_case in Python and camelCase on the wire; every model
accepts either spelling on input and serialises with the wire aliases.
"""

from __future__ import annotations

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-ready payload with camelCase keys and unset fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------


class SDKConfig(ApiModel):
    """Connection settings shared by every service client."""

    auth_service_url: str = Field(..., min_length=1)
    user_service_url: str | None = None
    api_gateway_url: str | None = None
    timeout: float = Field(default=30.0, gt=0, description="Seconds per request")
    headers: dict[str, str] = Field(default_factory=dict)
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def user_base_url(self) -> str:
        """Base URL of the user service: its own URL, else the gateway."""
        return self.user_service_url or self.api_gateway_url or self.auth_service_url


# ---------------------------------------------------------------------------
# Auth service
# ---------------------------------------------------------------------------


class RegisterRequest(ApiModel):
    email: str
    password: str
    name: str


class LoginRequest(ApiModel):
    email: str
    password: str


class Tokens(ApiModel):
    access_token: str
    refresh_token: str


class UserProfile(ApiModel):
    id: str
    email: str
    name: str
    created_at: str
    updated_at: str
    tenant_id: str | None = None


class AuthResponse(Tokens):
    user: UserProfile


class LogoutResponse(ApiModel):
    message: str = ""


# ---------------------------------------------------------------------------
# User service
# ---------------------------------------------------------------------------


class User(UserProfile):
    role: str | None = None
    is_active: bool | None = None


class CreateUserRequest(ApiModel):
    email: str
    name: str
    password: str
    role: str | None = None
    tenant_id: str | None = None


class UpdateUserRequest(ApiModel):
    name: str | None = None
    email: str | None = None
    role: str | None = None
    is_active: bool | None = None


class UserFilters(ApiModel):
    email: str | None = None
    name: str | None = None
    role: str | None = None
    tenant_id: str | None = None
    is_active: bool | None = None


class PaginationParams(ApiModel):
    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1)
    sort_by: str | None = None
    sort_order: Literal["asc", "desc"] | None = None


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedResponse(ApiModel, Generic[T]):
    data: list[T]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ValidationIssue(ApiModel):
    field: str
    message: str


class ErrorResponse(ApiModel):
    status_code: int
    error: str = ""
    message: str = ""
    validation: list[ValidationIssue] | None = None
