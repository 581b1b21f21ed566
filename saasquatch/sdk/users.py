"""Client for the user service (``/users/*``)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from saasquatch.sdk.base import AuthErrorCallback, BaseClient, TokenStore
from saasquatch.sdk.models import (
    CreateUserRequest,
    PaginatedResponse,
    PaginationParams,
    SDKConfig,
    UpdateUserRequest,
    User,
    UserFilters,
)


def _params(*models: Any) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for model in models:
        if model is not None:
            params.update(model.to_wire())
    return params


class UserClient(BaseClient):
    """CRUD and search over users.

    The base URL is ``user_service_url``, falling back to the API gateway.
    """

    def __init__(
        self,
        config: SDKConfig,
        tokens: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        refresher: Callable[[], Awaitable[Any]] | None = None,
        on_auth_error: AuthErrorCallback | None = None,
    ) -> None:
        super().__init__(
            config.user_base_url,
            config,
            tokens=tokens,
            transport=transport,
            refresher=refresher,
            on_auth_error=on_auth_error,
        )

    async def list(
        self,
        filters: UserFilters | dict | None = None,
        pagination: PaginationParams | dict | None = None,
    ) -> PaginatedResponse[User]:
        params = _params(
            UserFilters.model_validate(filters) if filters is not None else None,
            PaginationParams.model_validate(pagination) if pagination is not None else None,
        )
        data = await self.get("/users", params=params or None)
        return PaginatedResponse[User].model_validate(data)

    async def get_by_id(self, user_id: str) -> User:
        return User.model_validate(await self.get(f"/users/{user_id}"))

    async def create(self, data: CreateUserRequest | dict) -> User:
        payload = CreateUserRequest.model_validate(data).to_wire()
        return User.model_validate(await self.post("/users", payload))

    async def update(self, user_id: str, data: UpdateUserRequest | dict) -> User:
        payload = UpdateUserRequest.model_validate(data).to_wire()
        return User.model_validate(await self.patch(f"/users/{user_id}", payload))

    async def delete_user(self, user_id: str) -> None:
        await self.delete(f"/users/{user_id}")

    async def search(
        self,
        query: str,
        pagination: PaginationParams | dict | None = None,
    ) -> PaginatedResponse[User]:
        params = {"q": query}
        if pagination is not None:
            params.update(_params(PaginationParams.model_validate(pagination)))
        data = await self.get("/users/search", params=params)
        return PaginatedResponse[User].model_validate(data)
