"""Aggregate SDK client."""

from __future__ import annotations

import httpx

from saasquatch.sdk.auth import AuthClient
from saasquatch.sdk.base import AuthErrorCallback, TokenCallback, TokenStore
from saasquatch.sdk.models import SDKConfig
from saasquatch.sdk.users import UserClient


class SaaSQuatchClient:
    """Entry point of the SDK, exposing ``auth`` and ``users``.

    Both service clients share one ``TokenStore``: logging in through
    ``auth`` authenticates ``users`` too, and a 401 from the user service is
    retried once after ``auth.refresh()``.

    Example::

        client = SaaSQuatchClient({
            "authServiceUrl": "http://localhost:3001",
            "userServiceUrl": "http://localhost:3002",
        })
        await client.auth.login({"email": "user@example.com", "password": "secret"})
        users = await client.users.list(pagination={"page": 1, "limit": 10})
    """

    def __init__(
        self,
        config: SDKConfig | dict,
        transport: httpx.AsyncBaseTransport | None = None,
        on_token_refresh: TokenCallback | None = None,
        on_auth_error: AuthErrorCallback | None = None,
    ) -> None:
        self._config = SDKConfig.model_validate(config)
        self.tokens = TokenStore(self._config.access_token, self._config.refresh_token)
        self.auth = AuthClient(
            self._config,
            tokens=self.tokens,
            transport=transport,
            on_token_refresh=on_token_refresh,
            on_auth_error=on_auth_error,
        )
        self.users = UserClient(
            self._config,
            tokens=self.tokens,
            transport=transport,
            refresher=self.auth.refresh,
            on_auth_error=on_auth_error,
        )

    @property
    def config(self) -> SDKConfig:
        """A copy of the connection settings."""
        return self._config.model_copy(deep=True)

    def set_access_token(self, token: str) -> None:
        self.tokens.access_token = token

    def set_refresh_token(self, token: str) -> None:
        self.tokens.refresh_token = token

    def clear_tokens(self) -> None:
        self.tokens.clear()

    def is_authenticated(self) -> bool:
        return bool(self.tokens.access_token)
