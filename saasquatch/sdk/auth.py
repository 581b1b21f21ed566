"""Client for the auth service (``/auth/*``)."""

from __future__ import annotations

import httpx

from saasquatch.sdk.base import ApiError, AuthErrorCallback, BaseClient, TokenCallback, TokenStore
from saasquatch.sdk.models import (
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    SDKConfig,
    Tokens,
    UserProfile,
)


class AuthClient(BaseClient):
    """Register, log in, refresh tokens and read the current profile.

    Successful ``register``, ``login`` and ``refresh`` calls store the returned
    tokens and report them to ``on_token_refresh``.

    Example::

        auth = AuthClient(SDKConfig(auth_service_url="http://localhost:3001"))
        await auth.login(LoginRequest(email="a@example.com", password="secret"))
        me = await auth.get_me()
    """

    def __init__(
        self,
        config: SDKConfig,
        tokens: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_token_refresh: TokenCallback | None = None,
        on_auth_error: AuthErrorCallback | None = None,
    ) -> None:
        super().__init__(
            config.auth_service_url,
            config,
            tokens=tokens,
            transport=transport,
            on_auth_error=on_auth_error,
        )
        self._on_token_refresh = on_token_refresh

    def _store(self, tokens: Tokens) -> None:
        self.tokens.set(tokens)
        if self._on_token_refresh is not None:
            self._on_token_refresh(
                Tokens(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
            )

    async def register(self, data: RegisterRequest | dict) -> AuthResponse:
        payload = RegisterRequest.model_validate(data).to_wire()
        response = AuthResponse.model_validate(await self.post("/auth/register", payload))
        self._store(response)
        return response

    async def login(self, data: LoginRequest | dict) -> AuthResponse:
        payload = LoginRequest.model_validate(data).to_wire()
        response = AuthResponse.model_validate(await self.post("/auth/login", payload))
        self._store(response)
        return response

    async def refresh(self, refresh_token: str | None = None) -> Tokens:
        """Exchange a refresh token (the stored one by default) for new tokens.

        Raises:
            ApiError: If no refresh token is available or the server rejects it.
        """
        token = refresh_token or self.tokens.refresh_token
        if not token:
            raise ApiError("No refresh token available", status_code=401, error="Unauthorized")
        data = await self.request("POST", "/auth/refresh", json={"refreshToken": token}, retry=False)
        tokens = Tokens.model_validate(data)
        self._store(tokens)
        return tokens

    async def refresh_access_token(self) -> None:
        await self.refresh()

    async def logout(self) -> LogoutResponse:
        data = await self.post("/auth/logout")
        self.clear_tokens()
        return LogoutResponse.model_validate(data or {})

    async def get_me(self) -> UserProfile:
        return UserProfile.model_validate(await self.get("/auth/me"))
