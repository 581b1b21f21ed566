"""Shared HTTP plumbing for the SDK service clients.

``BaseClient`` wraps ``httpx.AsyncClient``: it attaches the bearer token from
a ``TokenStore`` to every request, retries a request exactly once after
refreshing the tokens when the server answers 401, and turns every error
response into an ``ApiError``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from saasquatch.sdk.models import ErrorResponse, SDKConfig, Tokens, ValidationIssue


TokenCallback = Callable[[Tokens], None]
AuthErrorCallback = Callable[[Exception], None]


class ApiError(Exception):
    """An error response (or transport failure) from a SaaSQuatch service.

    Attributes:
        status_code: HTTP status, ``0`` when no response was received.
        error: Short error name reported by the server.
        validation: Per-field validation issues, if the server sent any.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        error: str = "",
        validation: list[ValidationIssue] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error = error
        self.validation = validation or []
        super().__init__(message)

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        try:
            body = ErrorResponse.model_validate(
                {"statusCode": response.status_code, **response.json()}
            )
        except (TypeError, ValueError):
            return cls(
                response.text or response.reason_phrase,
                status_code=response.status_code,
                error=response.reason_phrase,
            )
        return cls(
            body.message or response.reason_phrase,
            status_code=response.status_code,
            error=body.error,
            validation=body.validation,
        )


@dataclass
class TokenStore:
    """Access and refresh tokens, shared by every client of one SDK instance."""

    access_token: str | None = None
    refresh_token: str | None = None

    def set(self, tokens: Tokens) -> None:
        self.access_token = tokens.access_token
        self.refresh_token = tokens.refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None


class BaseClient:
    """Base class for service clients.

    Args:
        base_url: Root URL of the service.
        config: SDK connection settings.
        tokens: Token store to read and update; a private one is created
            from ``config`` when omitted.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
        refresher: Coroutine function that refreshes ``tokens``; without it a
            401 is raised immediately.
        on_auth_error: Called with the error when a refresh attempt fails.
    """

    def __init__(
        self,
        base_url: str,
        config: SDKConfig,
        tokens: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        refresher: Callable[[], Awaitable[Any]] | None = None,
        on_auth_error: AuthErrorCallback | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.config = config
        self.tokens = tokens or TokenStore(config.access_token, config.refresh_token)
        self._transport = transport
        self._refresher = refresher
        self._on_auth_error = on_auth_error

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def set_access_token(self, token: str) -> None:
        self.tokens.access_token = token

    def set_refresh_token(self, token: str) -> None:
        self.tokens.refresh_token = token

    def clear_tokens(self) -> None:
        self.tokens.clear()

    def is_authenticated(self) -> bool:
        return bool(self.tokens.access_token)

    async def refresh_access_token(self) -> None:
        """Refresh the stored tokens; overridden by the auth client."""
        if self._refresher is None:
            raise ApiError("Token refresh not available", status_code=401, error="Unauthorized")
        await self._refresher()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            headers={"Content-Type": "application/json", **self.config.headers},
            transport=self._transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        if self.tokens.access_token:
            return {"Authorization": f"Bearer {self.tokens.access_token}"}
        return {}

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty).

        Raises:
            ApiError: On a transport failure or any 4xx/5xx response.
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    method, url, json=json, params=params, headers=self._auth_headers()
                )
        except httpx.TimeoutException as exc:
            raise ApiError(
                f"Request to {self.base_url}{url} timed out after {self.config.timeout}s",
                error="Timeout",
            ) from exc
        except httpx.TransportError as exc:
            raise ApiError(
                f"Cannot connect to {self.base_url}: {exc}", error="ConnectionError"
            ) from exc

        if response.status_code == 401 and retry and self.tokens.refresh_token:
            try:
                await self.refresh_access_token()
            except ApiError as exc:
                if self._on_auth_error is not None:
                    self._on_auth_error(exc)
                raise
            return await self.request(method, url, json=json, params=params, retry=False)

        if response.is_error:
            raise ApiError.from_response(response)
        if not response.content:
            return None
        return response.json()

    async def get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: Any = None) -> Any:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> Any:
        return await self.request("PUT", url, json=json)

    async def patch(self, url: str, json: Any = None) -> Any:
        return await self.request("PATCH", url, json=json)

    async def delete(self, url: str) -> Any:
        return await self.request("DELETE", url)
