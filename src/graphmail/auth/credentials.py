"""
Bearer credential providers for the mail API.

Two trust models share one abstraction:

- ApplicationCredentialProvider: the adapter authenticates as itself with a
  client secret (OAuth2 client-credentials grant).
- DelegatedCredentialProvider: the adapter acts for a signed-in user. Tokens
  come from a caller supplied awaitable, a silent refresh-token grant, or the
  interactive device-code flow.

Both are httpx.Auth implementations, so the transport asks them for a token
immediately before each request and the provider decides whether the cached
token is still good.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TypeVar

import anyio
import httpx
from pydantic import BaseModel

from graphmail.auth.schemas import DeviceCodeResponse, TokenErrorResponse, TokenResponse
from graphmail.config import GRAPH_DEFAULT_SCOPE, GraphMailConfig, get_graph_mail_config
from graphmail.shared.exceptions import AuthError, GraphMailError
from graphmail.shared.logging import get_logger

logger = get_logger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
SLOW_DOWN_INCREMENT_SECONDS = 5
LOCK_POLL_INTERVAL_SECONDS = 0.05

_ModelT = TypeVar("_ModelT", bound=BaseModel)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token plus the state needed to decide when to refresh it."""

    token: str
    expires_at: datetime
    refresh_token: str | None = None

    def is_expired(self, leeway_seconds: int = 0) -> bool:
        now = datetime.now(timezone.utc)
        return now + timedelta(seconds=leeway_seconds) >= self.expires_at

    @classmethod
    def from_response(
        cls,
        response: TokenResponse,
        previous_refresh_token: str | None = None,
    ) -> AccessToken:
        return cls(
            token=response.access_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=response.expires_in),
            refresh_token=response.refresh_token or previous_refresh_token,
        )


TokenCallback = Callable[[], Awaitable["AccessToken | str"]]
DeviceCodeCallback = Callable[[DeviceCodeResponse], None]


class CredentialProvider(httpx.Auth, ABC):
    """Caches one AccessToken and attaches it to outgoing requests.

    The cached token is swapped as a whole under a thread lock, so concurrent
    sends (possibly on different event loops) never observe a partial update.
    Acquisition itself is serialised so a cold start does not authenticate
    once per concurrent caller.
    """

    grant_name = "unknown"

    def __init__(
        self,
        app_id: str,
        tenant_id: str,
        *,
        config: GraphMailConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not app_id or not tenant_id:
            raise ValueError("app_id and tenant_id are required")
        self._config = config or get_graph_mail_config()
        self._app_id = app_id
        self._tenant_id = tenant_id
        self._http_client = http_client
        self._token: AccessToken | None = None
        self._token_lock = threading.Lock()
        self._acquire_lock = threading.Lock()

    @property
    def current_token(self) -> AccessToken | None:
        with self._token_lock:
            return self._token

    def _store(self, token: AccessToken) -> None:
        with self._token_lock:
            self._token = token

    def _is_usable(self, token: AccessToken | None) -> bool:
        return token is not None and not token.is_expired(
            self._config.token_refresh_leeway_seconds
        )

    async def get_token(self) -> str:
        """Return a valid bearer token, acquiring or refreshing it if needed.

        Raises:
            AuthError: If the authority rejects the request or acquisition fails.
        """
        cached = self.current_token
        if cached is not None and self._is_usable(cached):
            return cached.token

        # Non-blocking attempts between sleeps keep the wait cancellable; a
        # cancelled waiter never holds the lock.
        while not self._acquire_lock.acquire(blocking=False):
            await anyio.sleep(LOCK_POLL_INTERVAL_SECONDS)
        try:
            cached = self.current_token
            if cached is not None and self._is_usable(cached):
                return cached.token

            fresh = await self._acquire(cached)
            self._store(fresh)
        finally:
            self._acquire_lock.release()

        logger.info(
            "Access token acquired",
            extra={
                "grant": self.grant_name,
                "app_id": self._app_id,
                "tenant_id": self._tenant_id,
                "expires_at": fresh.expires_at.isoformat(),
            },
        )
        return fresh.token

    @abstractmethod
    async def _acquire(self, previous: AccessToken | None) -> AccessToken:
        """Obtain a new token from the authority."""
        ...

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.get_token()
        request.headers["Authorization"] = f"Bearer {token}"
        yield request

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError(f"{type(self).__name__} requires an httpx.AsyncClient")

    async def _post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        try:
            if self._http_client is not None:
                return await self._http_client.post(url, data=data)
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.request_timeout_seconds)
            ) as client:
                return await client.post(url, data=data)
        except httpx.HTTPError as e:
            logger.error(
                "Token authority request failed",
                extra={"url": url, "error": str(e)},
            )
            raise AuthError(
                message=f"Token request failed: {e!s}",
                details={"url": url},
            ) from e

    @staticmethod
    def _parse(model: type[_ModelT], response: httpx.Response) -> _ModelT:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            raise AuthError(
                message="Unexpected response from token authority",
                details={"status_code": response.status_code},
            ) from e

    @staticmethod
    def _parse_error(response: httpx.Response) -> TokenErrorResponse:
        try:
            return TokenErrorResponse.model_validate(response.json())
        except ValueError:
            return TokenErrorResponse(
                error=f"http_{response.status_code}",
                error_description=response.text or None,
            )

    async def _request_token(
        self,
        data: dict[str, str],
        previous_refresh_token: str | None = None,
    ) -> AccessToken:
        response = await self._post_form(self._config.token_url(self._tenant_id), data)

        if response.status_code >= 400:
            error = self._parse_error(response)
            logger.error(
                "Token request rejected",
                extra={
                    "grant": data.get("grant_type"),
                    "status_code": response.status_code,
                    "error": error.error,
                },
            )
            raise AuthError(
                message=error.reason,
                details={"error": error.error, "status_code": response.status_code},
            )

        return AccessToken.from_response(
            self._parse(TokenResponse, response),
            previous_refresh_token=previous_refresh_token,
        )


class ApplicationCredentialProvider(CredentialProvider):
    """Client-credentials token for the application identity."""

    grant_name = "client_credentials"

    def __init__(
        self,
        app_id: str,
        tenant_id: str,
        client_secret: str,
        *,
        config: GraphMailConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not client_secret:
            raise ValueError("client_secret is required for the application credential")
        super().__init__(app_id, tenant_id, config=config, http_client=http_client)
        self._client_secret = client_secret

    async def _acquire(self, previous: AccessToken | None) -> AccessToken:
        return await self._request_token(
            {
                "grant_type": "client_credentials",
                "client_id": self._app_id,
                "client_secret": self._client_secret,
                "scope": GRAPH_DEFAULT_SCOPE,
            }
        )


def _log_device_code_prompt(device: DeviceCodeResponse) -> None:
    logger.warning(
        device.message
        or f"To sign in, open {device.verification_uri} and enter the code {device.user_code}",
        extra={"verification_uri": device.verification_uri},
    )


class DelegatedCredentialProvider(CredentialProvider):
    """Token for a signed-in user.

    Acquisition order:
        1. ``token_callback`` when supplied. A plain string result is used for
           one request only, so the callback runs again before the next one.
        2. Silent refresh-token grant when a refresh token is cached.
        3. Interactive device-code flow; the prompt goes to ``on_device_code``.
    """

    grant_name = "delegated"

    def __init__(
        self,
        app_id: str,
        tenant_id: str,
        *,
        scopes: list[str] | None = None,
        token_callback: TokenCallback | None = None,
        on_device_code: DeviceCodeCallback | None = None,
        config: GraphMailConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(app_id, tenant_id, config=config, http_client=http_client)
        self._scopes = scopes or self._config.scopes_list
        self._token_callback = token_callback
        self._on_device_code = on_device_code or _log_device_code_prompt

    async def _acquire(self, previous: AccessToken | None) -> AccessToken:
        if self._token_callback is not None:
            return await self._from_callback()

        if previous is not None and previous.refresh_token:
            try:
                return await self._refresh(previous.refresh_token)
            except AuthError as e:
                logger.warning(
                    "Silent token refresh failed, falling back to device code sign-in",
                    extra={"error": e.message},
                )

        return await self._device_code_flow()

    async def _from_callback(self) -> AccessToken:
        try:
            result = await self._token_callback()  # type: ignore[misc]
        except GraphMailError:
            raise
        except Exception as e:
            logger.exception("Delegated token callback failed")
            raise AuthError(message=f"Token acquisition failed: {e!s}") from e

        if isinstance(result, AccessToken):
            return result
        if not result:
            raise AuthError(message="Token acquisition returned an empty token")
        return AccessToken(token=result, expires_at=datetime.now(timezone.utc))

    async def _refresh(self, refresh_token: str) -> AccessToken:
        return await self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": self._app_id,
                "refresh_token": refresh_token,
                "scope": " ".join(self._scopes),
            },
            previous_refresh_token=refresh_token,
        )

    async def _device_code_flow(self) -> AccessToken:
        response = await self._post_form(
            self._config.device_code_url(self._tenant_id),
            {"client_id": self._app_id, "scope": " ".join(self._scopes)},
        )
        if response.status_code >= 400:
            error = self._parse_error(response)
            raise AuthError(
                message=f"Device code request failed: {error.reason}",
                details={"error": error.error, "status_code": response.status_code},
            )

        device = self._parse(DeviceCodeResponse, response)
        self._on_device_code(device)

        interval = device.interval
        timeout = min(device.expires_in, self._config.device_code_timeout_seconds)
        deadline = anyio.current_time() + timeout

        while anyio.current_time() < deadline:
            await anyio.sleep(interval)

            response = await self._post_form(
                self._config.token_url(self._tenant_id),
                {
                    "grant_type": DEVICE_CODE_GRANT,
                    "client_id": self._app_id,
                    "device_code": device.device_code,
                },
            )
            if response.status_code < 400:
                return AccessToken.from_response(self._parse(TokenResponse, response))

            error = self._parse_error(response)
            if error.error == "authorization_pending":
                continue
            if error.error == "slow_down":
                interval += SLOW_DOWN_INCREMENT_SECONDS
                continue

            logger.error(
                "Device code sign-in failed",
                extra={"error": error.error, "status_code": response.status_code},
            )
            raise AuthError(
                message=f"Device code sign-in failed: {error.reason}",
                details={"error": error.error},
            )

        raise AuthError(
            message="Device code sign-in timed out",
            code="DEVICE_CODE_TIMEOUT",
        )


def build_credential_provider(
    app_id: str,
    tenant_id: str,
    client_secret: str | None = None,
    *,
    config: GraphMailConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
    token_callback: TokenCallback | None = None,
    on_device_code: DeviceCodeCallback | None = None,
) -> CredentialProvider:
    """Select the trust model: a secret means application identity, no secret means delegated."""
    if client_secret:
        return ApplicationCredentialProvider(
            app_id,
            tenant_id,
            client_secret,
            config=config,
            http_client=http_client,
        )
    return DelegatedCredentialProvider(
        app_id,
        tenant_id,
        token_callback=token_callback,
        on_device_code=on_device_code,
        config=config,
        http_client=http_client,
    )
