from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping

from .auth import (
    TOKEN_PATH,
    TOKEN_REQUEST_HEADERS,
    AuthState,
    AuthType,
    TokenState,
    auth_type,
    authorization_code_grant_body,
    authorization_header,
    initial_auth_state,
    password_grant_body,
    refresh_grant_body,
    token_state_from_response,
)
from .config import AuthConfig, AuthorizationCodeAuth, BasicAuth, TokenRefreshCallback
from .exceptions import XmApiError, XmNetworkError, XmTokenError, XmTokenRefreshError
from .http import HttpClient, HttpRequest, HttpResponse, QueryValue, RequestOptions
from .request_builder import RequestBuilder

BACKOFF_BASE_MS = 1000
BACKOFF_CAP_MS = 10000


class RequestHandler:
    """Sends requests built by a :class:`RequestBuilder` through an :class:`HttpClient`.

    Attaches the Authorization header for the active auth state, retries 429
    and 5xx responses with exponential backoff, and refreshes OAuth tokens
    once per call when the server answers 401. Everything that goes wrong is
    raised as :class:`XmApiError`.

    Concurrent calls that all observe an expired token each refresh it on
    their own; refreshes are not de-duplicated.
    """

    def __init__(
        self,
        client: HttpClient,
        builder: RequestBuilder,
        auth: AuthConfig,
        *,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        max_retries: int = 3,
        on_token_refresh: TokenRefreshCallback | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._builder = builder
        self._logger = logger or logging.getLogger("xmatters_sdk")
        self._max_retries = max_retries
        self._on_token_refresh = on_token_refresh
        self._sleep = sleep
        self._clock = clock
        self._auth: AuthState = initial_auth_state(auth, now=clock())

    @property
    def auth_type(self) -> AuthType:
        return auth_type(self._auth)

    @property
    def token_state(self) -> TokenState | None:
        state = self._auth
        return state if isinstance(state, TokenState) else None

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def is_token_expired(self) -> bool:
        state = self._auth
        return isinstance(state, TokenState) and state.is_expired(self._clock())

    async def send(self, options: RequestOptions) -> HttpResponse:
        attempt = options.retry_attempt
        while True:
            if self.is_token_expired():
                await self.refresh_token()

            request = self._builder.build(replace(options, retry_attempt=attempt))
            if not options.skip_auth:
                header = authorization_header(self._auth)
                if header is not None:
                    request.headers["Authorization"] = header

            response = await self._send_once(request)
            if response.status < 400:
                return response

            if response.status == 401 and isinstance(self._auth, TokenState) and attempt == 0:
                self._logger.debug("Received 401 for %s %s, refreshing access token", request.method, request.url)
                await self.refresh_token()
                attempt = 1
                continue

            if _is_retryable_status(response.status) and attempt < self._max_retries:
                delay_ms = _retry_delay_ms(response, attempt)
                self._logger.debug(
                    "Request failed with status %s, retrying in %sms (attempt %s/%s)",
                    response.status,
                    delay_ms,
                    attempt + 1,
                    self._max_retries,
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1
                continue

            raise XmApiError(error_message(response), response)

    async def get(self, **kwargs: Any) -> HttpResponse:
        return await self.send(_options("GET", **kwargs))

    async def post(self, **kwargs: Any) -> HttpResponse:
        return await self.send(_options("POST", **kwargs))

    async def put(self, **kwargs: Any) -> HttpResponse:
        return await self.send(_options("PUT", **kwargs))

    async def patch(self, **kwargs: Any) -> HttpResponse:
        return await self.send(_options("PATCH", **kwargs))

    async def delete(self, **kwargs: Any) -> HttpResponse:
        return await self.send(_options("DELETE", **kwargs))

    async def refresh_token(self) -> TokenState:
        state = self._auth
        if not isinstance(state, TokenState):
            raise XmTokenRefreshError("No refresh token available for token refresh")

        request = self._builder.build(
            RequestOptions(
                method="POST",
                path=TOKEN_PATH,
                headers=TOKEN_REQUEST_HEADERS,
                body=refresh_grant_body(state),
                skip_auth=True,
            )
        )
        try:
            response = await self._send_once(request)
            if not 200 <= response.status < 300:
                raise XmTokenRefreshError("Failed to refresh token", response)
            new_state = token_state_from_response(
                response,
                client_id=state.client_id,
                now=self._clock(),
                error_cls=XmTokenRefreshError,
            )
        except XmNetworkError as exc:
            self._logger.error("Failed to refresh token: %s", exc.cause)
            raise XmTokenRefreshError("Failed to refresh token", cause=exc.cause) from exc
        except XmApiError as exc:
            self._logger.error("Failed to refresh token: %s", exc)
            raise

        self._auth = new_state
        await self._notify_token_refresh(new_state)
        return new_state

    async def acquire_tokens(self) -> HttpResponse:
        """Exchange the configured credentials for OAuth tokens.

        Uses the password grant for basic credentials (``client_id`` is
        required) and the authorization-code grant for an authorization
        code. Afterwards every request is sent with the acquired bearer
        token.
        """
        state = self._auth
        if isinstance(state, BasicAuth):
            if not state.client_id:
                raise XmTokenError(
                    "client_id is required for the password grant; "
                    "automatic client id discovery is not supported"
                )
            client_id = state.client_id
            body = password_grant_body(
                client_id=state.client_id,
                username=state.username,
                password=state.password,
                client_secret=state.client_secret,
            )
        elif isinstance(state, AuthorizationCodeAuth):
            client_id = state.client_id
            body = authorization_code_grant_body(
                authorization_code=state.authorization_code,
                client_secret=state.client_secret,
            )
        else:
            raise XmTokenError("OAuth tokens have already been acquired")

        response = await self.post(path=TOKEN_PATH, headers=TOKEN_REQUEST_HEADERS, body=body, skip_auth=True)
        new_state = token_state_from_response(response, client_id=client_id, now=self._clock())
        self._auth = new_state
        await self._notify_token_refresh(new_state)
        return response

    async def _send_once(self, request: HttpRequest) -> HttpResponse:
        self._logger.debug("Sending %s %s (attempt %s)", request.method, request.url, request.retry_attempt)
        started = time.monotonic()
        try:
            response = await self._client.send(request)
        except XmApiError:
            raise
        except Exception as exc:
            self._logger.debug("%s %s failed: %s", request.method, request.url, exc)
            raise XmNetworkError("Request failed", cause=exc) from exc
        duration_ms = int((time.monotonic() - started) * 1000)
        self._logger.debug(
            "Received %s for %s %s in %sms", response.status, request.method, request.url, duration_ms
        )
        return response

    async def _notify_token_refresh(self, state: TokenState) -> None:
        callback = self._on_token_refresh
        if callback is None:
            return
        try:
            result = callback(state.access_token, state.refresh_token)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._logger.warning(
                "Error in on_token_refresh callback, continuing with refreshed token", exc_info=True
            )


def error_message(response: HttpResponse) -> str:
    body = response.body
    if isinstance(body, dict):
        reason = body.get("reason")
        message = body.get("message")
        if reason and message:
            return f"{reason}: {message}"
        if message:
            return str(message)
        if reason:
            return str(reason)
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return f"Request failed with status {response.status}"


def backoff_delay_ms(attempt: int) -> int:
    return min(BACKOFF_BASE_MS * 2**attempt, BACKOFF_CAP_MS)


def _retry_delay_ms(response: HttpResponse, attempt: int) -> int:
    if response.status == 429:
        retry_after = _parse_retry_after(response.header("retry-after"))
        if retry_after is not None:
            return retry_after * 1000
    return backoff_delay_ms(attempt)


def _parse_retry_after(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return max(0, int(float(value.strip())))
    except (ValueError, OverflowError):
        return None


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _options(
    method: str,
    *,
    path: str | None = None,
    full_url: str | None = None,
    query: Mapping[str, QueryValue] | None = None,
    headers: Mapping[str, str] | None = None,
    body: Any | None = None,
    skip_auth: bool = False,
) -> RequestOptions:
    return RequestOptions(
        method=method,  # type: ignore[arg-type]
        path=path,
        full_url=full_url,
        query=query,
        headers=headers,
        body=body,
        skip_auth=skip_auth,
    )
