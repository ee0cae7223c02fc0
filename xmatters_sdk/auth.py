from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Literal, Union
from urllib.parse import urlencode

from .config import AuthorizationCodeAuth, BasicAuth, OAuthTokens
from .exceptions import XmTokenError
from .http import HttpResponse

TOKEN_PATH = "/oauth2/token"
EXPIRY_MARGIN_SECONDS = 30.0
INITIAL_TOKEN_LIFETIME_SECONDS = 5 * 60.0
DEFAULT_EXPIRES_IN_SECONDS = 3600.0

AuthType = Literal["basic", "authCode", "oauth"]

TOKEN_REQUEST_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class TokenState:
    """OAuth credentials held by a request handler.

    Instances are immutable; a refresh produces a new instance which
    replaces the old one in a single assignment.
    """

    access_token: str
    refresh_token: str
    client_id: str
    expires_at: float
    scopes: tuple[str, ...] = ()

    def is_expired(self, now: float) -> bool:
        return self.expires_at - now <= EXPIRY_MARGIN_SECONDS

    def __repr__(self) -> str:
        return (
            f"TokenState(access_token='***', refresh_token='***', client_id={self.client_id!r}, "
            f"expires_at={self.expires_at!r}, scopes={self.scopes!r})"
        )


AuthState = Union[BasicAuth, AuthorizationCodeAuth, TokenState]


def initial_auth_state(auth: BasicAuth | AuthorizationCodeAuth | OAuthTokens, *, now: float) -> AuthState:
    if isinstance(auth, OAuthTokens):
        return TokenState(
            access_token=auth.access_token,
            refresh_token=auth.refresh_token,
            client_id=auth.client_id,
            expires_at=now + INITIAL_TOKEN_LIFETIME_SECONDS,
        )
    return auth


def auth_type(state: AuthState) -> AuthType:
    if isinstance(state, BasicAuth):
        return "basic"
    if isinstance(state, AuthorizationCodeAuth):
        return "authCode"
    return "oauth"


def authorization_header(state: AuthState) -> str | None:
    if isinstance(state, BasicAuth):
        raw = f"{state.username}:{state.password}".encode("utf-8")
        return f"Basic {base64.b64encode(raw).decode('ascii')}"
    if isinstance(state, TokenState):
        return f"Bearer {state.access_token}"
    return None


def password_grant_body(
    *, client_id: str, username: str, password: str, client_secret: str | None = None
) -> str:
    params = {
        "grant_type": "password",
        "client_id": client_id,
        "username": username,
        "password": password,
    }
    if client_secret:
        params["client_secret"] = client_secret
    return urlencode(params)


def authorization_code_grant_body(*, authorization_code: str, client_secret: str | None = None) -> str:
    params = {
        "grant_type": "authorization_code",
        "authorization_code": authorization_code,
    }
    if client_secret:
        params["client_secret"] = client_secret
    return urlencode(params)


def refresh_grant_body(state: TokenState) -> str:
    return urlencode(
        {
            "grant_type": "refresh_token",
            "refresh_token": state.refresh_token,
            "client_id": state.client_id,
        }
    )


def token_state_from_response(
    response: HttpResponse,
    *,
    client_id: str,
    now: float,
    error_cls: type[XmTokenError] = XmTokenError,
) -> TokenState:
    body: Any = response.body
    if not isinstance(body, dict):
        raise error_cls("Invalid token response format", response)
    access_token = body.get("access_token")
    refresh_token = body.get("refresh_token")
    if not isinstance(access_token, str) or not access_token or not isinstance(refresh_token, str) or not refresh_token:
        raise error_cls("Token response missing required fields", response)

    expires_in = body.get("expires_in")
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
        expires_in = DEFAULT_EXPIRES_IN_SECONDS
    scope = body.get("scope")
    scopes = tuple(scope.split()) if isinstance(scope, str) else ()
    return TokenState(
        access_token=access_token,
        refresh_token=refresh_token,
        client_id=client_id,
        expires_at=now + float(expires_in),
        scopes=scopes,
    )
