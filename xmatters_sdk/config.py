from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
import re
from typing import Any, Awaitable, Callable, Mapping, Union
from urllib.parse import urlsplit

from .exceptions import XmConfigError
from .http import HttpClient

TokenRefreshCallback = Callable[[str, str], Union[None, Awaitable[None]]]

_HOSTNAME_PATTERN = re.compile(r"^.+\.xmatters\.com(\.au)?$", re.IGNORECASE)

_COMMON_OPTIONS = frozenset(
    {
        "hostname",
        "http_client",
        "logger",
        "default_headers",
        "max_retries",
        "on_token_refresh",
        "timeout_seconds",
    }
)
_AUTH_OPTIONS = frozenset(
    {
        "username",
        "password",
        "authorization_code",
        "client_id",
        "client_secret",
        "access_token",
        "refresh_token",
    }
)


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str
    client_id: str | None = None
    client_secret: str | None = None

    def __post_init__(self) -> None:
        _require_text("username", self.username)
        _require_text("password", self.password)
        _optional_text("client_id", self.client_id)
        _optional_text("client_secret", self.client_secret)

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r}, password='***', client_id={self.client_id!r})"


@dataclass(frozen=True)
class AuthorizationCodeAuth:
    authorization_code: str
    client_id: str
    client_secret: str | None = None

    def __post_init__(self) -> None:
        _require_text("authorization_code", self.authorization_code)
        _require_text("client_id", self.client_id)
        _optional_text("client_secret", self.client_secret)

    def __repr__(self) -> str:
        return f"AuthorizationCodeAuth(authorization_code='***', client_id={self.client_id!r})"


@dataclass(frozen=True)
class OAuthTokens:
    access_token: str
    refresh_token: str
    client_id: str

    def __post_init__(self) -> None:
        _require_text("access_token", self.access_token)
        _require_text("refresh_token", self.refresh_token)
        _require_text("client_id", self.client_id)

    def __repr__(self) -> str:
        return f"OAuthTokens(access_token='***', refresh_token='***', client_id={self.client_id!r})"


AuthConfig = Union[BasicAuth, AuthorizationCodeAuth, OAuthTokens]


@dataclass(frozen=True)
class XmApiConfig:
    hostname: str
    auth: AuthConfig
    http_client: HttpClient | None = None
    logger: logging.Logger | logging.LoggerAdapter | None = None
    default_headers: Mapping[str, str] = field(default_factory=dict)
    max_retries: int = 3
    on_token_refresh: TokenRefreshCallback | None = None
    timeout_seconds: float = 15.0

    def __post_init__(self) -> None:
        if not isinstance(self.hostname, str) or not is_valid_hostname(self.hostname):
            raise XmConfigError(
                "Invalid config: hostname must be a valid xMatters hostname "
                "(*.xmatters.com or *.xmatters.com.au)"
            )
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise XmConfigError("Invalid config: max_retries must be a non-negative integer")
        if not isinstance(self.auth, (BasicAuth, AuthorizationCodeAuth, OAuthTokens)):
            raise XmConfigError(
                "Invalid config: auth must be BasicAuth, AuthorizationCodeAuth or OAuthTokens"
            )
        if self.on_token_refresh is not None and not callable(self.on_token_refresh):
            raise XmConfigError("Invalid config: on_token_refresh must be callable")
        if not isinstance(self.default_headers, Mapping):
            raise XmConfigError("Invalid config: default_headers must be a mapping")
        if (
            isinstance(self.timeout_seconds, bool)
            or not isinstance(self.timeout_seconds, (int, float))
            or self.timeout_seconds <= 0
        ):
            raise XmConfigError("Invalid config: timeout_seconds must be a positive number")

    @property
    def base_url(self) -> str:
        return normalize_base_url(self.hostname)


def is_valid_hostname(hostname: str) -> bool:
    if not hostname:
        return False
    host = urlsplit(normalize_base_url(hostname)).hostname
    return bool(host) and _HOSTNAME_PATTERN.match(host) is not None


def normalize_base_url(hostname: str) -> str:
    hostname = hostname.strip().rstrip("/")
    if "://" not in hostname:
        hostname = f"https://{hostname}"
    return hostname


def load_config(options: Mapping[str, Any]) -> XmApiConfig:
    """Validate a flat option bag and turn it into an :class:`XmApiConfig`.

    Exactly one auth shape must be present: ``username``/``password``,
    ``authorization_code`` (+ ``client_id``), or
    ``access_token``/``refresh_token`` (+ ``client_id``).
    """
    if not isinstance(options, Mapping):
        raise XmConfigError("Invalid config: Expected a mapping of options")
    unknown = set(options) - _COMMON_OPTIONS - _AUTH_OPTIONS
    if unknown:
        raise XmConfigError(f"Invalid config: unknown options: {', '.join(sorted(unknown))}")

    has_basic = "username" in options or "password" in options
    has_auth_code = "authorization_code" in options
    has_tokens = "access_token" in options or "refresh_token" in options
    shape_count = sum((has_basic, has_auth_code, has_tokens))
    if shape_count == 0:
        raise XmConfigError(
            "Invalid config: Must provide either basic auth credentials, authorization code, or OAuth tokens"
        )
    if shape_count > 1:
        raise XmConfigError(
            "Invalid config: Cannot mix basic auth, authorization code, and OAuth token fields"
        )

    auth: AuthConfig
    if has_basic:
        auth = BasicAuth(
            username=options.get("username"),  # type: ignore[arg-type]
            password=options.get("password"),  # type: ignore[arg-type]
            client_id=options.get("client_id"),
            client_secret=options.get("client_secret"),
        )
    elif has_auth_code:
        auth = AuthorizationCodeAuth(
            authorization_code=options.get("authorization_code"),  # type: ignore[arg-type]
            client_id=options.get("client_id"),  # type: ignore[arg-type]
            client_secret=options.get("client_secret"),
        )
    else:
        if "client_secret" in options:
            raise XmConfigError("Invalid config: client_secret is not used with OAuth tokens")
        auth = OAuthTokens(
            access_token=options.get("access_token"),  # type: ignore[arg-type]
            refresh_token=options.get("refresh_token"),  # type: ignore[arg-type]
            client_id=options.get("client_id"),  # type: ignore[arg-type]
        )

    common = {key: options[key] for key in _COMMON_OPTIONS if key in options and options[key] is not None}
    if "hostname" not in common:
        raise XmConfigError("Invalid config: hostname is required")
    return XmApiConfig(auth=auth, **common)


def config_from_env(environ: Mapping[str, str] | None = None, *, prefix: str = "XM_") -> XmApiConfig:
    environ = os.environ if environ is None else environ
    options: dict[str, Any] = {}
    for name in ("hostname", *sorted(_AUTH_OPTIONS)):
        value = environ.get(f"{prefix}{name.upper()}")
        if value:
            options[name] = value
    raw_retries = environ.get(f"{prefix}MAX_RETRIES")
    if raw_retries:
        try:
            options["max_retries"] = int(raw_retries)
        except ValueError:
            raise XmConfigError(f"Invalid config: {prefix}MAX_RETRIES must be an integer") from None
    return load_config(options)


def _require_text(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise XmConfigError(f"Invalid config: {name} must be a non-empty string")


def _optional_text(name: str, value: Any) -> None:
    if value is not None and not isinstance(value, str):
        raise XmConfigError(f"Invalid config: {name} must be a string")
