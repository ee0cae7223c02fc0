from .auth import TokenState
from .client import XmApi
from .config import (
    AuthorizationCodeAuth,
    BasicAuth,
    OAuthTokens,
    XmApiConfig,
    config_from_env,
    load_config,
)
from .exceptions import (
    XmApiError,
    XmConfigError,
    XmNetworkError,
    XmRequestBuildError,
    XmTokenError,
    XmTokenRefreshError,
)
from .http import HttpClient, HttpRequest, HttpResponse, HttpxHttpClient, RequestOptions
from .request_builder import RequestBuilder
from .request_handler import RequestHandler

__all__ = [
    "AuthorizationCodeAuth",
    "BasicAuth",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpxHttpClient",
    "OAuthTokens",
    "RequestBuilder",
    "RequestHandler",
    "RequestOptions",
    "TokenState",
    "XmApi",
    "XmApiConfig",
    "XmApiError",
    "XmConfigError",
    "XmNetworkError",
    "XmRequestBuildError",
    "XmTokenError",
    "XmTokenRefreshError",
    "config_from_env",
    "load_config",
]
