from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .http import HttpResponse


class XmApiError(Exception):
    """Base SDK exception.

    ``response`` is set when the server answered (status >= 400), ``cause``
    when the request never produced a response.
    """

    def __init__(
        self,
        message: str,
        response: HttpResponse | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.response = response
        self.cause = cause

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return self.response.status

    @property
    def body(self) -> Any | None:
        if self.response is None:
            return None
        return self.response.body


class XmConfigError(XmApiError):
    """Invalid or ambiguous client configuration."""


class XmRequestBuildError(XmApiError):
    """Request description cannot be turned into a request."""


class XmNetworkError(XmApiError):
    """The transport raised before any response was received."""


class XmTokenError(XmApiError):
    """OAuth token acquisition failure."""


class XmTokenRefreshError(XmTokenError):
    """Refreshing the OAuth access token failed."""
