from __future__ import annotations

from typing import Any, Mapping

from .auth import TokenState
from .exceptions import XmApiError, XmRequestBuildError
from .http import HttpResponse, QueryValue
from .request_handler import RequestHandler


class ResourceClient:
    """Forwards requests to a :class:`RequestHandler` under a fixed base path."""

    def __init__(self, http: RequestHandler, base_path: str) -> None:
        if not base_path.startswith("/"):
            raise XmApiError("Base path must start with a /")
        self._http = http
        self._base_path = base_path.rstrip("/")

    def build_path(self, path: str | None = None) -> str:
        if not path:
            return self._base_path
        if path.startswith("/"):
            path = path[1:]
        return f"{self._base_path}/{path}"

    async def get(self, path: str | None = None, **kwargs: Any) -> HttpResponse:
        return await self._http.get(path=self.build_path(path), **kwargs)

    async def post(self, path: str | None = None, **kwargs: Any) -> HttpResponse:
        return await self._http.post(path=self.build_path(path), **kwargs)

    async def put(self, path: str | None = None, **kwargs: Any) -> HttpResponse:
        return await self._http.put(path=self.build_path(path), **kwargs)

    async def patch(self, path: str | None = None, **kwargs: Any) -> HttpResponse:
        return await self._http.patch(path=self.build_path(path), **kwargs)

    async def delete(self, path: str | None = None, **kwargs: Any) -> HttpResponse:
        return await self._http.delete(path=self.build_path(path), **kwargs)


class _RecipientEndpoint:
    base_path = "/"

    def __init__(self, http: RequestHandler) -> None:
        self._http = ResourceClient(http, self.base_path)

    async def get(
        self,
        *,
        query: Mapping[str, QueryValue] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        return await self._http.get(query=query, headers=headers)

    async def get_by_identifier(
        self,
        identifier: str,
        *,
        query: Mapping[str, QueryValue] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        if not identifier:
            raise XmRequestBuildError("identifier must be a non-empty string")
        return await self._http.get(identifier, query=query, headers=headers)

    async def save(self, payload: Mapping[str, Any], *, headers: Mapping[str, str] | None = None) -> HttpResponse:
        return await self._http.post(body=dict(payload), headers=headers)

    async def delete(self, resource_id: str, *, headers: Mapping[str, str] | None = None) -> HttpResponse:
        if not resource_id:
            raise XmRequestBuildError("resource_id must be a non-empty string")
        return await self._http.delete(resource_id, headers=headers)


class GroupsEndpoint(_RecipientEndpoint):
    base_path = "/groups"


class PeopleEndpoint(_RecipientEndpoint):
    base_path = "/people"


class IntegrationsEndpoint:
    def __init__(self, http: RequestHandler) -> None:
        self._http = http

    async def trigger(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """POST ``payload`` to an inbound integration trigger URL.

        Trigger URLs look like ``/api/integration/1/functions/{id}/triggers``
        and may carry their own ``apiKey`` query parameter, so no
        Authorization header is sent.
        """
        return await self._http.post(full_url=url, body=payload, headers=headers, skip_auth=True)


class OAuthEndpoint:
    def __init__(self, http: RequestHandler) -> None:
        self._http = http

    @property
    def token_state(self) -> TokenState | None:
        return self._http.token_state

    async def obtain_tokens(self) -> HttpResponse:
        return await self._http.acquire_tokens()
