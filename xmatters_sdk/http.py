from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Literal, Mapping, Protocol, Sequence, Union

import httpx

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
QueryValue = Union[str, int, float, bool, Sequence[Union[str, int, float, bool]], None]

HTTP_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class RequestOptions:
    """Logical description of a request, before URL and header resolution."""

    method: HttpMethod = "GET"
    path: str | None = None
    full_url: str | None = None
    query: Mapping[str, QueryValue] | None = None
    headers: Mapping[str, str] | None = None
    body: Any | None = None
    retry_attempt: int = 0
    skip_auth: bool = False


@dataclass
class HttpRequest:
    method: HttpMethod
    url: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    query: Mapping[str, QueryValue] | None = None
    body: Any | None = None
    retry_attempt: int = 0


@dataclass
class HttpResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any | None = None

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class HttpClient(Protocol):
    """Performs one HTTP exchange.

    Implementations must return a response for every status code and raise
    only when no response could be obtained (DNS, refused connection,
    timeout).
    """

    async def send(self, request: HttpRequest) -> HttpResponse: ...


class HttpxHttpClient:
    def __init__(self, *, timeout_seconds: float = 15.0, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxHttpClient":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, traceback: Any) -> None:
        await self.aclose()

    async def send(self, request: HttpRequest) -> HttpResponse:
        response = await self._client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=serialize_body(request.body),
        )
        headers = {key.lower(): value for key, value in response.headers.items()}
        return HttpResponse(status=response.status_code, headers=headers, body=_parse_body(response, headers))


def serialize_body(body: Any | None) -> str | bytes | None:
    if body is None:
        return None
    if isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


def _parse_body(response: httpx.Response, headers: Mapping[str, str]) -> Any:
    if "application/json" in headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
