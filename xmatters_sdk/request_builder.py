from __future__ import annotations

from typing import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .exceptions import XmRequestBuildError
from .http import HTTP_METHODS, HttpRequest, QueryValue, RequestOptions

API_VERSION_PATH = "/api/xm/1"


class RequestBuilder:
    """Turns :class:`RequestOptions` into a ready-to-send :class:`HttpRequest`.

    Relative paths are appended to ``base_url + API_VERSION_PATH`` exactly as
    given; the builder never re-encodes them because the API is inconsistent
    about accepting encoded identifiers. Absolute URLs are used verbatim apart
    from query merging.
    """

    def __init__(self, base_url: str, default_headers: Mapping[str, str] | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._default_headers = dict(default_headers or {})

    @property
    def base_url(self) -> str:
        return self._base_url

    def build(self, options: RequestOptions) -> HttpRequest:
        if options.method not in HTTP_METHODS:
            raise XmRequestBuildError(f"Unsupported HTTP method: {options.method!r}")
        if options.path and options.full_url:
            raise XmRequestBuildError(
                "Cannot specify both full_url and path. Use full_url for external endpoints, "
                "path for xMatters API endpoints."
            )

        if options.full_url:
            url = _merge_query(options.full_url, options.query)
            target = options.full_url
        elif options.path:
            if not options.path.startswith("/"):
                raise XmRequestBuildError('Path must start with a forward slash, e.g. "/people"')
            url = f"{self._base_url}{API_VERSION_PATH}{options.path}"
            pairs = _query_pairs(options.query)
            if pairs:
                url = f"{url}?{urlencode(pairs, safe=',')}"
            target = options.path
        else:
            raise XmRequestBuildError("Either path or full_url must be provided")

        return HttpRequest(
            method=options.method,
            url=url,
            path=target,
            headers={**self._default_headers, **(options.headers or {})},
            query=options.query,
            body=options.body,
            retry_attempt=options.retry_attempt,
        )


def _query_pairs(query: Mapping[str, QueryValue] | None) -> list[tuple[str, str]]:
    if not query:
        return []
    pairs: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.append((key, ",".join(_render(item) for item in value)))
        else:
            pairs.append((key, _render(value)))
    return pairs


def _render(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _merge_query(url: str, query: Mapping[str, QueryValue] | None) -> str:
    pairs = _query_pairs(query)
    if not pairs:
        return url
    parts = urlsplit(url)
    merged = parse_qsl(parts.query, keep_blank_values=True)
    for key, value in pairs:
        positions = [index for index, (existing, _) in enumerate(merged) if existing == key]
        if positions:
            merged[positions[0]] = (key, value)
            merged = [pair for index, pair in enumerate(merged) if index not in positions[1:]]
        else:
            merged.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(merged, safe=",")))
