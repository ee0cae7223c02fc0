from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

import pytest

from xmatters_sdk.exceptions import XmApiError, XmRequestBuildError
from xmatters_sdk.http import RequestOptions
from xmatters_sdk.request_builder import RequestBuilder


def _builder(default_headers: dict[str, str] | None = None) -> RequestBuilder:
    if default_headers is None:
        default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "default-header": "default-value",
        }
    return RequestBuilder("https://example.xmatters.com", default_headers)


def test_relative_path_is_prefixed_with_api_version() -> None:
    request = _builder().build(RequestOptions(path="/people", query={"search": "test", "limit": 10}))

    assert request.url == "https://example.xmatters.com/api/xm/1/people?search=test&limit=10"
    assert request.path == "/people"
    assert request.method == "GET"
    assert request.headers["default-header"] == "default-value"
    assert request.query == {"search": "test", "limit": 10}
    assert request.retry_attempt == 0


def test_full_url_bypasses_api_version_path() -> None:
    request = _builder().build(
        RequestOptions(
            method="POST",
            full_url="https://api.external-service.com/v2/endpoint",
            query={"key": "value"},
        )
    )

    assert request.url == "https://api.external-service.com/v2/endpoint?key=value"
    assert request.path == "https://api.external-service.com/v2/endpoint"
    assert request.method == "POST"


def test_full_url_keeps_existing_query_parameters() -> None:
    full_url = "https://api.external-service.com/search?existing=param&another=value"
    request = _builder().build(RequestOptions(full_url=full_url, query={"additional": "param", "new": "value"}))

    assert parse_qsl(urlsplit(request.url).query) == [
        ("existing", "param"),
        ("another", "value"),
        ("additional", "param"),
        ("new", "value"),
    ]
    assert "/api/xm/1" not in request.url
    assert request.path == full_url


def test_full_url_without_query_is_untouched() -> None:
    full_url = "https://you.xmatters.com/api/integration/1/functions/abc/triggers?apiKey=k%2B1"
    request = _builder().build(RequestOptions(full_url=full_url))

    assert request.url == full_url


def test_path_encoding_is_preserved() -> None:
    builder = _builder()

    encoded = builder.build(RequestOptions(path="/groups/Ops%20Team"))
    raw = builder.build(RequestOptions(path="/groups/Ops Team"))

    assert encoded.url == "https://example.xmatters.com/api/xm/1/groups/Ops%20Team"
    assert raw.url == "https://example.xmatters.com/api/xm/1/groups/Ops Team"


def test_query_arrays_are_comma_joined_and_none_dropped() -> None:
    request = _builder().build(
        RequestOptions(
            path="/groups",
            query={"fields": ["NAME", "DESCRIPTION"], "search": None, "offset": 0, "embed": "supervisors"},
        )
    )

    assert request.url == (
        "https://example.xmatters.com/api/xm/1/groups?fields=NAME,DESCRIPTION&offset=0&embed=supervisors"
    )


def test_boolean_query_values_are_lowercase() -> None:
    request = _builder().build(RequestOptions(path="/people", query={"active": True, "locked": False}))

    assert request.url.endswith("/people?active=true&locked=false")


def test_empty_query_adds_no_question_mark() -> None:
    request = _builder().build(RequestOptions(path="/people", query={}))

    assert request.url == "https://example.xmatters.com/api/xm/1/people"


def test_request_headers_override_defaults() -> None:
    request = _builder().build(
        RequestOptions(
            method="PUT",
            path="/groups",
            headers={"custom-header": "custom-value", "default-header": "overridden-value"},
            body={"name": "test-group"},
        )
    )

    assert request.headers == {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "default-header": "overridden-value",
        "custom-header": "custom-value",
    }
    assert request.method == "PUT"
    assert request.body == {"name": "test-group"}


def test_empty_default_headers() -> None:
    request = _builder(default_headers={}).build(RequestOptions(path="/people"))

    assert request.headers == {}


def test_retry_attempt_is_carried_over() -> None:
    request = _builder().build(RequestOptions(path="/people", retry_attempt=2))

    assert request.retry_attempt == 2


def test_trailing_slash_on_base_url_is_ignored() -> None:
    request = RequestBuilder("https://example.xmatters.com/").build(RequestOptions(path="/people"))

    assert request.url == "https://example.xmatters.com/api/xm/1/people"


def test_build_is_deterministic() -> None:
    builder = _builder()
    options = RequestOptions(path="/people", query={"b": 1, "a": [1, 2]})

    assert builder.build(options) == builder.build(options)


def test_path_without_leading_slash_is_rejected() -> None:
    with pytest.raises(XmRequestBuildError, match="Path must start with a forward slash"):
        _builder().build(RequestOptions(path="people"))


def test_path_and_full_url_together_are_rejected() -> None:
    with pytest.raises(XmRequestBuildError, match="Cannot specify both full_url and path"):
        _builder().build(RequestOptions(path="/people", full_url="https://api.external-service.com/x"))


def test_missing_target_is_rejected() -> None:
    with pytest.raises(XmApiError, match="Either path or full_url must be provided"):
        _builder().build(RequestOptions())


def test_unknown_method_is_rejected() -> None:
    with pytest.raises(XmRequestBuildError, match="Unsupported HTTP method"):
        _builder().build(RequestOptions(method="TRACE", path="/people"))  # type: ignore[arg-type]
