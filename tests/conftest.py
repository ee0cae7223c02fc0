from __future__ import annotations

import asyncio

import pytest

from xmatters_sdk.http import HttpRequest, HttpResponse


class FakeHttpClient:
    def __init__(self, responses: list[HttpResponse] | None = None, error: Exception | None = None) -> None:
        self.requests: list[HttpRequest] = []
        self.responses = list(responses or [])
        self.error = error

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        index = min(len(self.requests), len(self.responses)) - 1
        await asyncio.sleep(0)
        return self.responses[index]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def http_client() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
