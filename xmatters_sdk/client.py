from __future__ import annotations

import logging
from typing import Any

from .config import XmApiConfig, load_config
from .http import HttpxHttpClient
from .request_builder import RequestBuilder
from .request_handler import RequestHandler
from .resources import GroupsEndpoint, IntegrationsEndpoint, OAuthEndpoint, PeopleEndpoint

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class XmApi:
    def __init__(self, config: XmApiConfig) -> None:
        self._config = config
        self._owned_transport: HttpxHttpClient | None = None
        transport = config.http_client
        if transport is None:
            transport = self._owned_transport = HttpxHttpClient(timeout_seconds=config.timeout_seconds)

        builder = RequestBuilder(config.base_url, {**DEFAULT_HEADERS, **config.default_headers})
        self.http = RequestHandler(
            transport,
            builder,
            config.auth,
            logger=config.logger or logging.getLogger("xmatters_sdk"),
            max_retries=config.max_retries,
            on_token_refresh=config.on_token_refresh,
        )
        self.groups = GroupsEndpoint(self.http)
        self.people = PeopleEndpoint(self.http)
        self.integrations = IntegrationsEndpoint(self.http)
        self.oauth = OAuthEndpoint(self.http)

    @classmethod
    def from_options(cls, **options: Any) -> "XmApi":
        return cls(load_config(options))

    @property
    def config(self) -> XmApiConfig:
        return self._config

    async def aclose(self) -> None:
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> "XmApi":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, traceback: Any) -> None:
        await self.aclose()
