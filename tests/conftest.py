"""Shared pytest fixtures."""

from __future__ import annotations

import contextlib
from typing import Callable, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from walrus_proxy.utils.config import NetworkEndpoints, ProxySettings, Settings, WalrusSettings

E1 = "https://aggregator-1.test"
E2 = "https://aggregator-2.test"

PUBLISHER = "https://publisher.test"
AGGREGATOR = "https://aggregator.test"
ALT_PUBLISHER = "https://publisher-alt.test"
ALT_AGGREGATOR = "https://aggregator-alt.test"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))

Rule = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Routes requests by base URL to canned responses, recording every call.

    A rule is an ``httpx.Response``, an exception to raise (transport
    failure), or a callable taking the request.
    """

    def __init__(self, routes: dict[str, Rule]):
        self.routes = routes
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = str(request.url)
        for base, rule in self.routes.items():
            if url.startswith(base):
                if isinstance(rule, Exception):
                    raise rule
                if callable(rule):
                    return rule(request)
                return rule
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.calls]


@pytest.fixture
def proxy_settings() -> ProxySettings:
    return ProxySettings(aggregators=(E1, E2), timeout=5.0)


@pytest.fixture
def walrus_settings() -> WalrusSettings:
    return WalrusSettings(
        network="testnet",
        primary=NetworkEndpoints(publisher=PUBLISHER, aggregator=AGGREGATOR),
        alternatives=(NetworkEndpoints(publisher=ALT_PUBLISHER, aggregator=ALT_AGGREGATOR),),
        epochs=1,
        deletable=False,
        max_file_size=1024,
        app_url="https://dashboard.test",
        timeout=5.0,
    )


@pytest.fixture
def settings(proxy_settings, walrus_settings) -> Settings:
    return Settings(proxy=proxy_settings, walrus=walrus_settings)


@pytest.fixture
def serve(settings):
    """Factory: ``client, upstream = serve({E1: httpx.Response(200, content=...)})``."""
    from walrus_proxy.api.server import create_app

    with contextlib.ExitStack() as stack:

        def _serve(routes: dict[str, Rule]) -> tuple[TestClient, FakeUpstream]:
            upstream = FakeUpstream(routes)
            app = create_app(settings, transport=upstream.transport)
            client = stack.enter_context(TestClient(app))
            return client, upstream

        yield _serve
