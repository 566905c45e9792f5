import httpx
import pytest

from dsquery.gateway.context import GatewayContext, GatewayCredentials


@pytest.fixture
def echo_transport():
    """MockTransport that records each request and answers 200 with an empty JSON body."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


@pytest.fixture
def make_ctx():
    def _make(**credentials) -> GatewayContext:
        return GatewayContext(url="http://grafana.test", credentials=GatewayCredentials(**credentials))

    return _make
