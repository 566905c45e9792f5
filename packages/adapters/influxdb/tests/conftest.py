import base64
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pyarrow as pa
import pyarrow.ipc
import pytest

from dsquery.gateway.context import GatewayContext, GatewayCredentials

GATEWAY_URL = "http://grafana.test"


@pytest.fixture
def gateway_ctx() -> GatewayContext:
    return GatewayContext(
        url=GATEWAY_URL + "/",
        credentials=GatewayCredentials(api_key="svc-token"),
        timeout_sec=5.0,
    )


@pytest.fixture
def arrow_payload() -> Callable[[pa.Table], str]:
    """Encodes a table the way Grafana does: Arrow IPC file -> zstd -> base64."""

    def _encode(table: pa.Table) -> str:
        sink = pa.BufferOutputStream()
        with pa.ipc.new_file(sink, table.schema) as writer:
            writer.write_table(table)
        compressed = pa.compress(sink.getvalue(), codec="zstd", asbytes=True)
        return base64.b64encode(compressed).decode("ascii")

    return _encode


@pytest.fixture
def gateway() -> Callable[..., "FakeGateway"]:
    def _build(**kwargs: Any) -> "FakeGateway":
        return FakeGateway(**kwargs)

    return _build


class FakeGateway:
    """In-process stand-in for Grafana's datasource lookup and query endpoints."""

    def __init__(
        self,
        query_response: Optional[httpx.Response] = None,
        datasources: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.query_response = query_response or httpx.Response(200, json={"results": {}})
        self.datasources = datasources if datasources is not None else {
            "infra01": {"uid": "infra01", "name": "Infra", "type": "influxdb", "id": 1},
        }
        self.requests: List[httpx.Request] = []

    @property
    def query_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/ds/query"]

    def query_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.query_requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        prefix = "/api/datasources/uid/"
        if request.url.path.startswith(prefix):
            uid = request.url.path[len(prefix):]
            if uid in self.datasources:
                return httpx.Response(200, json=self.datasources[uid])
            return httpx.Response(404, json={"message": "Data source not found"})
        if request.url.path == "/api/ds/query" and request.method == "POST":
            return self.query_response
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def matrix_response(names: List[str], values: List[List[Any]], ref_id: str = "A") -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "results": {
                ref_id: {
                    "frames": [
                        {
                            "schema": {"fields": [{"name": n} for n in names]},
                            "data": {"values": values},
                        }
                    ]
                }
            }
        },
    )


@pytest.fixture
def matrix() -> Callable[..., httpx.Response]:
    return matrix_response


@pytest.fixture
def binary_response(arrow_payload) -> Callable[[pa.Table], httpx.Response]:
    def _build(table: pa.Table) -> httpx.Response:
        return httpx.Response(
            200,
            json={"results": {"A": {"frames": [{"schema": {}, "data": arrow_payload(table)}]}}},
        )

    return _build
