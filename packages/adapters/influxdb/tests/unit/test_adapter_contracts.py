import httpx
import pytest

from dsquery.common.errors import FrameDecodeError
from dsquery.datasources.resolver import DatasourceRef, StaticDatasourceResolver
from dsquery_adapter_sdk import AdapterRequest, DatasourceAdapterProtocol, DatasourceCapability, SchemaSnapshot
from dsquery_adapter_sdk.testing import (
    assert_adapter_protocol,
    assert_capabilities_include_sql,
    assert_sql_error_contracts,
    build_adapter,
)
from dsquery_influxdb.adapter import SCHEMA_SQL, InfluxdbAdapter

CONNECTION_ARGS = {"url": "http://grafana.test/", "uid": "infra01", "api_key": "svc-token"}


def _adapter(fake, **kwargs):
    return build_adapter(
        InfluxdbAdapter,
        datasource_id="metrics",
        engine_type="influxdb",
        connection_args=CONNECTION_ARGS,
        transport=fake.transport,
        **kwargs,
    )


def test_adapter_satisfies_protocol_and_error_contracts(gateway):
    # Validates the adapter contract because callers treat every adapter the same way.
    # Arrange
    fake = gateway()
    adapter = _adapter(fake)

    # Act / Assert
    assert_adapter_protocol(adapter)
    assert_capabilities_include_sql(adapter)
    assert_sql_error_contracts(adapter)
    assert isinstance(adapter, DatasourceAdapterProtocol)
    assert adapter.get_dialect() == "influxdb"
    assert DatasourceCapability.SUPPORTS_CANCELLATION in adapter.capabilities()
    assert fake.requests == []


def test_execute_returns_result_frame(gateway, matrix):
    # Arrange
    fake = gateway(query_response=matrix(["host", "cpu"], [["a", "b"], [10, 20]]))
    adapter = _adapter(fake)

    # Act
    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT host, cpu FROM metrics"}))

    # Assert
    assert frame.success is True
    assert [c.name for c in frame.columns] == ["host", "cpu"]
    assert frame.rows == [["a", 10], ["b", 20]]
    assert frame.row_count == 2
    assert frame.truncated is False
    assert frame.datasource_id == "metrics"
    assert "execution_time_ms" in frame.execution_stats
    assert frame.to_row_dicts() == [{"host": "a", "cpu": 10}, {"host": "b", "cpu": 20}]


def test_execute_applies_row_limit(gateway, matrix):
    fake = gateway(query_response=matrix(["n"], [[1, 2, 3, 4]]))
    adapter = _adapter(fake, row_limit=10)

    frame = adapter.execute(
        AdapterRequest(plan_type="sql", payload={"sql": "SELECT n FROM t"}, limits={"row_limit": 2})
    )

    assert frame.rows == [[1], [2]]
    assert frame.row_count == 2
    assert frame.truncated is True
    assert frame.execution_stats["rows_returned"] == 4


def test_execute_reports_gateway_errors_in_frame(gateway):
    fake = gateway(query_response=httpx.Response(500, text="internal error"))
    adapter = _adapter(fake)

    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT 1"}))

    assert frame.success is False
    assert frame.error.error_code == "GATEWAY_HTTP_ERROR"
    assert frame.error.stage == "gateway"
    assert frame.error.details["status_code"] == 500
    assert frame.error.safe_message == "The datasource gateway rejected the query."
    assert "body" not in frame.error.details


def test_execute_honours_zero_row_limit(gateway, matrix):
    fake = gateway(query_response=matrix(["n"], [[1, 2]]))
    adapter = _adapter(fake, row_limit=10)

    frame = adapter.execute(
        AdapterRequest(plan_type="sql", payload={"sql": "SELECT n FROM t"}, limits={"row_limit": 0})
    )

    assert frame.success is True
    assert frame.rows == []
    assert frame.truncated is True


def test_execute_reports_undecodable_body_in_frame(gateway):
    fake = gateway(
        query_response=httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip at all")
        )
    )
    adapter = _adapter(fake)

    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT 1"}))

    assert frame.success is False
    assert frame.error.error_code == "FRAME_DECODE_ERROR"
    assert frame.error.stage == "decode"


def test_execute_reports_unreachable_gateway_in_frame():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter = build_adapter(
        InfluxdbAdapter,
        datasource_id="metrics",
        engine_type="influxdb",
        connection_args=CONNECTION_ARGS,
        transport=httpx.MockTransport(refuse),
    )

    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT 1"}))

    assert frame.error.error_code == "GATEWAY_UNREACHABLE"
    assert frame.error.stage == "transport"
    assert frame.error.safe_message == "The datasource gateway could not be reached."

def test_execute_reports_resolution_errors_in_frame(gateway):
    fake = gateway(datasources={})
    adapter = _adapter(fake)

    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT 1"}))

    assert frame.error.error_code == "DATASOURCE_NOT_FOUND"
    assert frame.error.stage == "resolve"
    assert fake.query_requests == []


def test_injected_resolver_skips_gateway_lookup(gateway, matrix):
    fake = gateway(query_response=matrix(["x"], [[1]]))
    adapter = _adapter(fake, resolver=StaticDatasourceResolver([DatasourceRef(uid="infra01", type="influxdb")]))

    frame = adapter.execute(AdapterRequest(plan_type="sql", payload={"sql": "SELECT 1"}))

    assert frame.rows == [[1]]
    assert [r.url.path for r in fake.requests] == ["/api/ds/query"]


def test_fetch_schema_snapshot_groups_columns_by_table(gateway, matrix):
    # Arrange
    fake = gateway(
        query_response=matrix(
            ["table_schema", "table_name", "column_name", "data_type", "is_nullable"],
            [
                ["iox", "iox", "iox"],
                ["cpu", "cpu", "mem"],
                ["time", "host", "used"],
                ["Timestamp(Nanosecond, None)", "Dictionary(Int32, Utf8)", "Float64"],
                ["NO", "YES", "YES"],
            ],
        )
    )
    adapter = _adapter(fake)

    # Act
    snapshot = adapter.fetch_schema_snapshot()

    # Assert
    assert isinstance(snapshot, SchemaSnapshot)
    assert fake.query_bodies()[0]["queries"][0]["rawSql"] == SCHEMA_SQL
    cpu = snapshot.contract.tables["iox.cpu"]
    assert list(cpu.columns) == ["time", "host"]
    assert cpu.columns["time"].is_nullable is False
    assert snapshot.metadata.tables["iox.cpu"].columns["time"].is_time_index is True
    assert snapshot.contract.tables["iox.mem"].columns["used"].data_type == "Float64"


def test_schema_snapshot_without_column_names_is_decode_error(gateway, matrix):
    fake = gateway(query_response=matrix([], [["iox"], ["cpu"], ["time"]]))
    adapter = _adapter(fake)

    with pytest.raises(FrameDecodeError, match="unexpected columns"):
        adapter.fetch_schema_snapshot()


def test_connection_args_override_settings(monkeypatch):
    monkeypatch.setattr("dsquery_influxdb.adapter.settings.grafana_api_key", None)

    adapter = InfluxdbAdapter(datasource_id="metrics", connection_args={"url": "http://g.test/"}, statement_timeout_ms=1500)

    assert adapter.datasource_uid == "metrics"
    assert adapter._context.url == "http://g.test"
    assert adapter._context.timeout_sec == pytest.approx(1.5)
    assert adapter._context.credentials.api_key is None
