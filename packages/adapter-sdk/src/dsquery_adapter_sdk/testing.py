"""
Contract assertions shared by adapter test suites.
Every adapter package runs these against its own adapter class.
"""
from typing import Any, Dict, Type

from .capabilities import DatasourceCapability
from .contracts import AdapterRequest, ResultFrame
from .protocols import DatasourceAdapterProtocol


def build_adapter(
    adapter_cls: Type[DatasourceAdapterProtocol],
    *,
    datasource_id: str,
    engine_type: str,
    connection_args: Dict[str, Any],
    **kwargs: Any,
) -> DatasourceAdapterProtocol:
    return adapter_cls(
        datasource_id=datasource_id,
        datasource_engine_type=engine_type,
        connection_args=connection_args,
        **kwargs,
    )


def assert_adapter_protocol(adapter: DatasourceAdapterProtocol) -> None:
    assert isinstance(adapter, DatasourceAdapterProtocol)
    assert adapter.datasource_id
    assert adapter.datasource_engine_type


def assert_sql_error_contracts(adapter: DatasourceAdapterProtocol) -> None:
    """Adapters report request-shape problems as failed frames, never by raising."""
    non_sql = adapter.execute(AdapterRequest(plan_type="rest", payload={"sql": "SELECT 1"}))
    missing_sql = adapter.execute(AdapterRequest(plan_type="sql", payload={}))

    assert isinstance(non_sql, ResultFrame)
    assert non_sql.success is False
    assert non_sql.error and non_sql.error.error_code == "CAPABILITY_VIOLATION"

    assert isinstance(missing_sql, ResultFrame)
    assert missing_sql.success is False
    assert missing_sql.error and missing_sql.error.error_code == "MISSING_SQL"


def assert_capabilities_include_sql(adapter: DatasourceAdapterProtocol) -> None:
    caps = {cap.value if isinstance(cap, DatasourceCapability) else str(cap) for cap in adapter.capabilities()}
    assert DatasourceCapability.SUPPORTS_SQL.value in caps
