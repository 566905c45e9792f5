"""InfluxDB (SQL) datasource adapter for the Grafana query gateway."""
from .adapter import InfluxdbAdapter, query_influxdb_sql
from .decoder import decode_columns, decode_rows, probe_payload
from .envelope import QueryEnvelope, QueryRequest, build_envelope
from .frames import ColumnData, materialize_rows

__all__ = [
    "InfluxdbAdapter",
    "query_influxdb_sql",
    "decode_columns",
    "decode_rows",
    "probe_payload",
    "QueryEnvelope",
    "QueryRequest",
    "build_envelope",
    "ColumnData",
    "materialize_rows",
]
