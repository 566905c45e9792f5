from enum import Enum


class DatasourceCapability(str, Enum):
    """Capability flags advertised by gateway-backed datasource adapters."""

    SUPPORTS_SQL = "supports_sql"
    SUPPORTS_SCHEMA_INTROSPECTION = "supports_schema_introspection"
    SUPPORTS_TIME_SERIES = "supports_time_series"
    SUPPORTS_CANCELLATION = "supports_cancellation"
