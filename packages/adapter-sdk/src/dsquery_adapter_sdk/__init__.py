from .capabilities import DatasourceCapability
from .contracts import AdapterRequest, ResultColumn, ResultError, ResultFrame
from .protocols import DatasourceAdapterProtocol
from .schema import (
    ColumnContract,
    ColumnMetadata,
    SchemaContract,
    SchemaMetadata,
    SchemaSnapshot,
    TableContract,
    TableMetadata,
    TableRef,
)

__all__ = [
    "DatasourceCapability",
    "AdapterRequest",
    "ResultColumn",
    "ResultError",
    "ResultFrame",
    "DatasourceAdapterProtocol",
    "ColumnContract",
    "ColumnMetadata",
    "SchemaContract",
    "SchemaMetadata",
    "SchemaSnapshot",
    "TableContract",
    "TableMetadata",
    "TableRef",
]
