"""Datasource lookup and adapter discovery."""
from dsquery.datasources.discovery import discover_adapters
from dsquery.datasources.resolver import (
    DatasourceRef,
    DatasourceResolver,
    GrafanaDatasourceResolver,
    StaticDatasourceResolver,
)

__all__ = [
    "discover_adapters",
    "DatasourceRef",
    "DatasourceResolver",
    "GrafanaDatasourceResolver",
    "StaticDatasourceResolver",
]
