from importlib.metadata import entry_points
from typing import Dict, Type

from dsquery.common.logger import get_logger
from dsquery_adapter_sdk.protocols import DatasourceAdapterProtocol

logger = get_logger(__name__)

ADAPTER_ENTRY_POINT_GROUP = "dsquery.adapters"


def discover_adapters() -> Dict[str, Type[DatasourceAdapterProtocol]]:
    """Discovers installed adapters via 'dsquery.adapters' entry points.

    Returns:
        Dict[str, Type[DatasourceAdapterProtocol]]: Adapter name (e.g. 'influxdb')
            mapped to the adapter class.
    """
    adapters = {}
    for ep in entry_points(group=ADAPTER_ENTRY_POINT_GROUP):
        try:
            adapters[ep.name] = ep.load()
        except (ImportError, AttributeError) as e:
            logger.error(f"Failed to load adapter {ep.name}: {e}")

    return adapters
