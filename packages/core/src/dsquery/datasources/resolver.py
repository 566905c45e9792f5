from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dsquery.common.errors import DatasourceResolutionError, FrameDecodeError
from dsquery.common.logger import get_logger
from dsquery.gateway.client import send_cancellable
from dsquery.gateway.context import GatewayContext

logger = get_logger(__name__)


class DatasourceRef(BaseModel):
    """A datasource as known to the gateway."""

    uid: str
    name: str = ""
    type: str = ""
    id: Optional[int] = None
    url: Optional[str] = None
    json_data: Dict[str, object] = Field(default_factory=dict, alias="jsonData")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


@runtime_checkable
class DatasourceResolver(Protocol):
    """Looks up a datasource by uid; raises DatasourceResolutionError if it does not exist."""

    async def resolve(self, uid: str) -> DatasourceRef:
        ...


class GrafanaDatasourceResolver:
    """Resolves datasources through ``GET /api/datasources/uid/{uid}``.

    The uid is sent as a single escaped path segment and must come back
    unchanged. Transport errors from the lookup propagate as they are.
    """

    def __init__(self, client: httpx.AsyncClient, ctx: GatewayContext):
        self._client = client
        self._ctx = ctx

    async def resolve(self, uid: str) -> DatasourceRef:
        try:
            response = await send_cancellable(
                self._ctx,
                self._client.get(f"/api/datasources/uid/{quote(uid, safe='')}"),
                operation="datasource lookup",
            )
        except FrameDecodeError as exc:
            raise DatasourceResolutionError(uid, f"malformed lookup response: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise DatasourceResolutionError(uid, "not found")
        if response.status_code != httpx.codes.OK:
            raise DatasourceResolutionError(uid, f"lookup returned {response.status_code}: {response.text}")

        try:
            ref = DatasourceRef.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise DatasourceResolutionError(uid, f"malformed lookup response: {exc}") from exc

        if ref.uid != uid:
            raise DatasourceResolutionError(uid, f"lookup returned datasource '{ref.uid}'")

        logger.debug(f"Resolved datasource {uid} ({ref.type}: {ref.name})")
        return ref


class StaticDatasourceResolver:
    """Resolves datasources from a fixed, in-memory set."""

    def __init__(self, datasources: Iterable[DatasourceRef]):
        self._datasources = {ds.uid: ds for ds in datasources}

    async def resolve(self, uid: str) -> DatasourceRef:
        if uid not in self._datasources:
            raise DatasourceResolutionError(uid, "not found")
        return self._datasources[uid]
