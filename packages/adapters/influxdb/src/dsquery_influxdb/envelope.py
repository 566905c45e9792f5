from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dsquery.common.logger import get_logger
from dsquery.datasources.resolver import DatasourceResolver

logger = get_logger(__name__)

REF_ID = "A"
DATASOURCE_TYPE = "influxdb"
QUERY_FORMAT = "table"
QUERY_WINDOW = timedelta(hours=1)


def _to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class TimeWindow(BaseModel):
    """Envelope time range. Grafana requires it even though the SQL does its own filtering."""

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start >= self.end:
            raise ValueError("time window start must precede its end")
        return self

    @classmethod
    def trailing(cls, now: Optional[datetime] = None, span: timedelta = QUERY_WINDOW) -> "TimeWindow":
        end = now or datetime.now(timezone.utc)
        return cls(start=end - span, end=end)


class QueryRequest(BaseModel):
    datasource_uid: str = Field(..., min_length=1)
    sql: str = Field(..., min_length=1)
    window: TimeWindow = Field(default_factory=TimeWindow.trailing)


class DatasourceDescriptor(BaseModel):
    type: str = DATASOURCE_TYPE
    uid: str


class InnerQuery(BaseModel):
    ref_id: str = Field(default=REF_ID, alias="refId")
    datasource: DatasourceDescriptor
    format: str = QUERY_FORMAT
    raw_sql: str = Field(..., alias="rawSql")
    raw_query: bool = Field(default=True, alias="rawQuery")

    model_config = ConfigDict(populate_by_name=True)


class QueryEnvelope(BaseModel):
    """Request body for the gateway's multi-datasource ``/api/ds/query`` endpoint."""

    queries: List[InnerQuery]
    from_: str = Field(..., alias="from")
    to: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_request(cls, request: QueryRequest) -> "QueryEnvelope":
        return cls(
            queries=[
                InnerQuery(
                    datasource=DatasourceDescriptor(uid=request.datasource_uid),
                    raw_sql=request.sql,
                )
            ],
            from_=str(_to_epoch_ms(request.window.start)),
            to=str(_to_epoch_ms(request.window.end)),
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


async def build_envelope(
    resolver: DatasourceResolver,
    datasource_uid: str,
    sql: str,
    *,
    now: Optional[datetime] = None,
) -> QueryEnvelope:
    """Resolves the datasource, then builds the query envelope for it.

    The envelope covers the hour ending at ``now`` (defaults to the current time).

    Raises:
        DatasourceResolutionError: The uid does not name an existing datasource.
    """
    datasource = await resolver.resolve(datasource_uid)
    if datasource.type and datasource.type != DATASOURCE_TYPE:
        logger.warning(
            f"Datasource {datasource_uid} has type '{datasource.type}', expected '{DATASOURCE_TYPE}'"
        )

    request = QueryRequest(
        datasource_uid=datasource_uid,
        sql=sql,
        window=TimeWindow.trailing(now),
    )
    return QueryEnvelope.from_request(request)
