from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

import httpx

from dsquery.common.errors import ErrorCode, FrameDecodeError, GatewayQueryError, QueryValidationError
from dsquery.common.logger import get_logger, trace_context
from dsquery.common.settings import settings
from dsquery.datasources.resolver import DatasourceResolver, GrafanaDatasourceResolver
from dsquery.gateway.client import JSON_HEADERS, open_gateway_client, send_cancellable
from dsquery.gateway.context import GatewayContext, GatewayCredentials
from dsquery_adapter_sdk import (
    AdapterRequest,
    ColumnContract,
    ColumnMetadata,
    DatasourceCapability,
    ResultError,
    ResultFrame,
    SchemaContract,
    SchemaMetadata,
    SchemaSnapshot,
    TableContract,
    TableMetadata,
    TableRef,
)

from .decoder import decode_columns
from .envelope import DATASOURCE_TYPE, build_envelope
from .frames import RowRecord, materialize_rows

logger = get_logger(__name__)

QUERY_PATH = "/api/ds/query"

SCHEMA_SQL = (
    "SELECT table_schema, table_name, column_name, data_type, is_nullable "
    "FROM information_schema.columns "
    "WHERE table_schema NOT IN ('information_schema', 'system') "
    "ORDER BY table_schema, table_name, ordinal_position"
)


def _require(value: Optional[str], error_code: ErrorCode, label: str) -> str:
    if value is None or not value.strip():
        raise QueryValidationError(f"{label} is required", error_code)
    return value


async def query_influxdb_sql(
    ctx: GatewayContext,
    datasource_uid: str,
    sql: str,
    *,
    resolver: Optional[DatasourceResolver] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[RowRecord]:
    """Executes ``sql`` against an InfluxDB datasource behind the gateway.

    Args:
        ctx (GatewayContext): Gateway URL, credentials, timeout and cancel signal.
        datasource_uid (str): UID of the InfluxDB datasource.
        sql (str): SQL statement, sent verbatim.
        resolver (Optional[DatasourceResolver]): Datasource lookup; defaults to the
            gateway's own ``/api/datasources/uid`` endpoint.
        transport (Optional[httpx.AsyncBaseTransport]): Underlying HTTP transport.

    Returns:
        List[RowRecord]: One dict per result row, in result order.

    Raises:
        QueryValidationError: ``datasource_uid`` or ``sql`` is empty.
        DatasourceResolutionError: The datasource does not exist.
        GatewayTransportError: Network failure, timeout or cancellation.
        GatewayStatusError: The gateway answered with a non-200 status.
        FrameDecodeError: The response could not be decoded.
        UnknownFrameFormatError: The frame data has an unsupported shape.
    """
    _require(datasource_uid, ErrorCode.MISSING_DATASOURCE_ID, "datasource uid")
    _require(sql, ErrorCode.MISSING_SQL, "sql")

    async with open_gateway_client(ctx, transport) as client:
        resolver = resolver or GrafanaDatasourceResolver(client, ctx)
        envelope = await build_envelope(resolver, datasource_uid, sql)

        logger.info(f"Querying datasource {datasource_uid} through {ctx.url}")
        response = await send_cancellable(
            ctx,
            client.post(
                QUERY_PATH,
                params={"ds_type": DATASOURCE_TYPE},
                json=envelope.to_wire(),
                headers=JSON_HEADERS,
            ),
            operation="request to /api/ds/query",
        )

    rows = materialize_rows(decode_columns(response))
    logger.info(f"Datasource {datasource_uid} returned {len(rows)} rows")
    return rows


class InfluxdbAdapter:
    """Adapter for InfluxDB v3 (SQL) datasources reached through Grafana.

    ``connection_args`` keys: ``url`` (gateway base URL), ``uid`` (datasource
    uid; defaults to ``datasource_id``), and optionally ``api_key``,
    ``access_token`` and ``id_token``. Missing values fall back to settings.
    """

    def __init__(
        self,
        datasource_id: str,
        datasource_engine_type: str = DATASOURCE_TYPE,
        connection_args: Optional[Dict[str, Any]] = None,
        statement_timeout_ms: Optional[int] = None,
        row_limit: Optional[int] = None,
        resolver: Optional[DatasourceResolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.datasource_id = datasource_id
        self.datasource_engine_type = datasource_engine_type
        self.connection_args = dict(connection_args or {})
        self.statement_timeout_ms = statement_timeout_ms
        self.row_limit = row_limit
        self._resolver = resolver
        self._transport = transport
        self._context: Optional[GatewayContext] = None
        self.connect()

    def __str__(self) -> str:
        return f"{self.datasource_id} ({self.datasource_engine_type})"

    @property
    def datasource_uid(self) -> str:
        return self.connection_args.get("uid") or self.datasource_id

    def connect(self) -> None:
        args = self.connection_args
        timeout_sec = self.statement_timeout_ms / 1000 if self.statement_timeout_ms else None
        credentials = GatewayCredentials(
            access_token=args.get("access_token") or settings.grafana_access_token,
            id_token=args.get("id_token") or settings.grafana_id_token,
            api_key=args.get("api_key") or settings.grafana_api_key,
        )
        self._context = GatewayContext.from_settings(
            url=args.get("url"),
            credentials=credentials,
            timeout_sec=timeout_sec,
        )

    def capabilities(self) -> Set[DatasourceCapability]:
        return {
            DatasourceCapability.SUPPORTS_SQL,
            DatasourceCapability.SUPPORTS_SCHEMA_INTROSPECTION,
            DatasourceCapability.SUPPORTS_TIME_SERIES,
            DatasourceCapability.SUPPORTS_CANCELLATION,
        }

    def get_dialect(self) -> str:
        return DATASOURCE_TYPE

    async def aquery(self, sql: str, cancel_event: Optional[asyncio.Event] = None) -> List[RowRecord]:
        ctx = self._context
        if cancel_event is not None:
            ctx = ctx.model_copy(update={"cancel_event": cancel_event})
        return await query_influxdb_sql(
            ctx,
            self.datasource_uid,
            sql,
            resolver=self._resolver,
            transport=self._transport,
        )

    def _failure(self, error: ResultError) -> ResultFrame:
        logger.warning(f"Query on {self} failed: [{error.error_code}] {error.safe_message}")
        return ResultFrame.failure(error)

    def execute(self, request: AdapterRequest) -> ResultFrame:
        """Runs an SQL plan and returns a ResultFrame; failures are reported in the frame.

        Must not be called from inside a running event loop; use ``aquery`` there.
        """
        if request.plan_type != "sql":
            return self._failure(ResultError(
                error_code=ErrorCode.CAPABILITY_VIOLATION.value,
                safe_message=f"{self} only executes 'sql' plans, got '{request.plan_type}'.",
                stage="validate",
                datasource_id=self.datasource_id,
            ))

        sql = request.payload.get("sql")
        if not sql:
            return self._failure(ResultError(
                error_code=ErrorCode.MISSING_SQL.value,
                safe_message="No SQL to execute.",
                stage="validate",
                datasource_id=self.datasource_id,
            ))

        row_limit = request.limits.get("row_limit")
        if row_limit is None:
            row_limit = self.row_limit if self.row_limit is not None else settings.default_row_limit
        start = time.perf_counter()
        with trace_context(request.trace_id, datasource_uid=self.datasource_uid):
            try:
                rows = asyncio.run(self.aquery(sql))
            except GatewayQueryError as exc:
                return self._failure(exc.to_result_error(self.datasource_id))

        duration_ms = (time.perf_counter() - start) * 1000
        truncated = len(rows) > row_limit
        columns = list(rows[0].keys()) if rows else []
        return ResultFrame.from_row_dicts(
            rows[:row_limit],
            columns=columns,
            truncated=truncated,
            datasource_id=self.datasource_id,
            execution_stats={"execution_time_ms": duration_ms, "rows_returned": len(rows)},
        )

    def fetch_schema_snapshot(self) -> SchemaSnapshot:
        """Reads ``information_schema.columns`` and groups it by table.

        Raises:
            GatewayQueryError: The introspection query failed or returned
                rows without table and column names.
        """
        with trace_context(datasource_uid=self.datasource_uid):
            rows = asyncio.run(self.aquery(SCHEMA_SQL))

        columns_by_table: Dict[TableRef, Dict[str, ColumnContract]] = defaultdict(dict)
        for row in rows:
            if "table_name" not in row or "column_name" not in row:
                raise FrameDecodeError(
                    f"schema query returned unexpected columns: {sorted(row)}",
                    details={"columns": sorted(row)},
                )
            ref = TableRef(schema_name=str(row.get("table_schema") or "iox"), table_name=str(row["table_name"]))
            name = str(row["column_name"])
            columns_by_table[ref][name] = ColumnContract(
                name=name,
                data_type=str(row.get("data_type") or "unknown"),
                is_nullable=str(row.get("is_nullable", "YES")).upper() != "NO",
            )

        contract_tables = {}
        metadata_tables = {}
        for ref, columns in columns_by_table.items():
            contract_tables[ref.full_name] = TableContract(table=ref, columns=columns)
            metadata_tables[ref.full_name] = TableMetadata(
                table=ref,
                columns={name: ColumnMetadata(is_time_index=(name == "time")) for name in columns},
            )

        logger.info(f"Fetched schema for {self}: {len(contract_tables)} tables")
        return SchemaSnapshot(
            contract=SchemaContract(
                datasource_id=self.datasource_id,
                engine_type=self.datasource_engine_type,
                tables=contract_tables,
            ),
            metadata=SchemaMetadata(
                datasource_id=self.datasource_id,
                engine_type=self.datasource_engine_type,
                tables=metadata_tables,
            ),
        )
