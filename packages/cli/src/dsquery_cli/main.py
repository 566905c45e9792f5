#!/usr/bin/env python3
"""Command line entrypoint for dsquery."""
import asyncio
import json
from typing import Any, Dict, List, Optional

import typer
from pydantic import TypeAdapter
from rich.table import Table
from typing_extensions import Annotated

from dsquery.common.errors import GatewayQueryError
from dsquery.common.logger import configure_logging, trace_context
from dsquery.common.settings import settings
from dsquery.datasources import discover_adapters
from dsquery.gateway.context import GatewayContext
from dsquery_influxdb import query_influxdb_sql

from dsquery_cli.console import console, print_error, print_rows_table

_ROWS_ADAPTER = TypeAdapter(List[Dict[str, Any]])

app = typer.Typer(
    name="dsquery",
    help="Run SQL against datasources brokered by a Grafana gateway.",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def global_callback(
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Environment name; loads .env.<env>.")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Override LOG_LEVEL.")] = None,
):
    """
    dsquery CLI entry point.
    """
    if env:
        settings.configure_env(env)
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


@app.command()
def query(
    datasource_uid: Annotated[str, typer.Option("--datasource-uid", "-d", help="InfluxDB datasource UID.")],
    sql: Annotated[str, typer.Option("--sql", "-q", help="SQL statement to execute.")],
    url: Annotated[Optional[str], typer.Option("--url", help="Gateway base URL; defaults to GRAFANA_URL.")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Request timeout in seconds.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print rows as JSON.")] = False,
):
    """Execute SQL against an InfluxDB datasource and print the rows."""
    ctx = GatewayContext.from_settings(url=url, timeout_sec=timeout)

    with trace_context(datasource_uid=datasource_uid):
        try:
            rows = asyncio.run(query_influxdb_sql(ctx, datasource_uid, sql))
        except GatewayQueryError as exc:
            print_error(str(exc))
            raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(_ROWS_ADAPTER.dump_python(rows, mode="json"), indent=2))
    else:
        print_rows_table(rows, title=f"{datasource_uid}")


@app.command()
def adapters():
    """List installed datasource adapters."""
    found = discover_adapters()
    if not found:
        console.print("[warning]No adapters found. Install an adapter package such as dsquery-influxdb.[/warning]")
        return

    table = Table(title="Installed Datasource Adapters")
    table.add_column("Adapter ID", style="cyan", no_wrap=True)
    table.add_column("Class", style="magenta")
    for name, cls in found.items():
        table.add_row(name, f"{cls.__module__}.{cls.__name__}")
    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
