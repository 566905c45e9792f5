from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
})

console = Console(theme=custom_theme)
err_console = Console(theme=custom_theme, stderr=True)


def print_error(message: str) -> None:
    err_console.print(f"[error]✘ {message}[/error]")


def print_rows_table(rows: List[Dict[str, Any]], title: str) -> None:
    if not rows:
        console.print("[warning]Query returned no rows.[/warning]")
        return

    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    table = Table(title=title)
    for name in columns:
        table.add_column(name, style="cyan")
    for row in rows:
        table.add_row(*["" if row.get(name) is None else str(row.get(name)) for name in columns])

    console.print(table)
    console.print(f"[success]✔ {len(rows)} rows[/success]")
