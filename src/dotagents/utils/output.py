"""Output formatting for the CLI: JSON when piped, rich tables and panels on a TTY."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Iterable

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

console = Console()
error_console = Console(stderr=True)


def is_piped() -> bool:
    return not sys.stdout.isatty()


def _resolve_format(fmt: str | None) -> str:
    if fmt is None:
        return "json" if is_piped() else "text"
    return fmt


def _jsonable(data: Any) -> Any:
    if hasattr(data, "model_dump"):
        return data.model_dump(by_alias=True, mode="json", exclude_none=True)
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    return data


def output(data: Any, fmt: str | None = None, title: str | None = None) -> None:
    """Print data in the requested format; auto-detect when fmt is None."""
    if _resolve_format(fmt) == "json":
        if isinstance(data, str):
            print(json.dumps({"value": data}))
        else:
            print(json.dumps(_jsonable(data), indent=2, default=str))
        return

    if isinstance(data, str):
        console.print(Panel(data, title=title) if title else data)
    else:
        console.print_json(json.dumps(_jsonable(data), default=str))


def output_table(rows: list[dict[str, Any]], columns: list[str], fmt: str | None = None) -> None:
    if _resolve_format(fmt) == "json":
        print(json.dumps(rows, indent=2, default=str))
        return
    table = Table()
    for col in columns:
        table.add_column(col.replace("_", " ").title())
    for row in rows:
        table.add_row(*[str(row.get(col, "")) for col in columns])
    console.print(table)


def warn_failures(failures: Iterable[Any]) -> None:
    """Report files a loader skipped, one line each, on stderr."""
    for failure in failures:
        error_console.print(f"[yellow]Skipped[/yellow] {failure.path}: {failure.reason}")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def error(msg: str) -> None:
    error_console.print(f"[red]Error:[/red] {msg}")


def success(msg: str) -> None:
    console.print(f"[green]{msg}[/green]")


def info(msg: str) -> None:
    console.print(f"[dim]{msg}[/dim]")
