"""Bedboard history command - list the history log."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from bedboard.daemon.config import DEFAULT_PORT

if TYPE_CHECKING:
    from bedboard.cli import BoardContext
    from bedboard.config import BoardConfig


def read_local_history(board_config: BoardConfig, root: Path) -> list[dict[str, Any]] | None:
    """Read entries straight from the history database.

    Only safe while no daemon holds the database open.

    Returns:
        Entries oldest first, or None when there is no database to read
    """
    from bedboard.history.models import TimeFormatter
    from bedboard.history.store import HistoryStore

    if not board_config.storage.enabled:
        return None
    db_path = board_config.storage_path(root)
    if not db_path.exists():
        return None

    render = TimeFormatter(board_config.display.tzinfo(), board_config.display.time_format)
    store = HistoryStore(db_path)
    try:
        return [entry.to_dict() for entry in store.query_all_ordered(render)]
    finally:
        store.close()


@click.command("history")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option("--limit", "-n", type=int, default=None, help="Show only the newest N entries")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, help="Daemon port")
@click.option("--host", type=str, default="127.0.0.1", help="Daemon host")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def history(
    ctx: BoardContext,
    path: Path,
    limit: int | None,
    port: int,
    host: str,
    as_json: bool,
) -> None:
    """List the history log, oldest first.

    Asks the running daemon when there is one, otherwise reads the
    history database under PATH.

    \b
    Examples:
        bedboard history
        bedboard history -n 10
        bedboard history --json
    """
    import json as json_module

    from rich.table import Table

    from bedboard.client import BoardClient
    from bedboard.errors import BedboardError
    from bedboard.logging import console, print_error, print_info

    entries: list[dict[str, Any]] | None
    try:
        with BoardClient(base_url=f"http://{host}:{port}") as client:
            if client.is_running(retry=False):
                entries = client.history()
            else:
                entries = read_local_history(ctx.require_config(), path)
    except BedboardError as e:
        print_error(e.message)
        sys.exit(e.exit_code)

    if entries is None:
        print_info("No history recorded (daemon not running and no history database)")
        return

    if limit is not None:
        entries = entries[-limit:] if limit > 0 else []

    if as_json:
        console.print(json_module.dumps(entries, indent=2))
        return

    if not entries:
        print_info("History is empty")
        return

    table = Table(title="Bed Board History")
    table.add_column("Timestamp", style="cyan", justify="right")
    table.add_column("Time", style="dim")
    table.add_column("Changes", style="green")

    for entry in entries:
        changes = ", ".join(f"{bed} -> {status}" for bed, status in entry["changes"].items())
        table.add_row(str(entry["timestamp"]), entry["display_time"], changes or "-")

    console.print(table)


__all__ = ["history", "read_local_history"]
