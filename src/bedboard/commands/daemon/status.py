"""Bedboard daemon status command - Check daemon status."""

from __future__ import annotations

from pathlib import Path

import click

from bedboard.daemon.config import DEFAULT_PORT
from bedboard.paths import get_daemon_pid_path


def format_uptime(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@click.command("status")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, help="Server port")
@click.option("--host", type=str, default="127.0.0.1", help="Server host")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def daemon_status(path: Path, port: int, host: str, as_json: bool) -> None:
    """Check daemon status.

    \b
    Example:
        bedboard daemon status
        bedboard daemon status --json
    """
    import json as json_module

    from rich.table import Table

    from bedboard.daemon.config import DaemonConfig
    from bedboard.daemon.lifecycle import DaemonLifecycle
    from bedboard.logging import console, print_info

    pid_file = get_daemon_pid_path(path)
    config = DaemonConfig(host=host, port=port, pid_file=pid_file)
    lifecycle = DaemonLifecycle(pid_file=pid_file, config=config)

    status = lifecycle.status()

    if as_json:
        console.print(json_module.dumps(status, indent=2))
        return

    if status.get("status") == "stopped":
        print_info("Daemon is not running")
        return

    table = Table(title="Bedboard Daemon Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Status", status.get("status", "unknown"))
    if "pid" in status:
        table.add_row("PID", str(status["pid"]))
    if "healthy" in status:
        table.add_row("Healthy", "Yes" if status["healthy"] else "No")
    if "uptime_seconds" in status:
        table.add_row("Uptime", format_uptime(status["uptime_seconds"]))
    if "beds" in status:
        table.add_row("Beds", str(status["beds"]))
    if "entries" in status:
        table.add_row("History Entries", str(status["entries"]))
    if status.get("newest_timestamp") is not None:
        table.add_row("Newest Entry", str(status["newest_timestamp"]))
    if "connections" in status:
        table.add_row("WebSocket Connections", str(status["connections"]))
    if status.get("storage"):
        table.add_row("Database", str(status["storage"].get("path", "")))
    if "message" in status:
        table.add_row("Note", status["message"])

    console.print(table)


__all__ = ["daemon_status", "format_uptime"]
