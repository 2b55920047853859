"""Bedboard daemon run command - Run daemon in foreground."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from bedboard.daemon.config import DEFAULT_PORT
from bedboard.paths import get_daemon_pid_path

if TYPE_CHECKING:
    from bedboard.cli import BoardContext


@click.command("run")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, help="Server port")
@click.option("--host", type=str, default="127.0.0.1", help="Server host")
@click.option("--max-connections", type=int, default=100, help="Maximum WebSocket observers")
@click.pass_obj
def daemon_run(
    ctx: BoardContext,
    path: Path,
    port: int,
    host: str,
    max_connections: int,
) -> None:
    """Run daemon in foreground (for debugging).

    Press Ctrl+C to stop.

    \b
    Examples:
        bedboard daemon run .
        bedboard daemon run . --port 9000
    """
    from bedboard.daemon.config import DaemonConfig
    from bedboard.daemon.lifecycle import DaemonLifecycle
    from bedboard.errors import BedboardError, ExitCode
    from bedboard.logging import print_error, print_info, print_warning

    board_config = ctx.require_config()

    config = DaemonConfig(
        host=host,
        port=port,
        max_connections=max_connections,
        pid_file=get_daemon_pid_path(path),
    )

    lifecycle = DaemonLifecycle(pid_file=config.pid_file, config=config)

    running, pid = lifecycle.is_running()
    if running:
        print_warning(f"Daemon already running (PID {pid})")
        print_info("Stop it first with 'bedboard daemon stop'")
        sys.exit(ExitCode.CONFIG_ERROR)

    print_info(f"Starting Bedboard daemon on {config.base_url}")
    print_info("Press Ctrl+C to stop")

    try:
        lifecycle.start_foreground(path.resolve(), board_config, config)
    except KeyboardInterrupt:
        print_info("\nShutting down...")
    except BedboardError as e:
        print_error(e.message)
        sys.exit(e.exit_code)


__all__ = ["daemon_run"]
