"""Bedboard daemon start command - Start daemon in background."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from bedboard.daemon.config import DEFAULT_PORT
from bedboard.paths import get_daemon_pid_path

if TYPE_CHECKING:
    from bedboard.cli import BoardContext


@click.command("start")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, help="Server port")
@click.option("--host", type=str, default="127.0.0.1", help="Server host")
@click.option("--max-connections", type=int, default=100, help="Maximum WebSocket observers")
@click.pass_obj
def daemon_start(
    ctx: BoardContext,
    path: Path,
    port: int,
    host: str,
    max_connections: int,
) -> None:
    """Start Bedboard daemon in background.

    \b
    Examples:
        bedboard daemon start .
        bedboard daemon start . --port 9000
    """
    from bedboard.daemon.config import DaemonConfig
    from bedboard.daemon.lifecycle import DaemonLifecycle
    from bedboard.errors import ExitCode
    from bedboard.logging import print_error, print_info, print_success, print_warning

    # Validate before spawning so config errors surface here, not in a detached child
    ctx.require_config()

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
        return

    try:
        pid = lifecycle.start_background(path, config, config_path=ctx.config_path)
        print_success(f"Bedboard daemon started on {config.base_url}")
        print_info(f"PID: {pid}")
        print_info(f"PID file: {config.pid_file}")
    except RuntimeError as e:
        print_error(str(e))
        sys.exit(ExitCode.FATAL_ERROR)


__all__ = ["daemon_start"]
