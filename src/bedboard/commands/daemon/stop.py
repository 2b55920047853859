"""Bedboard daemon stop command - Stop running daemon."""

from __future__ import annotations

from pathlib import Path

import click

from bedboard.paths import get_daemon_pid_path


@click.command("stop")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
def daemon_stop(path: Path) -> None:
    """Stop running Bedboard daemon.

    \b
    Example:
        bedboard daemon stop
    """
    from bedboard.daemon.lifecycle import DaemonLifecycle
    from bedboard.logging import print_info, print_success

    lifecycle = DaemonLifecycle(pid_file=get_daemon_pid_path(path))

    if lifecycle.stop():
        print_success("Bedboard daemon stopped")
    else:
        print_info("Daemon not running")


__all__ = ["daemon_stop"]
