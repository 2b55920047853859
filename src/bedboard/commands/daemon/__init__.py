"""Bedboard daemon commands - run and manage the board server."""

from __future__ import annotations

import click

from bedboard.commands.lazy import LazyGroup

LAZY_DAEMON_COMMANDS: dict[str, tuple[str, str]] = {
    "start": ("bedboard.commands.daemon.start", "daemon_start"),
    "stop": ("bedboard.commands.daemon.stop", "daemon_stop"),
    "status": ("bedboard.commands.daemon.status", "daemon_status"),
    "run": ("bedboard.commands.daemon.run", "daemon_run"),
}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_DAEMON_COMMANDS)
def daemon() -> None:
    """Bedboard daemon commands.

    The daemon owns the history log, applies mutations one at a time and
    pushes the board to every WebSocket observer after each change.

    \b
    Examples:
        bedboard daemon start .         # Start daemon in background
        bedboard daemon status          # Check daemon status
        bedboard daemon stop            # Stop running daemon
        bedboard daemon run .           # Run in foreground (for debugging)
    """
    pass


__all__ = ["daemon"]
