"""Board commands - show, set, undo and revert through the daemon."""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from bedboard.daemon.config import DEFAULT_PORT

if TYPE_CHECKING:
    from bedboard.client import BoardClient

STATUS_STYLES = {
    "available": "green",
    "occupied": "red",
    "cleaning": "yellow",
}


def daemon_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add --host/--port options locating the daemon."""
    func = click.option("--port", "-p", type=int, default=DEFAULT_PORT, help="Daemon port")(func)
    func = click.option("--host", type=str, default="127.0.0.1", help="Daemon host")(func)
    return func


def connect(host: str, port: int) -> BoardClient:
    """Open a client, exiting with DAEMON_UNAVAILABLE if nothing answers."""
    from bedboard.client import BoardClient
    from bedboard.errors import ExitCode
    from bedboard.logging import print_error, print_info

    client = BoardClient(base_url=f"http://{host}:{port}")
    if not client.is_running():
        client.close()
        print_error(f"Bedboard daemon not reachable at http://{host}:{port}")
        print_info("Start it with 'bedboard daemon start .'")
        sys.exit(ExitCode.DAEMON_UNAVAILABLE)
    return client


def parse_assignments(args: tuple[str, ...]) -> dict[str, str]:
    """Turn ``3 occupied`` or ``3=occupied 4=cleaning`` into a changes map.

    Raises:
        click.BadParameter: If the arguments fit neither form
    """
    if len(args) == 2 and "=" not in args[0] and "=" not in args[1]:
        return {args[0]: args[1]}

    changes: dict[str, str] = {}
    for arg in args:
        bed_id, sep, status = arg.partition("=")
        if not sep or not bed_id or not status:
            raise click.BadParameter(
                f"expected BED=STATUS, got {arg!r}", param_hint="ASSIGNMENTS"
            )
        changes[bed_id] = status
    return changes


def render_board(state: dict[str, Any], title: str = "Bed Board") -> None:
    """Print the current board as a rich table."""
    from rich.table import Table

    from bedboard.logging import console

    table = Table(title=f"{title} ({state['display_time']})")
    table.add_column("Bed", style="cyan", justify="right")
    table.add_column("Status")

    for bed_id, status in state["current_state"].items():
        style = STATUS_STYLES.get(status, "white")
        table.add_row(bed_id, f"[{style}]{status}[/{style}]")

    console.print(table)


def report_outcome(outcome: dict[str, Any], as_json: bool) -> None:
    """Print a mutation outcome and exit non-zero if it was rejected."""
    import json as json_module

    from bedboard.errors import ExitCode
    from bedboard.logging import console, print_error, print_info, print_success

    if as_json:
        console.print(json_module.dumps(outcome, indent=2))
    elif outcome["status"] == "accepted":
        entry = outcome.get("entry")
        removed = outcome.get("removed") or []
        if entry is not None:
            changed = ", ".join(f"{bed} -> {status}" for bed, status in entry["changes"].items())
            print_success(f"Recorded {entry['timestamp']} ({entry['display_time']}): {changed or 'no changes'}")
        if removed:
            print_success(f"Discarded {len(removed)} entr{'y' if len(removed) == 1 else 'ies'}")
    elif outcome["status"] == "ignored":
        print_info(f"Nothing to do: {outcome.get('reason')}")
    else:
        error = outcome.get("error") or {}
        print_error(error.get("message", "Request rejected"))

    if outcome["status"] == "rejected":
        sys.exit(ExitCode.REJECTED)


def run_mutation(call: Callable[[BoardClient], dict[str, Any]], host: str, port: int, as_json: bool) -> None:
    from bedboard.errors import DaemonError
    from bedboard.logging import print_error

    client = connect(host, port)
    try:
        outcome = call(client)
    except DaemonError as e:
        print_error(e.message)
        sys.exit(e.exit_code)
    finally:
        client.close()
    report_outcome(outcome, as_json)


@click.command("show")
@daemon_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(host: str, port: int, as_json: bool) -> None:
    """Show the current board.

    \b
    Examples:
        bedboard show
        bedboard show --json
    """
    import json as json_module

    from bedboard.errors import DaemonError
    from bedboard.logging import console, print_error

    client = connect(host, port)
    try:
        state = client.state()
    except DaemonError as e:
        print_error(e.message)
        sys.exit(e.exit_code)
    finally:
        client.close()

    if as_json:
        console.print(json_module.dumps(state, indent=2))
        return

    render_board(state)


@click.command("set")
@click.argument("assignments", nargs=-1, required=True)
@click.option("--replace", is_flag=True, help="Beds not named fall back to the initial status")
@daemon_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def set_status(
    assignments: tuple[str, ...], replace: bool, host: str, port: int, as_json: bool
) -> None:
    """Change the status of one or more beds.

    \b
    Examples:
        bedboard set 3 occupied
        bedboard set 3=occupied 4=cleaning
        bedboard set --replace 1=occupied
    """
    changes = parse_assignments(assignments)
    mode = "replace" if replace else None
    run_mutation(lambda client: client.update(changes, mode=mode), host, port, as_json)


@click.command("undo")
@daemon_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def undo(host: str, port: int, as_json: bool) -> None:
    """Discard the newest change.

    \b
    Example:
        bedboard undo
    """
    run_mutation(lambda client: client.undo(), host, port, as_json)


@click.command("revert")
@click.argument("timestamp", type=int)
@daemon_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def revert(timestamp: int, host: str, port: int, as_json: bool) -> None:
    """Roll the board back to the entry recorded at TIMESTAMP.

    Every entry newer than TIMESTAMP is discarded. Use 'bedboard history'
    to list timestamps.

    \b
    Example:
        bedboard revert 1718000000000
    """
    run_mutation(lambda client: client.revert(timestamp), host, port, as_json)


__all__ = ["show", "set_status", "undo", "revert", "parse_assignments"]

