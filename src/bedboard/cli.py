"""Bedboard CLI - bed occupancy board command-line interface."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dotenv import load_dotenv

# Load .env file before any other imports that might use env vars
load_dotenv()

import click  # noqa: E402

from bedboard import __version__  # noqa: E402
from bedboard.commands.lazy import LazyGroup  # noqa: E402

if TYPE_CHECKING:
    from bedboard.config import BoardConfig
    from bedboard.errors import BedboardError

VerbosityLevel = Literal["quiet", "normal", "verbose"]


class BoardContext:
    """Shared context for CLI commands."""

    def __init__(self) -> None:
        self.config: BoardConfig | None = None
        self.config_path: Path | None = None
        self.config_error: BedboardError | None = None
        self.verbosity: VerbosityLevel = "normal"
        self.debug: bool = False

    def require_config(self) -> BoardConfig:
        """Return the loaded configuration or exit with CONFIG_ERROR."""
        if self.config is not None:
            return self.config

        from bedboard.errors import ExitCode
        from bedboard.logging import print_error

        if self.config_error is not None:
            print_error(self.config_error.message)
        else:
            print_error("Configuration not loaded")
        sys.exit(ExitCode.CONFIG_ERROR)


pass_context = click.make_pass_decorator(BoardContext, ensure=True)


# Define lazy subcommands: name -> (module_path, attribute_name)
LAZY_COMMANDS: dict[str, tuple[str, str]] = {
    "init": ("bedboard.commands.init_cmd", "init"),
    # Board
    "show": ("bedboard.commands.board", "show"),
    "set": ("bedboard.commands.board", "set_status"),
    "undo": ("bedboard.commands.board", "undo"),
    "revert": ("bedboard.commands.board", "revert"),
    "history": ("bedboard.commands.history", "history"),
    # Services
    "daemon": ("bedboard.commands.daemon", "daemon"),
}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output")
@click.option("--debug", is_flag=True, help="Show full tracebacks on errors")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.version_option(version=__version__, prog_name="bedboard")
@pass_context
def cli(
    ctx: BoardContext,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config: Path | None,
) -> None:
    """Bedboard - real-time bed occupancy board with undo.

    \b
    Board:
      show         Show the current board
      set          Change bed statuses
      undo         Discard the newest change
      revert       Roll the board back to a history entry
      history      List the history log

    \b
    Services:
      daemon       Run, start, stop or inspect the board daemon
      init         Create a .bedboard.toml with defaults

    Use 'bedboard <command> --help' for details.
    """
    from bedboard.config import BoardConfig
    from bedboard.errors import ConfigError
    from bedboard.logging import setup_logging

    ctx.debug = debug

    if quiet:
        ctx.verbosity = "quiet"
    elif verbose:
        ctx.verbosity = "verbose"
    else:
        ctx.verbosity = "normal"

    setup_logging(ctx.verbosity)

    # Some commands (like init) don't need a valid config, so fail lazily
    ctx.config_path = config
    try:
        ctx.config = BoardConfig.load(config)
    except ConfigError as e:
        ctx.config_error = e


def main() -> None:
    """Entry point for the CLI."""
    from bedboard.errors import BedboardError, ExitCode, PersistenceUnavailable

    # Check if --debug flag is present anywhere in args
    debug_mode = "--debug" in sys.argv

    try:
        cli()
    except click.ClickException:
        # Let Click handle its own exceptions
        raise
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        from bedboard.logging import print_error, print_info

        if isinstance(e, PersistenceUnavailable) and "locked" in e.message:
            print_error("History database is locked by another process.")
            print_info("")
            print_info("The daemon may be running. Try one of these:")
            print_info("  1. Query it:     bedboard history")
            print_info("  2. Stop daemon:  bedboard daemon stop")
        elif isinstance(e, BedboardError):
            print_error(e.message)
        else:
            print_error(f"Error: {e}")

        if debug_mode:
            print_info("")
            print_info("Full traceback (--debug mode):")
            import traceback

            traceback.print_exc()
        else:
            print_info("")
            print_info("Run with --debug for full traceback.")

        sys.exit(e.exit_code if isinstance(e, BedboardError) else ExitCode.FATAL_ERROR)


if __name__ == "__main__":
    main()
