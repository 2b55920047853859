"""Bedboard init command - Initialize .bedboard.toml configuration."""

from __future__ import annotations

import sys

import click


@click.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing .bedboard.toml")
def init(force: bool) -> None:
    """Initialize a new .bedboard.toml configuration file.

    Creates a configuration file with the default 20-bed board in the
    current directory.
    """
    from bedboard.config import get_default_config_toml
    from bedboard.errors import ExitCode
    from bedboard.logging import print_error, print_info, print_success, print_warning
    from bedboard.paths import CONFIG_FILE, get_config_path

    config_path = get_config_path()

    if config_path.exists() and not force:
        print_warning(f"Configuration file already exists: {config_path}")
        print_info("Use --force to overwrite")
        sys.exit(ExitCode.CONFIG_ERROR)

    try:
        config_path.write_text(get_default_config_toml())
    except PermissionError:
        print_error(f"Permission denied: {config_path}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except OSError as e:
        print_error(f"Failed to create config file: {e}")
        sys.exit(ExitCode.FATAL_ERROR)

    print_success(f"Created {config_path}")
    print_info("\nNext steps:")
    print_info(f"  1. Edit {CONFIG_FILE} to list your beds and statuses")
    print_info("  2. Run 'bedboard daemon start .' to serve the board")
    print_info("  3. Run 'bedboard set 3 occupied' to record a change")


__all__ = ["init"]
