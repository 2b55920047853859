"""Centralized path definitions for Bedboard data files.

All Bedboard runtime files are stored in the .bedboard/ directory:

    .bedboard/
    ├── history.duckdb      # Durable history log (DuckDB)
    ├── history.duckdb.wal  # DuckDB write-ahead log
    └── daemon.pid          # Daemon process ID file

The configuration file (.bedboard.toml) stays at the project root
since it's user-editable configuration.
"""

from __future__ import annotations

from pathlib import Path

# Directory containing all Bedboard data files
BEDBOARD_DIR = ".bedboard"

# Individual file names within .bedboard/
HISTORY_DB_FILE = "history.duckdb"
DAEMON_PID_FILE = "daemon.pid"

# Config file stays at project root (user-editable)
CONFIG_FILE = ".bedboard.toml"


def get_bedboard_dir(root: Path | str = ".") -> Path:
    """Get the .bedboard directory path for a project root.

    Args:
        root: Project root directory (default: current directory)

    Returns:
        Path to the .bedboard directory
    """
    return Path(root).resolve() / BEDBOARD_DIR


def get_daemon_pid_path(root: Path | str = ".") -> Path:
    """Get the daemon PID file path.

    Args:
        root: Project root directory (default: current directory)

    Returns:
        Path to the PID file (.bedboard/daemon.pid)
    """
    return get_bedboard_dir(root) / DAEMON_PID_FILE


def get_config_path(root: Path | str = ".") -> Path:
    """Get the config file path.

    Args:
        root: Project root directory (default: current directory)

    Returns:
        Path to .bedboard.toml
    """
    return Path(root).resolve() / CONFIG_FILE


__all__ = [
    "BEDBOARD_DIR",
    "HISTORY_DB_FILE",
    "DAEMON_PID_FILE",
    "CONFIG_FILE",
    "get_bedboard_dir",
    "get_daemon_pid_path",
    "get_config_path",
]
