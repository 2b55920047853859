"""Daemon configuration models.

Defines configuration for the Bedboard daemon server including host,
port, PID file and WebSocket connection limits.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 9130


class DaemonConfig(BaseModel):
    """Configuration for the Bedboard daemon server.

    Attributes:
        host: Server host to bind to (default: localhost only)
        port: Server port (default: 9130)
        pid_file: Path to PID file for daemon management
        max_connections: Maximum WebSocket observers allowed
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str = Field(
        default="127.0.0.1",
        description="Server host to bind to",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        description="Server port",
    )
    pid_file: Path = Field(
        default=Path(".bedboard/daemon.pid"),
        description="PID file path for daemon management",
    )
    max_connections: int = Field(
        default=100,
        description="Maximum WebSocket connections",
    )

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


__all__ = ["DaemonConfig", "DEFAULT_PORT"]
