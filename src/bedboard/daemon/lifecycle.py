"""Daemon process management.

A running daemon is identified by its PID file under ``.bedboard/`` and
by an answering ``/status`` endpoint. Either one alone is reported as a
degraded state rather than as stopped.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Any

from bedboard.config import BoardConfig
from bedboard.daemon.config import DaemonConfig

logger = logging.getLogger(__name__)

STATUS_TIMEOUT = 2.0
STARTUP_TIMEOUT = 10.0
SHUTDOWN_TIMEOUT = 5.0


def process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


class DaemonLifecycle:
    """Start, stop and inspect the board daemon for one project root.

    Attributes:
        pid_file: Path to the PID file
        config: Daemon configuration (host and port locate ``/status``)
    """

    def __init__(
        self,
        pid_file: Path | None = None,
        config: DaemonConfig | None = None,
    ) -> None:
        self.config = config or DaemonConfig()
        self.pid_file = pid_file or Path.cwd() / self.config.pid_file

    def read_pid(self) -> int | None:
        """PID from the PID file, or None if it is missing or unreadable."""
        try:
            return int(self.pid_file.read_text().strip())
        except (ValueError, OSError):
            return None

    def is_running(self) -> tuple[bool, int | None]:
        """Check the PID file against the process table.

        A PID file naming a dead or unparsable process is removed.

        Returns:
            Tuple of (is_running, pid or None)
        """
        if not self.pid_file.exists():
            return False, None

        pid = self.read_pid()
        if pid is None or not process_alive(pid):
            self._cleanup_pid()
            return False, None
        return True, pid

    def start_foreground(
        self,
        root: Path,
        board_config: BoardConfig,
        config: DaemonConfig | None = None,
    ) -> None:
        """Serve the board from this process until uvicorn exits.

        Args:
            root: Project root that storage paths resolve against
            board_config: Board configuration
            config: Daemon configuration override
        """
        import uvicorn

        from bedboard.daemon.server import create_app

        cfg = config or self.config
        self._write_pid()
        try:
            app = create_app(board_config, cfg, root=root)
            uvicorn.run(app, host=cfg.host, port=cfg.port, log_level="info")
        finally:
            self._cleanup_pid()

    def spawn_command(
        self, root: Path, config: DaemonConfig, config_path: Path | None = None
    ) -> list[str]:
        """Command line that runs ``bedboard daemon run`` for ``root``."""
        command = [sys.executable, "-m", "bedboard"]
        if config_path is not None:
            command += ["--config", str(config_path.resolve())]
        command += ["daemon", "run", str(root.resolve())]
        command += ["--host", config.host, "--port", str(config.port)]
        command += ["--max-connections", str(config.max_connections)]
        return command

    def start_background(
        self,
        root: Path,
        config: DaemonConfig | None = None,
        config_path: Path | None = None,
    ) -> int:
        """Spawn a detached daemon and wait until it answers ``/status``.

        The caller checks ``is_running`` first; the child writes its own
        PID file.

        Args:
            root: Project root
            config: Daemon configuration override
            config_path: .bedboard.toml the child should load

        Returns:
            PID of the daemon

        Raises:
            RuntimeError: If the child exits or does not answer in time
        """
        from bedboard.client import BoardClient

        cfg = config or self.config
        process = subprocess.Popen(
            self.spawn_command(root, cfg, config_path),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )

        deadline = time.monotonic() + STARTUP_TIMEOUT
        with BoardClient(base_url=cfg.base_url, timeout=STATUS_TIMEOUT) as client:
            while time.monotonic() < deadline:
                time.sleep(0.2)
                if process.poll() is not None:
                    raise RuntimeError("Daemon process exited unexpectedly")
                pid = self.read_pid()
                if pid is not None and client.is_running(retry=False):
                    logger.info(f"Daemon started (PID {pid})")
                    return pid

        raise RuntimeError(f"Daemon failed to start within {STARTUP_TIMEOUT}s")

    def stop(self) -> bool:
        """Terminate the daemon, escalating to SIGKILL after a grace period.

        Returns:
            True if a daemon was stopped, False if none was running
        """
        running, pid = self.is_running()
        if not running or pid is None:
            return False

        logger.info(f"Stopping daemon (PID {pid})")
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            logger.error(f"Failed to send SIGTERM: {e}")
            return False

        if not self._wait_for_exit(pid, SHUTDOWN_TIMEOUT):
            logger.warning(f"Daemon ignored SIGTERM for {SHUTDOWN_TIMEOUT}s, sending SIGKILL")
            try:
                os.kill(pid, signal.SIGKILL)
            except OSError:
                pass
            self._wait_for_exit(pid, 0.5)

        self._cleanup_pid()
        return True

    def status(self) -> dict[str, Any]:
        """Combine the PID file with the daemon's own ``/status`` report.

        Returns:
            The daemon's status fields plus ``healthy`` and, when known,
            ``pid``; ``{"status": "stopped"}`` if neither source answers
        """
        from bedboard.client import BoardClient
        from bedboard.errors import DaemonError

        running, pid = self.is_running()
        try:
            with BoardClient(base_url=self.config.base_url, timeout=STATUS_TIMEOUT) as client:
                report: dict[str, Any] | None = client.status()
        except DaemonError:
            report = None

        if report is None:
            if not running:
                return {"status": "stopped"}
            return {
                "status": "running",
                "pid": pid,
                "healthy": False,
                "message": "Daemon process exists but is not answering HTTP",
            }

        report["healthy"] = True
        if running:
            report["pid"] = pid
        else:
            report["message"] = "No PID file; the daemon was started outside 'bedboard daemon start'"
        return report

    def _wait_for_exit(self, pid: int, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not process_alive(pid):
                return True
            time.sleep(0.1)
        return not process_alive(pid)

    def _write_pid(self) -> None:
        """Record this process's PID, readable by the owner only."""
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(os.getpid()))
        os.chmod(self.pid_file, 0o600)

    def _cleanup_pid(self) -> None:
        try:
            self.pid_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove PID file: {e}")


__all__ = ["DaemonLifecycle", "process_alive"]
