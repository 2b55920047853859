"""Daemon communication client for CLI-to-daemon forwarding.

This module provides a thin client for talking to the Bedboard daemon.
Mutations always go through the daemon so they are applied in order by
its single serializer, never by a second writer on the history database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, cast

import httpx

from bedboard.daemon.config import DEFAULT_PORT
from bedboard.errors import DaemonError

# Suppress httpx INFO logs by default (HTTP request logs pollute CLI output)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

__all__ = ["BoardClient", "is_daemon_running", "DaemonError"]

DEFAULT_DAEMON_URL = f"http://127.0.0.1:{DEFAULT_PORT}"
DEFAULT_TIMEOUT = 2.0

# Status codes that carry a MutationResponse body
_OUTCOME_STATUS_CODES = frozenset({200, 404, 409, 422, 503})


@dataclass
class BoardClient:
    """Client for communicating with the Bedboard daemon.

    Example:
        >>> with BoardClient() as client:
        ...     if client.is_running():
        ...         client.update({"3": "occupied"})
    """

    base_url: str = DEFAULT_DAEMON_URL
    timeout: float = DEFAULT_TIMEOUT
    _client: httpx.Client = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=self.timeout),
        )

    def is_running(self, retry: bool = True) -> bool:
        """Check if the daemon is running.

        Args:
            retry: Whether to retry with backoff on failure.

        Returns:
            True if daemon is running and responding.
        """
        max_attempts = 3 if retry else 1
        backoff = 0.1

        for attempt in range(max_attempts):
            try:
                response = self._client.get("/status")
                return response.status_code == 200
            except (httpx.ConnectError, httpx.TimeoutException):
                if attempt < max_attempts - 1:
                    import time

                    time.sleep(backoff)
                    backoff *= 2
                    continue
                return False
            except httpx.HTTPError:
                return False
        return False

    def _get(self, path: str) -> Any:
        try:
            response = self._client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.ConnectError as e:
            raise DaemonError(f"Daemon not available: {e}") from e
        except httpx.HTTPStatusError as e:
            raise DaemonError(
                f"Request failed: {e.response.text}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise DaemonError(f"Request error: {e}") from e

    def _mutate(self, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a mutation and return the outcome body.

        Rejected and ignored outcomes come back as data, not exceptions; only
        transport failures and unexpected responses raise.
        """
        try:
            response = self._client.post(path, json=payload, timeout=30.0)
        except httpx.ConnectError as e:
            raise DaemonError(f"Daemon not available: {e}") from e
        except httpx.HTTPError as e:
            raise DaemonError(f"Request error: {e}") from e

        if response.status_code not in _OUTCOME_STATUS_CODES:
            raise DaemonError(
                f"Request failed: {response.text}", status_code=response.status_code
            )
        return cast(dict[str, Any], response.json())

    def status(self) -> dict[str, Any]:
        """Get daemon status and statistics.

        Raises:
            DaemonError: If daemon is not available.
        """
        return cast(dict[str, Any], self._get("/status"))

    def state(self) -> dict[str, Any]:
        """Get the current board state triple."""
        return cast(dict[str, Any], self._get("/state"))

    def history(self) -> list[dict[str, Any]]:
        """Get the ordered history log, oldest first."""
        return cast(list[dict[str, Any]], self._get("/history"))

    def entry(self, timestamp: int) -> dict[str, Any]:
        """Get the entry recorded at exactly ``timestamp``.

        Raises:
            DaemonError: If no entry has that timestamp (status_code 404).
        """
        return cast(dict[str, Any], self._get(f"/history/{timestamp}"))

    def update(self, changes: dict[str, str], mode: str | None = None) -> dict[str, Any]:
        """Change the status of one or more beds."""
        payload: dict[str, Any] = {"changes": changes}
        if mode:
            payload["mode"] = mode
        return self._mutate("/update", payload)

    def undo(self) -> dict[str, Any]:
        """Discard the newest history entry."""
        return self._mutate("/undo")

    def revert(self, timestamp: int) -> dict[str, Any]:
        """Discard every entry newer than ``timestamp``."""
        return self._mutate("/revert", {"timestamp": timestamp})

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> BoardClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def is_daemon_running(url: str = DEFAULT_DAEMON_URL, retry: bool = True) -> bool:
    """Check if the Bedboard daemon is running.

    Args:
        url: Daemon base URL.
        retry: Whether to retry with backoff on failure.
    """
    with BoardClient(base_url=url) as client:
        return client.is_running(retry=retry)
