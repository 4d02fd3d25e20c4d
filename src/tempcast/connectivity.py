from __future__ import annotations

import logging
import socket
import threading
from datetime import datetime, timezone
from typing import Callable, Literal

LOGGER = logging.getLogger(__name__)

DEFAULT_PROBE_HOST = "1.1.1.1"
DEFAULT_PROBE_PORT = 53
DEFAULT_TIMEOUT_SECONDS = 3.0

ConnectivityMode = Literal["auto", "online", "offline"]


def probe_connectivity(
    host: str = DEFAULT_PROBE_HOST,
    port: int = DEFAULT_PROBE_PORT,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class ConnectivityMonitor:
    """Last known network reachability, refreshed by the scheduler."""

    def __init__(
        self,
        *,
        mode: ConnectivityMode = "auto",
        host: str = DEFAULT_PROBE_HOST,
        port: int = DEFAULT_PROBE_PORT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        probe: Callable[..., bool] = probe_connectivity,
    ) -> None:
        self._mode = mode
        self._host = host
        self._port = port
        self._timeout_seconds = timeout_seconds
        self._probe = probe
        self._lock = threading.Lock()
        self._available: bool | None = None
        self._checked_at: datetime | None = None

    @property
    def mode(self) -> ConnectivityMode:
        return self._mode

    @property
    def checked_at(self) -> datetime | None:
        with self._lock:
            return self._checked_at

    def refresh(self) -> bool:
        if self._mode == "online":
            available = True
        elif self._mode == "offline":
            available = False
        else:
            available = bool(self._probe(self._host, self._port, timeout=self._timeout_seconds))

        with self._lock:
            previous = self._available
            self._available = available
            self._checked_at = datetime.now(timezone.utc)

        if previous is not None and previous != available:
            LOGGER.info("Connectivity changed: %s", "online" if available else "offline")
        return available

    def is_available(self) -> bool:
        with self._lock:
            known = self._available
        if known is None:
            return self.refresh()
        return known
