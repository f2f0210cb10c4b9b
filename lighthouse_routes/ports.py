"""
Debugging Port Registry

Hands out remote-debugging ports to concurrently active browser sessions.
Each active session holds a unique port; ports are recycled on release.

Two allocation modes:
- Ephemeral (default): ask the OS for a free port, skipping any port that is
  currently leased.
- Fixed range: lease ports from [start, end] in order; exhaustion raises
  PortExhaustedError, which makes pool limits testable.
"""

import socket
import threading
from contextlib import contextmanager
from typing import Dict, Optional, Tuple

from lighthouse_routes.errors import PortExhaustedError
from lighthouse_routes.logging_setup import get_logger


def _os_free_port(host: str = "127.0.0.1") -> int:
    """Bind to port 0 and return the port the OS picked."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class PortRegistry:
    """
    Process-wide registry of leased debugging ports.

    Args:
        port_range: Optional inclusive (start, end) range; None for ephemeral
        max_active: Optional cap on simultaneously leased ports
        probe: Callable returning a candidate free port (ephemeral mode)
        max_attempts: Ephemeral probes before giving up
        logger: Logger (default: lighthouse_routes.ports)
    """

    def __init__(
        self,
        port_range: Optional[Tuple[int, int]] = None,
        max_active: Optional[int] = None,
        probe=_os_free_port,
        max_attempts: int = 20,
        logger=None,
    ):
        if port_range is not None and port_range[0] > port_range[1]:
            raise ValueError(f"Invalid port range: {port_range}")

        self.port_range = port_range
        self.max_active = max_active
        self._probe = probe
        self._max_attempts = max_attempts
        self._leased: Dict[int, str] = {}
        self._lock = threading.RLock()
        self.logger = logger or get_logger("lighthouse_routes.ports")

    def acquire(self, owner: str = "") -> int:
        """
        Lease a port exclusively to `owner`.

        Raises:
            PortExhaustedError: cap reached, range used up, or no free port found
        """
        with self._lock:
            if self.max_active is not None and len(self._leased) >= self.max_active:
                raise PortExhaustedError(
                    f"Port pool exhausted: {len(self._leased)} of {self.max_active} ports leased",
                    route_name=owner or None,
                )

            port = self._next_from_range() if self.port_range else self._next_ephemeral()
            if port is None:
                raise PortExhaustedError(
                    f"No free debugging port available (range={self.port_range})",
                    route_name=owner or None,
                )

            self._leased[port] = owner
            self.logger.debug(f"Leased port {port} to {owner or 'anonymous'}")
            return port

    def release(self, port: int) -> None:
        """Return a port to the pool. Releasing an unknown port is a no-op."""
        with self._lock:
            owner = self._leased.pop(port, None)
        if owner is not None:
            self.logger.debug(f"Released port {port} from {owner or 'anonymous'}")

    @contextmanager
    def lease(self, owner: str = ""):
        """Context manager form of acquire/release."""
        port = self.acquire(owner)
        try:
            yield port
        finally:
            self.release(port)

    def active(self) -> Dict[int, str]:
        with self._lock:
            return dict(self._leased)

    def _next_from_range(self) -> Optional[int]:
        start, end = self.port_range
        for port in range(start, end + 1):
            if port not in self._leased:
                return port
        return None

    def _next_ephemeral(self) -> Optional[int]:
        for _ in range(self._max_attempts):
            port = self._probe()
            if port not in self._leased:
                return port
        return None
