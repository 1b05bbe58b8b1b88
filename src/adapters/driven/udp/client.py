"""UDP socket adapter with broadcast support and metrics integration."""

import asyncio
import logging
import socket
from ipaddress import ip_address
from types import TracebackType

from src.ports.datagram import DatagramPort
from src.ports.metrics import DatagramAttemptDto, MetricsPort
from src.ports.settings import SettingsPort, format_destination

__all__ = ["UdpClient", "bind_address_for"]

logger = logging.getLogger(__name__)


def bind_address_for(settings: SettingsPort) -> tuple[socket.AddressFamily, str]:
    """Pick the socket family and unspecified local address matching the destination.

    Args:
        settings: Runtime settings holding the destination address.

    Returns:
        Tuple of (address family, unspecified address of that family).
    """
    if settings.destination_address.version == 6:
        return socket.AF_INET6, "::"
    return socket.AF_INET, "0.0.0.0"


class UdpClient:
    """Datagram sender bound to an ephemeral local port.

    Features:
    - Local bind family chosen to match the destination (IPv4 or IPv6).
    - Broadcast enabled, so broadcast-class destinations are accepted.
    - Metrics collection (lateness, failures).
    - Context manager for proper resource cleanup.
    """

    def __init__(self, settings: SettingsPort, metrics: MetricsPort | None = None) -> None:
        """Initialize UDP client.

        Args:
            settings: Runtime settings (destination determines the bind family).
            metrics: Optional metrics collector to track attempts.
        """
        self.settings = settings
        self.metrics = metrics
        self.sock: socket.socket | None = None

    async def __aenter__(self) -> "UdpClient":
        """Enter async context manager (open, bind and configure the socket).

        Returns:
            Self for use in async with statement.

        Raises:
            RuntimeError: If the socket cannot be created, bound, or switched
                to broadcast mode.
        """
        self.sock = self._open_socket()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (close socket).

        Args:
            exc_type: Exception type if raised in context.
            exc: Exception instance if raised in context.
            tb: Traceback if raised in context.
        """
        if self.sock:
            self.sock.close()
            self.sock = None

    def _open_socket(self) -> socket.socket:
        family, host = bind_address_for(self.settings)
        bind_label = format_destination(ip_address(host), 0)

        try:
            sock = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as e:
            raise RuntimeError(f"Failed to bind UDP socket on {bind_label}: {e}") from e

        try:
            sock.bind((host, 0))
        except OSError as e:
            sock.close()
            raise RuntimeError(f"Failed to bind UDP socket on {bind_label}: {e}") from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as e:
            sock.close()
            raise RuntimeError(f"Failed to enable broadcast: {e}") from e

        sock.setblocking(False)
        logger.debug(f"UDP socket bound on {bind_label} (local port {sock.getsockname()[1]})")
        return sock

    async def send(self, req: DatagramPort) -> None:
        """Send one datagram and record metrics.

        Args:
            req: Datagram with destination and payload.

        Raises:
            RuntimeError: If socket not opened.
            OSError: If the network stack rejects the datagram.
        """
        if self.sock is None:
            raise RuntimeError("Socket not initialized; use 'async with' context manager")

        loop = asyncio.get_running_loop()
        fired = loop.time()
        try:
            await loop.sock_sendto(self.sock, req.payload, req.destination)
        except OSError:
            self._record(req, fired, failed=True)
            raise
        self._record(req, fired, failed=False)

    def _record(self, req: DatagramPort, fired: float, *, failed: bool) -> None:
        if self.metrics is None:
            return
        self.metrics.update(
            DatagramAttemptDto(
                scheduled_at_sec=req.ideal_time_sec,
                fired_at_sec=fired,
                is_failed=failed,
                timestamp_ms=req.timestamp_ms,
            )
        )
        logger.debug(f"Send metrics: {self.metrics}")
