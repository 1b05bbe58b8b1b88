"""Settings port definition (DTO)."""

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address

__all__ = ["SettingsPort", "format_destination"]


def format_destination(address: IPv4Address | IPv6Address, port: int) -> str:
    """Render an address/port pair the way socket addresses are usually shown.

    IPv6 addresses are wrapped in brackets, e.g. ``[ff02::1]:12321``.
    """
    if address.version == 6:
        return f"[{address}]:{port}"
    return f"{address}:{port}"


@dataclass(frozen=True)
class SettingsPort:
    """Runtime settings for the broadcast loop.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        destination_address: IPv4 or IPv6 address datagrams are sent to.
        destination_port: UDP port datagrams are sent to (1-65535).
        interval_ms: Milliseconds slept between two sends (> 0).
    """

    destination_address: IPv4Address | IPv6Address
    destination_port: int
    interval_ms: int = 1000

    @property
    def destination(self) -> tuple[str, int]:
        """Socket address tuple accepted by ``sendto``."""
        return str(self.destination_address), self.destination_port

    @property
    def destination_label(self) -> str:
        """Human-readable destination for log lines."""
        return format_destination(self.destination_address, self.destination_port)

    @property
    def interval_sec(self) -> float:
        return self.interval_ms / 1_000
