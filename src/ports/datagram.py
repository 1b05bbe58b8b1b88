"""Datagram port definition (DTO)."""

from dataclasses import dataclass

__all__ = ["DatagramPort"]


@dataclass(frozen=True)
class DatagramPort:
    """One timestamp datagram to be sent by the beacon.

    Decouples core scheduling logic from socket implementation details.

    Attributes:
        ideal_time_sec: Monotonic time when the datagram was due.
        destination: Socket address tuple (host, port).
        timestamp_ms: Milliseconds since the Unix epoch carried by the payload.
        payload: Encoded timestamp, exactly 8 bytes.
    """

    ideal_time_sec: float
    destination: tuple[str, int]
    timestamp_ms: int
    payload: bytes
