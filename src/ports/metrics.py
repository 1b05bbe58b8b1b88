"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["DatagramAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class DatagramAttemptDto:
    """Outcome of one datagram send.

    Attributes:
        scheduled_at_sec: Monotonic seconds when the send was due.
        fired_at_sec: Monotonic seconds when the datagram was handed to the socket.
        timestamp_ms: Epoch milliseconds carried by the payload.
        is_failed: True if the socket reported an error.
    """

    scheduled_at_sec: float
    fired_at_sec: float
    timestamp_ms: int
    is_failed: bool = False


class MetricsPort(Protocol):
    """Sink for per-send outcomes, rendered as a one-line summary."""

    def update(self, attempt: DatagramAttemptDto, /) -> None: ...

    def __str__(self) -> str: ...
