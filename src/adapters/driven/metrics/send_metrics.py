"""Send statistics for the beacon, summarised on shutdown."""

from __future__ import annotations

from collections import deque

from src.ports.metrics import DatagramAttemptDto, MetricsPort

__all__ = ["Metrics"]


class Metrics(MetricsPort):
    """Counters over the whole run plus lateness over recent sends.

    Lateness is how long after its due time a datagram reached the socket;
    it grows when the event loop is starved or the clock read is slow.
    Failure counters cover every send since start-up.

    Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        self._lateness_ms: deque[float] = deque(maxlen=window_size)
        self.sent = 0
        self.failed = 0
        self.failure_streak = 0
        self.longest_failure_streak = 0
        self.last_timestamp_ms: int | None = None

    def update(self, attempt: DatagramAttemptDto) -> None:
        self._lateness_ms.append(max(0.0, attempt.fired_at_sec - attempt.scheduled_at_sec) * 1_000.0)

        if attempt.is_failed:
            self.failed += 1
            self.failure_streak += 1
            self.longest_failure_streak = max(self.longest_failure_streak, self.failure_streak)
            return

        self.sent += 1
        self.failure_streak = 0
        self.last_timestamp_ms = attempt.timestamp_ms

    @property
    def max_lateness_ms(self) -> float:
        return max(self._lateness_ms, default=0.0)

    @property
    def mean_lateness_ms(self) -> float:
        if not self._lateness_ms:
            return 0.0
        return sum(self._lateness_ms) / len(self._lateness_ms)

    def __str__(self) -> str:
        if not self._lateness_ms:
            return "no datagrams attempted"

        last = "-" if self.last_timestamp_ms is None else str(self.last_timestamp_ms)
        return (
            f"sent={self.sent} failed={self.failed} "
            f"(longest streak {self.longest_failure_streak}), "
            f"lateness mean/max={self.mean_lateness_ms:.1f}/{self.max_lateness_ms:.1f} ms "
            f"over last {len(self._lateness_ms)}, "
            f"last ts_ms={last}"
        )
