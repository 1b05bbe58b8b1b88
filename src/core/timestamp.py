"""Wall-clock timestamp acquisition and wire encoding."""

import struct
import time
from collections.abc import Callable

__all__ = [
    "MAX_TIMESTAMP_MS",
    "PAYLOAD_SIZE",
    "decode_timestamp",
    "encode_timestamp",
    "epoch_millis",
]

# Network byte order, unsigned 64-bit
_WIRE_FORMAT = struct.Struct("!Q")

PAYLOAD_SIZE = _WIRE_FORMAT.size
MAX_TIMESTAMP_MS = 2**64 - 1
_NS_PER_MS = 1_000_000


def epoch_millis(clock_fn: Callable[[], int] = time.time_ns) -> int:
    """Return whole milliseconds elapsed since the Unix epoch.

    Args:
        clock_fn: Wall clock returning nanoseconds since the epoch.

    Returns:
        Milliseconds since 1970-01-01T00:00:00Z.

    Raises:
        RuntimeError: If the clock reads before the epoch, or the value
            does not fit the unsigned 64-bit payload.
    """
    now_ns = clock_fn()
    if now_ns < 0:
        raise RuntimeError(
            f"System clock error (before UNIX_EPOCH): {-now_ns} ns before epoch"
        )

    ts_ms = now_ns // _NS_PER_MS
    if ts_ms > MAX_TIMESTAMP_MS:
        raise RuntimeError(f"Timestamp overflow: system time too large for u64 ({ts_ms} ms)")
    return ts_ms


def encode_timestamp(ts_ms: int) -> bytes:
    """Serialize a millisecond timestamp as 8 big-endian bytes.

    Raises:
        ValueError: If ts_ms is negative or above MAX_TIMESTAMP_MS.
    """
    if not 0 <= ts_ms <= MAX_TIMESTAMP_MS:
        raise ValueError(f"Timestamp out of range for u64: {ts_ms}")
    return _WIRE_FORMAT.pack(ts_ms)


def decode_timestamp(payload: bytes) -> int:
    """Parse an 8-byte big-endian payload back into milliseconds."""
    if len(payload) != PAYLOAD_SIZE:
        raise ValueError(f"Payload must be exactly {PAYLOAD_SIZE} bytes (got: {len(payload)})")
    (ts_ms,) = _WIRE_FORMAT.unpack(payload)
    return ts_ms
