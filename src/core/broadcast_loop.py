"""Main broadcast loop that periodically sends timestamp datagrams."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from src.core.timestamp import encode_timestamp, epoch_millis
from src.ports.datagram import DatagramPort
from src.ports.settings import SettingsPort

__all__ = ["start_main_loop", "get_now_time", "wait_interval"]

logger = logging.getLogger(__name__)


def get_now_time() -> float:
    """Get current monotonic time in seconds.

    Returns:
        Current time in seconds, from the running event loop's clock.
    """
    return asyncio.get_running_loop().time()


async def start_main_loop(
    settings: SettingsPort,
    stop_fn: Callable[[], bool],
    send_fn: Callable[[DatagramPort], Awaitable[None]],
    clock_fn: Callable[[], int] = time.time_ns,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run the broadcast loop.

    Every iteration:
    1. Read the wall clock and convert it to epoch milliseconds.
    2. Encode the value as an 8-byte big-endian payload.
    3. Send it to the configured destination; send errors are logged and
       the loop carries on.
    4. Sleep for the configured interval, cut short if stop_event is set.

    The loop only ends when stop_fn() returns True, which happens on an
    external termination signal.

    Args:
        settings: Runtime configuration (destination, interval).
        stop_fn: Callable that returns True when loop should exit.
        send_fn: Async function used to send one datagram.
        clock_fn: Wall clock returning nanoseconds since the Unix epoch.
        stop_event: Optional event that interrupts the sleep between sends.

    Raises:
        RuntimeError: If the wall clock is before the epoch or the timestamp
            overflows 64 bits. Nothing is sent on that iteration.
    """
    destination = settings.destination
    label = settings.destination_label
    ideal_time: float = get_now_time()

    while not stop_fn():
        ts_ms = epoch_millis(clock_fn)
        request = DatagramPort(
            ideal_time_sec=ideal_time,
            destination=destination,
            timestamp_ms=ts_ms,
            payload=encode_timestamp(ts_ms),
        )

        try:
            await send_fn(request)
        except OSError as e:
            logger.error(f"send_to({label}) failed: {e}")
        else:
            logger.info(f"Sent broadcast to {label} ts_ms={ts_ms}")

        ideal_time = get_now_time() + settings.interval_sec
        await wait_interval(settings.interval_sec, stop_event)


async def wait_interval(interval_sec: float, stop_event: asyncio.Event | None = None) -> None:
    """Sleep for one interval, returning early once stop_event is set.

    Args:
        interval_sec: Seconds to wait.
        stop_event: Optional event set by the termination signal handler.
    """
    if stop_event is None:
        await asyncio.sleep(interval_sec)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=interval_sec)
    except TimeoutError:
        pass
