"""Signal handling for graceful shutdown."""

import asyncio
import logging
import signal

__all__ = ["make_stop_on_sigterm"]

logger = logging.getLogger(__name__)

_STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def make_stop_on_sigterm() -> asyncio.Event:
    """Create a signal-driven stop event for the broadcast loop.

    Registers SIGTERM/SIGINT handlers on the running loop that set an
    asyncio.Event. The loop polls is_set() once per iteration and waits
    on the event between sends, so a signal ends it without waiting out
    the interval.

    The handlers remove themselves on the first signal: a second SIGTERM
    terminates the process and a second SIGINT raises KeyboardInterrupt.

    Returns:
        Event that is set once a termination signal was received.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info(f"{sig.name} received, stopping beacon...")
        stop.set()
        for registered in _STOP_SIGNALS:
            loop.remove_signal_handler(registered)

    for sig in _STOP_SIGNALS:
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop
