"""Application entrypoint."""

import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from src.adapters.driven.config.settings import HelpRequested, UsageError, load_settings, usage
from src.adapters.driven.logging.logging_config import configure_logs
from src.adapters.driven.metrics.send_metrics import Metrics
from src.adapters.driven.udp.client import UdpClient
from src.adapters.driving.signals import make_stop_on_sigterm
from src.core.broadcast_loop import start_main_loop
from src.ports.settings import SettingsPort

__all__ = ["EXIT_RUNTIME_ERROR", "EXIT_SUCCESS", "EXIT_USAGE_ERROR", "main", "run"]

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_USAGE_ERROR = 2

DEFAULT_PROGRAM = "udp-time-beacon"


async def main(argv: Sequence[str], program: str = DEFAULT_PROGRAM) -> int:
    """Start the UDP time beacon.

    Startup sequence:
    1. Configure logging.
    2. Resolve and validate configuration (no socket touched yet).
    3. Open the UDP socket and enable broadcast.
    4. Run the broadcast loop until a termination signal arrives.
    5. Log the send metrics summary, whatever the outcome.

    Args:
        argv: Argument tokens, program name excluded.
        program: Name shown in usage text.

    Returns:
        Process exit status.
    """
    configure_logs()

    try:
        config = load_settings(argv)
    except HelpRequested:
        print(usage(program), end="")
        return EXIT_SUCCESS
    except UsageError as exc:
        logger.error(f"{exc}\n{usage(program)}")
        return EXIT_USAGE_ERROR

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        destination_address=config.destination_address,
        destination_port=config.destination_port,
        interval_ms=config.interval_ms,
    )

    metrics = Metrics()
    udp_client = UdpClient(settings=settings_port, metrics=metrics)

    try:
        async with udp_client as udp:
            logger.info(f"Broadcasting to {settings_port.destination_label}...")
            stop = make_stop_on_sigterm()
            await start_main_loop(
                settings=settings_port,
                stop_fn=stop.is_set,
                send_fn=udp.send,
                stop_event=stop,
            )
    except RuntimeError as e:
        logger.error(str(e))
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        logger.error(f"Unhandled exception in broadcast loop: {e}", exc_info=True)
        return EXIT_RUNTIME_ERROR
    finally:
        logger.info(f"Send metrics: {metrics}")

    logger.info("Time beacon stopped.")
    return EXIT_SUCCESS


def run() -> None:
    """Console script entrypoint."""
    try:
        status = asyncio.run(main(sys.argv[1:], program=Path(sys.argv[0]).name or DEFAULT_PROGRAM))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
        status = EXIT_SUCCESS
    raise SystemExit(status)


if __name__ == "__main__":
    run()
