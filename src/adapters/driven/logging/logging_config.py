"""Console logging setup for the beacon."""

import logging
import os
import sys

__all__ = ["configure_logs"]


class _BelowWarning(logging.Filter):
    """Let through only records that belong on stdout."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_logs(level: str | None = None) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at INFO level.
    - DEBUG/INFO records on stdout, WARNING and above on stderr.
    - Framework loggers (asyncio) at WARNING level.
    - Application loggers (src) at ``level``, else LOG_LEVEL, else INFO.
    - Structured format with timestamp, level, module, and line number.

    Args:
        level: Optional level name for application loggers, e.g. "DEBUG".
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    date_format = "%d/%m/%y %H:%M:%S"

    formatter = logging.Formatter(log_format, date_format)

    info_handler = logging.StreamHandler(sys.stdout)
    info_handler.setFormatter(formatter)
    info_handler.addFilter(_BelowWarning())

    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.WARNING)

    # Root logger
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(info_handler)
    root.addHandler(error_handler)

    # Suppress verbose framework loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    # Application loggers
    app_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.getLogger("src").setLevel(app_level)
