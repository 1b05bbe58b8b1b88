"""Configuration loading from command-line arguments and environment variables."""

import logging
import os
import re
from collections.abc import Iterator, Mapping, Sequence
from ipaddress import IPv4Address, IPv6Address, ip_address

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from src.ports.settings import format_destination

__all__ = [
    "DEFAULT_INTERVAL_MS",
    "HelpRequested",
    "Settings",
    "UsageError",
    "load_settings",
    "parse_args",
    "usage",
]

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000
MAX_PORT = 65535
MAX_INTERVAL_MS = 2**64 - 1

ADDR_FLAG = "--addr"
PORT_FLAG = "--port"
INTERVAL_FLAG = "--interval-ms"
HELP_FLAGS = ("-h", "--help")

ADDR_ENV = "BEACON_ADDR"
PORT_ENV = "BEACON_PORT"
INTERVAL_ENV = "BEACON_INTERVAL_MS"

# Decimal digits, optional leading "+"
_DIGITS = re.compile(r"\+?[0-9]+")


class UsageError(ValueError):
    """Invalid or incomplete command-line arguments."""


class HelpRequested(Exception):
    """Raised when the help flag is encountered during argument parsing."""


class Settings(BaseModel):
    """Runtime configuration for the time beacon.

    Attributes:
        destination_address: IPv4 or IPv6 address datagrams are sent to.
        destination_port: UDP destination port.
        interval_ms: Milliseconds between two datagrams (must be positive).
    """

    model_config = ConfigDict(frozen=True)

    destination_address: IPvAnyAddress = Field(
        ..., description="Destination address; broadcast and multicast addresses are allowed."
    )
    destination_port: int = Field(..., ge=1, le=MAX_PORT, description="UDP destination port.")
    interval_ms: int = Field(
        default=DEFAULT_INTERVAL_MS,
        gt=0,
        le=MAX_INTERVAL_MS,
        description="Interval between datagrams in milliseconds.",
    )


def usage(program: str) -> str:
    """Return the usage message for the program.

    Args:
        program: Name the program was invoked as.
    """
    return (
        "Usage:\n"
        f"  {program} --addr <IPv4-or-IPv6> --port <1-65535> [--interval-ms <ms>]\n"
        "\n"
        "Example:\n"
        f"  {program} --addr 255.255.255.255 --port 12321 --interval-ms 1000\n"
        f"  {program} --addr ff02::1 --port 12321 --interval-ms 500\n"
        "\n"
        "Environment (used when the matching option is absent, also read from .env):\n"
        f"  {ADDR_ENV}=<ip>  {PORT_ENV}=<port>  {INTERVAL_ENV}=<ms>\n"
        "  Command-line options take precedence.\n"
    )


def _parse_unsigned(value: str, name: str) -> int:
    if not _DIGITS.fullmatch(value):
        raise UsageError(f"Invalid value for {name}: {value}")
    return int(value)


def _parse_port(value: str, name: str) -> int:
    port = _parse_unsigned(value, name)
    if port == 0 or port > MAX_PORT:
        raise UsageError(f"Port out of range for {name}: {port}")
    return port


def _parse_interval(value: str, name: str) -> int:
    interval_ms = _parse_unsigned(value, name)
    if interval_ms > MAX_INTERVAL_MS:
        raise UsageError(f"Invalid value for {name}: {value}")
    if interval_ms == 0:
        raise UsageError(f"{name} must be > 0")
    return interval_ms


def _parse_ip(value: str, name: str) -> IPv4Address | IPv6Address:
    try:
        return ip_address(value)
    except ValueError as e:
        raise UsageError(f"Invalid IP address for {name}: {value}") from e


def _next_value(tokens: Iterator[str], flag: str) -> str:
    value = next(tokens, "")
    if not value:
        raise UsageError(f"Missing value for {flag}")
    return value


def parse_args(argv: Sequence[str], env: Mapping[str, str] | None = None) -> Settings:
    """Resolve startup arguments into validated settings.

    Tokens are scanned left to right and the first problem aborts the scan,
    so a help flag placed after an invalid token is never reached.

    Recognized options:
    - --addr <ip>: destination address (required).
    - --port <1-65535>: destination port (required).
    - --interval-ms <ms>: send interval, positive integer (default 1000).
    - -h / --help: request usage text.

    Values missing from argv are looked up in ``env`` (BEACON_ADDR,
    BEACON_PORT, BEACON_INTERVAL_MS) and validated with the same rules.

    Args:
        argv: Argument tokens, program name excluded.
        env: Optional environment used for defaults.

    Returns:
        Validated Settings object.

    Raises:
        HelpRequested: If a help flag is reached.
        UsageError: If an argument is missing, malformed, or unknown.
    """
    env = env or {}
    addr: IPv4Address | IPv6Address | None = None
    port: int | None = None
    interval_ms: int | None = None

    tokens = iter(argv)
    for arg in tokens:
        if arg == ADDR_FLAG:
            addr = _parse_ip(_next_value(tokens, arg), arg)
        elif arg == PORT_FLAG:
            port = _parse_port(_next_value(tokens, arg), arg)
        elif arg == INTERVAL_FLAG:
            interval_ms = _parse_interval(_next_value(tokens, arg), arg)
        elif arg in HELP_FLAGS:
            raise HelpRequested()
        else:
            raise UsageError(f"Unknown argument: {arg}")

    if addr is None and env.get(ADDR_ENV):
        addr = _parse_ip(env[ADDR_ENV], ADDR_ENV)
    if port is None and env.get(PORT_ENV):
        port = _parse_port(env[PORT_ENV], PORT_ENV)
    if interval_ms is None and env.get(INTERVAL_ENV):
        interval_ms = _parse_interval(env[INTERVAL_ENV], INTERVAL_ENV)

    if addr is None:
        raise UsageError(f"Missing required {ADDR_FLAG}")
    if port is None:
        raise UsageError(f"Missing required {PORT_FLAG}")

    return Settings(
        destination_address=addr,
        destination_port=port,
        interval_ms=interval_ms if interval_ms is not None else DEFAULT_INTERVAL_MS,
    )


def load_settings(argv: Sequence[str]) -> Settings:
    """Load and validate settings from argv, falling back to the environment.

    Optional environment variables (also read from a .env file):
    - BEACON_ADDR: Destination address when --addr is absent.
    - BEACON_PORT: Destination port when --port is absent.
    - BEACON_INTERVAL_MS: Interval when --interval-ms is absent.

    Args:
        argv: Argument tokens, program name excluded.

    Returns:
        Validated Settings object.

    Raises:
        HelpRequested: If a help flag is reached.
        UsageError: If configuration is invalid.
    """
    settings = parse_args(argv, os.environ)

    logger.info(
        "Beacon configured: "
        f"destination={format_destination(settings.destination_address, settings.destination_port)}, "
        f"interval={settings.interval_ms}ms"
    )

    return settings
