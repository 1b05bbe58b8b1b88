"""Tests for main application entrypoint."""

import asyncio
import logging
import os
import signal
import socket
from ipaddress import IPv4Address
from unittest.mock import AsyncMock, patch

import pytest

from src.core.timestamp import decode_timestamp
from src.main import EXIT_RUNTIME_ERROR, EXIT_SUCCESS, EXIT_USAGE_ERROR, main, run
from src.ports.settings import SettingsPort

__all__ = []


@pytest.fixture(autouse=True)
def clean_beacon_env(monkeypatch) -> None:
    """Keep environment defaults out of argument handling."""
    for name in ("BEACON_ADDR", "BEACON_PORT", "BEACON_INTERVAL_MS"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.asyncio
async def test_main_help_after_invalid_value_is_usage_error() -> None:
    """An invalid value before the help flag should still be reported."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
    ):
        status = await main(["--addr", "bogus", "--help"], program="beacon")

    assert status == EXIT_USAGE_ERROR
    mock_udp_client_class.assert_not_called()


@pytest.mark.asyncio
async def test_main_prints_help_and_succeeds(capsys) -> None:
    """Help should print usage on stdout and exit 0 without a socket."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
    ):
        status = await main(["--port", "12321", "--help"], program="beacon")

    assert status == EXIT_SUCCESS
    assert capsys.readouterr().out.startswith("Usage:\n  beacon --addr")
    mock_udp_client_class.assert_not_called()


@pytest.mark.asyncio
async def test_main_missing_address_is_usage_error(caplog) -> None:
    """Only --port should exit 2 with a missing --addr message and no socket."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
        patch("src.main.start_main_loop", new_callable=AsyncMock) as mock_loop,
    ):
        status = await main(["--port", "12321"], program="beacon")

    assert status == EXIT_USAGE_ERROR
    assert "Missing required --addr" in caplog.text
    assert "Usage:" in caplog.text
    mock_udp_client_class.assert_not_called()
    mock_loop.assert_not_called()


@pytest.mark.asyncio
async def test_main_starts_loop_with_resolved_settings() -> None:
    """Main should open the socket and hand settings to the loop."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
        patch("src.main.make_stop_on_sigterm") as mock_stop,
        patch("src.main.start_main_loop", new_callable=AsyncMock) as mock_loop,
    ):
        mock_udp_client = AsyncMock()
        mock_udp_client_class.return_value = mock_udp_client
        mock_udp_client.__aenter__.return_value = mock_udp_client

        status = await main(["--addr", "255.255.255.255", "--port", "12321"])

    assert status == EXIT_SUCCESS
    mock_loop.assert_awaited_once()
    kwargs = mock_loop.call_args.kwargs
    assert kwargs["settings"] == SettingsPort(
        destination_address=IPv4Address("255.255.255.255"),
        destination_port=12321,
        interval_ms=1000,
    )
    assert kwargs["stop_fn"] is mock_stop.return_value.is_set
    assert kwargs["stop_event"] is mock_stop.return_value
    assert kwargs["send_fn"] is mock_udp_client.send


@pytest.mark.asyncio
async def test_main_socket_setup_failure_is_runtime_error(caplog) -> None:
    """Socket setup errors should exit 1 without running the loop."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
        patch("src.main.make_stop_on_sigterm"),
        patch("src.main.start_main_loop", new_callable=AsyncMock) as mock_loop,
    ):
        mock_udp_client = AsyncMock()
        mock_udp_client_class.return_value = mock_udp_client
        mock_udp_client.__aenter__.side_effect = RuntimeError("Failed to enable broadcast: EPERM")

        status = await main(["--addr", "255.255.255.255", "--port", "12321"])

    assert status == EXIT_RUNTIME_ERROR
    assert "Failed to enable broadcast: EPERM" in caplog.text
    mock_loop.assert_not_called()


@pytest.mark.asyncio
async def test_main_clock_failure_is_runtime_error(caplog) -> None:
    """Fatal loop errors should exit 1."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
        patch("src.main.make_stop_on_sigterm"),
        patch("src.main.start_main_loop", new_callable=AsyncMock) as mock_loop,
    ):
        mock_udp_client = AsyncMock()
        mock_udp_client_class.return_value = mock_udp_client
        mock_udp_client.__aenter__.return_value = mock_udp_client
        mock_loop.side_effect = RuntimeError("System clock error (before UNIX_EPOCH): 5 ns")

        status = await main(["--addr", "255.255.255.255", "--port", "12321"])

    assert status == EXIT_RUNTIME_ERROR
    assert "before UNIX_EPOCH" in caplog.text


@pytest.mark.asyncio
async def test_main_logs_unexpected_loop_exception() -> None:
    """Unexpected exceptions should be logged with traceback and exit 1."""
    with (
        patch("src.main.configure_logs"),
        patch("src.main.UdpClient") as mock_udp_client_class,
        patch("src.main.make_stop_on_sigterm"),
        patch("src.main.start_main_loop", new_callable=AsyncMock) as mock_loop,
        patch("src.main.logger") as mock_logger,
    ):
        mock_udp_client = AsyncMock()
        mock_udp_client_class.return_value = mock_udp_client
        mock_udp_client.__aenter__.return_value = mock_udp_client
        mock_loop.side_effect = KeyError("boom")

        status = await main(["--addr", "255.255.255.255", "--port", "12321"])

    assert status == EXIT_RUNTIME_ERROR
    mock_logger.error.assert_called()
    assert mock_logger.error.call_args.kwargs == {"exc_info": True}


@pytest.mark.asyncio
async def test_main_broadcasts_timestamps_until_sigterm(caplog) -> None:
    """A real run should deliver 8-byte timestamps until SIGTERM arrives."""
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.settimeout(2.0)
    host, port = receiver.getsockname()
    loop = asyncio.get_running_loop()

    try:
        with (
            caplog.at_level(logging.INFO),
            patch("src.main.configure_logs"),
        ):
            task = asyncio.create_task(
                main(["--addr", host, "--port", str(port), "--interval-ms", "1"])
            )
            first, _ = await loop.run_in_executor(None, receiver.recvfrom, 64)
            second, _ = await loop.run_in_executor(None, receiver.recvfrom, 64)
            os.kill(os.getpid(), signal.SIGTERM)
            status = await asyncio.wait_for(task, timeout=2.0)
    finally:
        receiver.close()
        loop.remove_signal_handler(signal.SIGTERM)
        loop.remove_signal_handler(signal.SIGINT)

    assert status == EXIT_SUCCESS
    assert len(first) == len(second) == 8
    assert decode_timestamp(first) <= decode_timestamp(second)
    assert f"Sent broadcast to {host}:{port} ts_ms={decode_timestamp(first)}" in caplog.text
    assert "Send metrics: sent=" in caplog.text
    assert "Time beacon stopped." in caplog.text


@pytest.mark.asyncio
async def test_main_stops_promptly_on_sigterm_during_long_interval(caplog) -> None:
    """SIGTERM should not wait for the rest of the interval."""
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.settimeout(2.0)
    host, port = receiver.getsockname()
    loop = asyncio.get_running_loop()

    try:
        with (
            caplog.at_level(logging.INFO),
            patch("src.main.configure_logs"),
        ):
            task = asyncio.create_task(
                main(["--addr", host, "--port", str(port), "--interval-ms", "5000"])
            )
            await loop.run_in_executor(None, receiver.recvfrom, 64)
            signalled_at = loop.time()
            os.kill(os.getpid(), signal.SIGTERM)
            status = await asyncio.wait_for(task, timeout=4.0)
            elapsed = loop.time() - signalled_at
    finally:
        receiver.close()
        loop.remove_signal_handler(signal.SIGTERM)
        loop.remove_signal_handler(signal.SIGINT)

    assert status == EXIT_SUCCESS
    assert elapsed < 1.0
    assert "Send metrics: sent=1 failed=0" in caplog.text


def test_run_exits_with_main_status() -> None:
    """Console entrypoint should exit with the status returned by main."""
    with (
        patch("src.main.sys.argv", ["udp-time-beacon", "--port", "1"]),
        patch("src.main.main", new_callable=AsyncMock, return_value=EXIT_USAGE_ERROR) as mock_main,
    ):
        with pytest.raises(SystemExit) as exc_info:
            run()

    assert exc_info.value.code == EXIT_USAGE_ERROR
    mock_main.assert_awaited_once_with(["--port", "1"], program="udp-time-beacon")
