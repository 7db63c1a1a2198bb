"""Control socket client (``wlpop <tool> send <command>``)."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

from .constants import CONTROL_TIMEOUT
from .models import ExitCode, ResponsePrefix, WlpopError

if TYPE_CHECKING:
    import logging
    from pathlib import Path

__all__ = ["parse_response", "run_client", "send_command"]


def parse_response(response: str) -> tuple[bool, str]:
    """Split a daemon reply into (success, payload)."""
    if response.startswith(f"{ResponsePrefix.ERROR}:"):
        return False, response[len(ResponsePrefix.ERROR) + 1 :].strip()
    if response.startswith(ResponsePrefix.OK):
        return True, response[len(ResponsePrefix.OK) :].strip()
    return True, response.rstrip()


async def send_command(socket_path: Path, command: str, log: logging.Logger) -> tuple[bool, str]:
    """Send one command to the daemon and return the parsed reply.

    Raises:
        WlpopError: the daemon can't be reached (already logged)
    """
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_unix_connection(str(socket_path)), timeout=CONTROL_TIMEOUT)
    except (ConnectionRefusedError, FileNotFoundError, TimeoutError) as e:
        log.critical("Cannot connect to the daemon at %s. Is it running?", socket_path)
        raise WlpopError(ExitCode.CONNECTION_ERROR) from e

    writer.write(f"{command}\n".encode())
    writer.write_eof()
    await writer.drain()
    response = (await reader.read()).decode("utf-8")
    writer.close()
    await writer.wait_closed()
    return parse_response(response)


async def run_client(socket_path: Path, command: str, log: logging.Logger) -> int:
    """Forward `command` and print the reply, return the exit code."""
    success, payload = await send_command(socket_path, command, log)
    if not success:
        print(f"Error: {payload}", file=sys.stderr)
        return ExitCode.COMMAND_ERROR
    if payload:
        print(payload)
    return ExitCode.SUCCESS
