"""Subprocess helpers for the external programs the tools drive.

`run` captures the output of short lived helpers (``cliphist``, ``bc``...),
`spawn_detached` starts long lived programs which must outlive the daemon and
`BackgroundTasks` keeps fire-and-forget coroutines alive until they finish.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import subprocess
from typing import TYPE_CHECKING

from .constants import SUBPROCESS_TIMEOUT

if TYPE_CHECKING:
    import logging
    from collections.abc import Coroutine, Mapping, Sequence
    from typing import Any

__all__ = ["BackgroundTasks", "run", "spawn_detached"]


async def run(
    args: Sequence[str],
    log: logging.Logger,
    stdin: bytes | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float = SUBPROCESS_TIMEOUT,
    capture: bool = True,
) -> bytes | None:
    """Run `args` and return its standard output.

    Programs which daemonize (``wl-copy``) must run with `capture` off: their
    background child would hold the pipes open.

    Returns:
        The output, or None if the program is missing, fails or times out
    """
    log.debug("run %s", " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
            env={**os.environ, **env} if env else None,
        )
    except OSError as e:
        log.warning("Cannot run %s: %s", args[0], e)
        return None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(stdin), timeout=timeout)
    except TimeoutError:
        log.warning("%s timed out after %ss", args[0], timeout)
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        return None

    if proc.returncode != 0:
        log.warning("%s failed (%s): %s", args[0], proc.returncode, (stderr or b"").decode(errors="replace").strip())
        return None
    return stdout or b""


def spawn_detached(args: Sequence[str], log: logging.Logger) -> bool:
    """Start `args` in its own session, without waiting for it.

    Returns:
        True if the program could be started
    """
    log.info("spawning %s", " ".join(args))
    try:
        subprocess.Popen(  # noqa: S603
            list(args),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        log.warning("Cannot start %s: %s", args[0], e)
        return False
    return True


class BackgroundTasks:
    """Holds references to fire-and-forget tasks until they are done."""

    def __init__(self, log: logging.Logger) -> None:
        self.log = log
        self._tasks: set[asyncio.Task] = set()

    def add(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule `coro`, its failures are only logged."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error("Background task failed", exc_info=task.exception())

    def __len__(self) -> int:
        return len(self._tasks)

    async def wait(self) -> None:
        """Wait for the pending tasks (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
