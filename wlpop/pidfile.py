"""Single instance management through a pidfile.

The pidfile holds the decimal process id of the running daemon. A pidfile
naming a dead process (left behind by a crash or a SIGKILL) is simply
overwritten. A pid reused by an unrelated live process can't be told apart
from the daemon and is a known limitation.
"""

from __future__ import annotations

import contextlib
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from .constants import RELAUNCH_POLL_DELAY, RELAUNCH_RETRIES, TOGGLE_SIGNAL

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence

__all__ = ["PidFile", "is_alive"]


def is_alive(pid: int) -> bool:
    """Check that `pid` exists with the null signal."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # exists, owned by somebody else
        return True
    return True


class PidFile:
    """The pidfile of one tool."""

    def __init__(self, path: Path, log: logging.Logger) -> None:
        """Initialize.

        Args:
            path: pidfile location
            log: logger for status messages
        """
        self.path = path
        self.log = log

    def read(self) -> int | None:
        """Return the pid stored in the file, if readable."""
        try:
            return int(self.path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def live_pid(self) -> int | None:
        """Return the stored pid if that process is alive."""
        pid = self.read()
        if pid is not None and is_alive(pid):
            return pid
        return None

    def write(self, pid: int | None = None) -> None:
        """Store `pid` (the current process by default)."""
        self.path.write_text(str(os.getpid() if pid is None else pid), encoding="utf-8")

    def release(self) -> None:
        """Remove the pidfile if it still belongs to this process (best effort)."""
        if self.read() not in (None, os.getpid()):
            return
        with contextlib.suppress(OSError):
            self.path.unlink()

    def signal(self, signum: int) -> bool:
        """Send `signum` to the live daemon.

        Returns:
            True if a daemon was found and signaled
        """
        pid = self.live_pid()
        if pid is None:
            return False
        try:
            os.kill(pid, signum)
        except OSError as e:
            self.log.warning("Cannot signal process %s: %s", pid, e)
            return False
        self.log.debug("sent %s to %s", signal.Signals(signum).name, pid)
        return True

    def acquire_or_signal(self) -> bool:
        """Become the daemon, or toggle the one already running.

        Returns:
            True if this process must become the daemon
        """
        if self.signal(TOGGLE_SIGNAL):
            return False
        stale = self.read()
        if stale is not None:
            self.log.info("Replacing stale pidfile (pid %s)", stale)
        self.write()
        return True

    def terminate(self) -> None:
        """Stop the running daemon and wait (bounded) for it to go away."""
        pid = self.live_pid()
        if pid is not None:
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, signal.SIGTERM)
            for _ in range(RELAUNCH_RETRIES):
                if not is_alive(pid) or not self.path.exists():
                    break
                time.sleep(RELAUNCH_POLL_DELAY)
            else:
                self.log.warning("Process %s still alive after SIGTERM", pid)
        with contextlib.suppress(OSError):
            self.path.unlink()

    def relaunch_with_override(self, command: Sequence[str], overrides: dict[str, str] | None = None) -> subprocess.Popen:
        """Replace the running daemon by a new one.

        Args:
            command: arguments starting the daemon (after the python executable)
            overrides: extra environment variables for the new daemon only
        """
        self.terminate()
        env = dict(os.environ)
        env.update(overrides or {})
        return subprocess.Popen(  # noqa: S603
            [sys.executable, *command],
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
