"""The popup daemon.

One daemon runs per tool. It owns the `Session`, executes the effects the
session returns and reacts to:

- SIGUSR1: toggle the window
- SIGUSR2: reload the configuration and the stylesheet
- SIGTERM / SIGINT: exit
- one line commands on the control socket (see `Daemon.read_command`)

Signals and socket commands are queued and executed one at a time by a single
runner task, so handlers never interleave.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import signal
from typing import TYPE_CHECKING, Any

from .config_loader import ConfigLoader, Settings
from .constants import DAEMON_SIGNALS, RELOAD_SIGNAL, TASK_TIMEOUT, TOGGLE_SIGNAL
from .frontend import Frontend, HeadlessFrontend
from .keys import parse_chord
from .logging_setup import get_logger
from .models import ResponsePrefix
from .paths import control_socket_path
from .session import (
    Activate,
    Hide,
    KeyPress,
    ModeChanged,
    Outcome,
    Preview,
    QueryChanged,
    Remove,
    Render,
    RowActivated,
    Session,
)
from .themes import resolve_css

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from pathlib import Path

    from .pidfile import PidFile
    from .session import Effect, Event
    from .tools import Tool

    Job = tuple[Callable[[], Awaitable[Any]], asyncio.Future | None]

__all__ = ["Daemon", "run_daemon"]


class Daemon:
    """Runs one tool: candidates, input handling, visibility and reloads."""

    server: asyncio.AbstractServer | None = None
    stopped = False

    def __init__(self, tool: Tool, frontend: Frontend | None = None, socket_path: Path | None = None) -> None:
        """Initialize the daemon.

        Args:
            tool: the tool providing the candidates
            frontend: display, a `HeadlessFrontend` by default
            socket_path: control socket location
        """
        self.tool = tool
        self.log = get_logger(f"{tool.name}.daemon")
        self.frontend = frontend or HeadlessFrontend(get_logger(f"{tool.name}.frontend"))
        self.socket_path = socket_path or control_socket_path(tool.app_name)
        self.config_loader = ConfigLoader(tool.app_name, self.log)
        self.queue: asyncio.Queue[Job | None] = asyncio.Queue()
        self.session: Session | None = None

    # Configuration {{{

    async def load_settings(self) -> Settings:
        """Read the configuration and hand it to the tool."""
        settings = await self.config_loader.load(self.tool.window_schema(), self.tool.behavior_schema, self.tool.allow_delete)
        await self.tool.on_reload(settings)
        return settings

    async def apply_style(self, settings: Settings) -> None:
        """Load the stylesheet and give it to the frontend."""
        self.frontend.apply_style(await resolve_css(self.tool.app_name, settings, self.tool.default_css))

    async def initialize(self) -> None:
        """Load the configuration and create the session."""
        settings = await self.load_settings()
        self.session = Session(self.tool.create_filter(), settings, allow_delete=self.tool.allow_delete)
        await self.apply_style(settings)

    # }}}

    # Lifecycle operations {{{

    async def toggle(self) -> None:
        """Hide the window, or refresh everything and show it."""
        assert self.session is not None
        if self.frontend.visible:
            self.frontend.hide()
            return
        settings = await self.load_settings()
        self.session.filter = self.tool.create_filter()
        self.session.reset(await self.tool.fetch(), settings)
        self.frontend.set_mode(self.session.mode)
        self.render()
        self.frontend.show()

    async def reload_style(self) -> None:
        """Reload the configuration and the stylesheet, keep the list and visibility."""
        assert self.session is not None
        settings = await self.load_settings()
        self.session.settings = settings
        await self.apply_style(settings)
        self.frontend.set_mode(self.session.mode)
        self.log.info("configuration reloaded")

    def render(self) -> None:
        """Display the current rows."""
        assert self.session is not None
        self.frontend.render(self.session.rows, self.session.selected, self.session.query)

    # }}}

    # Event handling {{{

    async def dispatch(self, event: Event) -> Outcome:
        """Feed `event` to the session and carry out the resulting effects."""
        assert self.session is not None
        outcome = self.session.handle(event)
        for effect in outcome.effects:
            await self.run_effect(effect)
        return outcome

    async def run_effect(self, effect: Effect) -> None:
        """Carry out one effect."""
        assert self.session is not None
        if isinstance(effect, Render):
            self.render()
        elif isinstance(effect, Hide):
            self.frontend.hide()
        elif isinstance(effect, ModeChanged):
            self.frontend.set_mode(effect.mode)
        elif isinstance(effect, Activate):
            if await self.tool.activate(effect.candidate, effect.query):
                self.frontend.hide()
        elif isinstance(effect, Remove):
            await self.tool.remove(effect.candidate)
            self.session.set_candidates(await self.tool.fetch())
            self.render()
        elif isinstance(effect, Preview):
            self.session.show_preview(await self.tool.preview(effect.query))

    # }}}

    # Task queue {{{

    def schedule(self, handler: Callable[[], Awaitable[Any]]) -> None:
        """Queue `handler` without waiting for it (signal handlers)."""
        self.queue.put_nowait((handler, None))

    async def submit(self, handler: Callable[[], Awaitable[Any]]) -> Any:  # noqa: ANN401
        """Queue `handler` and wait for its result."""
        if self.stopped:
            msg = "daemon is exiting"
            raise RuntimeError(msg)
        future = asyncio.get_running_loop().create_future()
        await self.queue.put((handler, future))
        return await future

    async def _execute_queued_task(self, handler: Callable[[], Awaitable[Any]], future: asyncio.Future | None) -> None:
        try:
            result = await asyncio.wait_for(handler(), timeout=TASK_TIMEOUT)
        except TimeoutError as e:
            self.log.exception("Timeout running %s", handler)
            if future is not None and not future.done():
                future.set_exception(e)
        except Exception as e:  # pylint: disable=W0718
            self.log.exception("Unhandled error running %s", handler)
            if future is not None and not future.done():
                future.set_exception(e)
        else:
            if future is not None and not future.done():
                future.set_result(result)

    async def runner_loop(self) -> None:
        """Run the queued handlers one at a time, until `stop`."""
        while not self.stopped:
            job = await self.queue.get()
            if job is None:
                break
            await self._execute_queued_task(*job)
        while not self.queue.empty():
            job = self.queue.get_nowait()
            if job is not None and job[1] is not None and not job[1].done():
                job[1].set_exception(RuntimeError("daemon is exiting"))

    # }}}

    # Control socket {{{

    async def _process_command(self, data: str) -> str:
        """Run one control command and return the reply."""
        cmd, _, arg = data.partition(" ")
        assert self.session is not None

        if cmd == "key":
            chord = parse_chord(arg.strip(), self.log)
            if chord is None:
                return f"{ResponsePrefix.ERROR}: invalid key {arg!r}\n"
            outcome = await self.submit(lambda: self.dispatch(KeyPress(chord.key, chord.modifiers)))
            return f"{ResponsePrefix.OK}\n{'handled' if outcome.handled else 'passthrough'}\n"
        if cmd == "query":
            await self.submit(lambda: self.dispatch(QueryChanged(arg)))
        elif cmd == "activate":
            try:
                index = int(arg)
            except ValueError:
                return f"{ResponsePrefix.ERROR}: invalid row {arg!r}\n"
            outcome = await self.submit(lambda: self.dispatch(RowActivated(index)))
            if not outcome.handled:
                return f"{ResponsePrefix.ERROR}: no row {index}\n"
        elif cmd == "toggle":
            await self.submit(self.toggle)
        elif cmd == "reload":
            await self.submit(self.reload_style)
        elif cmd == "state":
            return f"{ResponsePrefix.OK}\n{json.dumps(self.state())}\n"
        elif cmd == "exit":
            self.stop()
        else:
            self.log.warning("No such command: %s", cmd)
            return f"{ResponsePrefix.ERROR}: Unknown command {cmd!r}\n"
        return f"{ResponsePrefix.OK}\n"

    async def read_command(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Receive a socket command.

        Args:
            reader: The stream reader
            writer: The stream writer
        """
        data = (await reader.readline()).decode()

        if not data.strip():
            self.log.warning("Empty command received")
            writer.write(f"{ResponsePrefix.ERROR}: No command provided\n".encode())
        else:
            try:
                response = await self._process_command(data.rstrip("\n"))
            except Exception as e:  # pylint: disable=W0718
                response = f"{ResponsePrefix.ERROR}: {e}\n"
            writer.write(response.encode())

        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            await writer.drain()
        writer.close()

    def state(self) -> dict[str, Any]:
        """Return the displayed state (``state`` command)."""
        assert self.session is not None
        return {
            "visible": self.frontend.visible,
            "mode": str(self.session.mode) if self.session.mode else None,
            "query": self.session.query,
            "selected": self.session.selected,
            "rows": [{"primary": c.primary_text, "secondary": c.secondary_text} for c in self.session.rows],
        }

    async def serve(self) -> None:
        """Run the server."""
        assert self.server is not None
        async with self.server:
            await self.server.wait_closed()

    # }}}

    def install_signal_handlers(self) -> None:
        """Map the process signals to daemon operations."""
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(TOGGLE_SIGNAL, self.schedule, self.toggle)
        loop.add_signal_handler(RELOAD_SIGNAL, self.schedule, self.reload_style)
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self.stop)
        # delivers the signals received while starting
        signal.pthread_sigmask(signal.SIG_UNBLOCK, DAEMON_SIGNALS)

    def remove_signal_handlers(self) -> None:
        """Give the process signals back to their previous handlers."""
        loop = asyncio.get_running_loop()
        for signum in (*DAEMON_SIGNALS, signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(signum)

    def stop(self) -> None:
        """Ask the daemon to exit."""
        if self.stopped:
            return
        self.log.info("exiting")
        self.stopped = True
        self.queue.put_nowait(None)
        if self.server is not None:
            self.server.close()

    async def start_server(self) -> None:
        """Open the control socket."""
        with contextlib.suppress(FileNotFoundError):
            self.socket_path.unlink()
        self.server = await asyncio.start_unix_server(self.read_command, str(self.socket_path))

    async def run(self) -> None:
        """Serve until `stop` is called, showing the window first."""
        self.schedule(self.toggle)
        tasks = [asyncio.create_task(self.runner_loop())]
        if self.server is not None:
            tasks.append(asyncio.create_task(self.serve()))
        await asyncio.gather(*tasks)

    async def shutdown(self) -> None:
        """Release the resources."""
        await self.tool.exit()
        with contextlib.suppress(FileNotFoundError):
            self.socket_path.unlink()


async def run_daemon(tool: Tool, pidfile: PidFile, frontend: Frontend | None = None) -> None:
    """Run the daemon of `tool`, the pidfile must already be acquired."""
    daemon = Daemon(tool, frontend)
    try:
        await daemon.initialize()
        try:
            await daemon.start_server()
        except OSError as e:
            daemon.log.warning("Cannot open control socket %s: %s", daemon.socket_path, e)
        daemon.install_signal_handlers()
        daemon.log.debug("[ initialized ]".center(80, "="))
        await daemon.run()
    finally:
        daemon.remove_signal_handlers()
        await daemon.shutdown()
        pidfile.release()
