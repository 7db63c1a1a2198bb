"""wlpop command line front-end.

Running a tool without arguments starts its daemon, or toggles the one
already running. The other commands manage a running daemon or the
configuration files.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from typing import TYPE_CHECKING

from .client import run_client
from .config_loader import ConfigLoader
from .constants import DAEMON_SIGNALS, THEME_OVERRIDE_ENV, TOGGLE_SIGNAL
from .daemon import run_daemon
from .keys import default_keybinds
from .logging_setup import get_logger, init_logger
from .models import ExitCode, WlpopError
from .paths import config_dir, control_socket_path, pidfile_path
from .pidfile import PidFile
from .themes import list_themes
from .tools import TOOLS, load_tool

if TYPE_CHECKING:
    from collections.abc import Callable

    from .tools import Tool

__all__ = ["cliphist_main", "launcher_main", "main"]

USAGE = """\
Syntax: {prog} [command]

If the command is omitted, starts the daemon or toggles the running one.

Available commands:
 toggle, open          Toggle the window of the running daemon
 close                 Stop the running daemon
 --reload              Restart the daemon
 -T, --theme <name>    Restart the daemon with another theme
 show-themes, --themes List the available themes
 --config              Show the configuration folder
 --generate-config     Create the default configuration files
 validate              Check the configuration file
 send <command>        Send a control command (key, query, activate, state...)
 --debug <file>        Log debug messages to <file>
 --help, -h            Show this help
"""


def use_param(txt: str, short: str = "") -> str:
    """Check if parameter `txt` (or its `short` alias) is in sys.argv.

    If found, removes it from sys.argv & returns the argument value
    """
    v = ""
    for name in (txt, short):
        if name and name in sys.argv:
            i = sys.argv.index(name)
            v = sys.argv[i + 1] if i + 1 < len(sys.argv) else ""
            del sys.argv[i : i + 2]
            break
    return v


def daemon_args(tool: Tool) -> list[str]:
    """Return the interpreter arguments starting the daemon of `tool`."""
    return ["-m", "wlpop", tool.name]


def toml_value(value: object) -> str:
    """Format a scalar as a TOML value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return json.dumps(str(value))


def default_config(tool: Tool) -> str:
    """Return the content of a configuration file holding every default."""
    lines = []
    for section, schema in (("window", tool.window_schema()), ("behavior", tool.behavior_schema)):
        lines.append(f"[{section}]")
        for field in schema:
            if field.description:
                lines.append(f"# {field.description}")
            lines.append(f"{field.name} = {toml_value(field.default)}")
        lines.append("")
    lines.append("[style]")
    lines.append(f"theme = {toml_value(str(config_dir(tool.app_name) / 'style.css'))}")
    lines.append("")
    lines.append("[keybinds]")
    for action, chords in default_keybinds(tool.allow_delete).items():
        lines.append(f"{action} = {toml_value(' '.join(str(chord) for chord in chords))}")
    return "\n".join(lines) + "\n"


# Commands {{{


def cmd_daemon(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Start the daemon, or toggle the running one."""
    pidfile = PidFile(pidfile_path(tool.app_name), log)
    # held until the daemon installs its handlers, the default action would kill it
    signal.pthread_sigmask(signal.SIG_BLOCK, DAEMON_SIGNALS)
    if not pidfile.acquire_or_signal():
        signal.pthread_sigmask(signal.SIG_UNBLOCK, DAEMON_SIGNALS)
        log.info("%s is already running, toggled", tool.app_name)
        return ExitCode.SUCCESS
    asyncio.run(run_daemon(tool, pidfile))
    return ExitCode.SUCCESS


def _signal_daemon(tool: Tool, signum: int) -> int:
    pidfile = PidFile(pidfile_path(tool.app_name), get_logger("startup"))
    if not pidfile.signal(signum):
        print("Daemon not running", file=sys.stderr)
        return ExitCode.NOT_RUNNING
    return ExitCode.SUCCESS


def cmd_toggle(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Toggle the window of the running daemon."""
    return _signal_daemon(tool, TOGGLE_SIGNAL)


def cmd_close(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Stop the running daemon."""
    return _signal_daemon(tool, signal.SIGTERM)


def cmd_reload(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Replace the running daemon by a fresh one."""
    PidFile(pidfile_path(tool.app_name), log).relaunch_with_override(daemon_args(tool))
    print(f"{tool.app_name} reloaded")
    return ExitCode.SUCCESS


def cmd_theme(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Restart the daemon with theme `args[0]`, for this run only."""
    if not args:
        print(f"Usage: {tool.app_name} --theme <name>", file=sys.stderr)
        return ExitCode.USAGE_ERROR
    theme = args[0]
    if theme not in list_themes(tool.app_name):
        print(f"Unknown theme: {theme}", file=sys.stderr)
        return ExitCode.USAGE_ERROR
    PidFile(pidfile_path(tool.app_name), log).relaunch_with_override(daemon_args(tool), {THEME_OVERRIDE_ENV: theme})
    print(f"Started with theme: {theme}")
    return ExitCode.SUCCESS


def cmd_themes(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """List the themes."""
    print("Available themes:")
    for name in list_themes(tool.app_name):
        print(f"  {name}")
    return ExitCode.SUCCESS


def cmd_config(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Show the configuration folder and its files."""
    folder = config_dir(tool.app_name)
    if not folder.is_dir():
        print(f"Config directory does not exist: {folder}")
        print(f"Run '{tool.app_name} --generate-config' to create it.")
        return ExitCode.SUCCESS
    print(folder)
    for path in sorted(folder.iterdir()):
        print(f"  {path.name}")
    return ExitCode.SUCCESS


def cmd_generate_config(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Write the default configuration files, never overwriting."""
    folder = config_dir(tool.app_name)
    try:
        folder.mkdir(parents=True, exist_ok=True)
        for name, content in (("style.css", tool.default_css), ("config.toml", default_config(tool))):
            path = folder / name
            if path.exists():
                print(f"{name} already exists at {path}")
            else:
                path.write_text(content, encoding="utf-8")
                print(f"Created {path}")
    except OSError as e:
        log.critical("Cannot write the configuration: %s", e)
        raise WlpopError(ExitCode.CONFIG_ERROR) from e
    print(f"Config directory: {folder}")
    return ExitCode.SUCCESS


def cmd_validate(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Check the configuration file without starting the daemon."""
    silent_logger = logging.getLogger(f"wlpop.validate.{tool.name}")
    silent_logger.addHandler(logging.NullHandler())
    silent_logger.propagate = False
    loader = ConfigLoader(tool.app_name, silent_logger)
    settings = asyncio.run(loader.load(tool.window_schema(), tool.behavior_schema, tool.allow_delete))
    print(f"Validating {loader.path}...\n")
    for error in settings.errors:
        print(f"  ERROR: {error}")
    if settings.errors:
        print(f"\nFound {len(settings.errors)} error(s)")
        return ExitCode.CONFIG_ERROR
    print("Configuration is valid!")
    return ExitCode.SUCCESS


def cmd_send(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Forward a command to the daemon's control socket."""
    if not args:
        print(f"Usage: {tool.app_name} send <command>", file=sys.stderr)
        return ExitCode.USAGE_ERROR
    return asyncio.run(run_client(control_socket_path(tool.app_name), " ".join(args), log))


def cmd_help(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Show the usage."""
    print(USAGE.format(prog=tool.app_name))
    return ExitCode.SUCCESS


COMMANDS: dict[str, Callable[[Tool, list[str], logging.Logger], int]] = {
    "toggle": cmd_toggle,
    "open": cmd_toggle,
    "close": cmd_close,
    "--reload": cmd_reload,
    "-T": cmd_theme,
    "--theme": cmd_theme,
    "show-themes": cmd_themes,
    "--themes": cmd_themes,
    "--config": cmd_config,
    "--generate-config": cmd_generate_config,
    "validate": cmd_validate,
    "send": cmd_send,
    "--help": cmd_help,
    "-h": cmd_help,
}

# }}}


def run_command(tool: Tool, args: list[str], log: logging.Logger) -> int:
    """Run the command in `args` (the daemon if empty), return the exit code."""
    if not args:
        return cmd_daemon(tool, args, log)
    handler = COMMANDS.get(args[0])
    if handler is None:
        print(f"Unknown option: {args[0]}", file=sys.stderr)
        print(USAGE.format(prog=tool.app_name), file=sys.stderr)
        return ExitCode.USAGE_ERROR
    return handler(tool, args[1:], log)


def main(tool_name: str | None = None) -> None:
    """Run the command."""
    debug_flag = use_param("--debug")
    args = sys.argv[1:]

    if tool_name is None:
        if not args or args[0] not in TOOLS:
            print(f"Syntax: wlpop <{'|'.join(TOOLS)}> [command]", file=sys.stderr)
            sys.exit(ExitCode.SUCCESS if args and args[0] in ("--help", "-h") else ExitCode.USAGE_ERROR)
        tool_name = args.pop(0)

    tool = load_tool(tool_name)
    init_logger(filename=debug_flag or None, force_debug=bool(debug_flag), app_name=None if args else tool.app_name)
    log = get_logger("startup")

    try:
        code = run_command(tool, args, log)
    except KeyboardInterrupt:
        code = ExitCode.SUCCESS
    except WlpopError as e:
        log.critical("Command failed.")
        code = e.args[0] if e.args else ExitCode.COMMAND_ERROR
    except Exception:  # pylint: disable=W0718
        log.critical("Unhandled exception:", exc_info=True)
        code = ExitCode.COMMAND_ERROR
    sys.exit(code)


def cliphist_main() -> None:
    """Run the clipboard history tool (``cliphist-gui``)."""
    main("clipboard")


def launcher_main() -> None:
    """Run the application launcher (``launch-gui``)."""
    main("launcher")


if __name__ == "__main__":
    main()
