"""Application launcher popup.

Candidates are the ``.desktop`` files found in the XDG data folders, ranked
with the fuzzy filter. Launch counts are kept in memory and boost the
applications used most since the daemon started. A query starting with ``=``
is evaluated while it is typed: a valid expression replaces the list with a
single row copying the result.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from ..calc import PREFIX as CALC_PREFIX
from ..calc import calc_eval
from ..constants import DEFAULT_MAX_RESULTS
from ..models import Candidate
from ..process import run, spawn_detached
from ..search import FuzzyFilter, UsageCounter
from ..validation import ConfigField, ConfigItems
from .interface import Tool

__all__ = [
    "CalcResult",
    "DesktopEntry",
    "Extension",
    "application_dirs",
    "launch_command",
    "load_entries",
    "parse_desktop_entry",
]

FIELD_CODES = ("%f", "%F", "%u", "%U", "%c", "%k", "%i", "%d", "%D")

DEFAULT_CSS = """\
window { background: transparent; }
.launch-container { background: #1e1e2e; border-radius: 14px; padding: 12px; }
.launch-search { font-size: 16px; padding: 8px 12px; }
.launch-list row { padding: 6px 10px; border-radius: 8px; }
.launch-list row:selected { background: #313244; }
.launch-title { color: #cdd6f4; }
.launch-subtitle { color: #7f849c; font-size: 11px; }
.launch-calc-result { color: #a6e3a1; font-weight: bold; }
.vim-mode-indicator { font-weight: bold; }
"""


@dataclass
class DesktopEntry:
    """The fields of a ``[Desktop Entry]`` group the launcher uses."""

    name: str
    exec: str
    icon: str = ""
    description: str = ""
    terminal: bool = False
    path: Path | None = None


@dataclass
class CalcResult:
    """Payload of the calculator row."""

    expression: str
    value: str


def application_dirs() -> list[Path]:
    """Return the folders holding ``.desktop`` files, by priority."""
    dirs = []
    home = os.environ.get("HOME")
    if home:
        dirs.append(Path(home) / ".local" / "share" / "applications")
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        dirs.append(Path(data_home) / "applications")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    dirs.extend(Path(folder) / "applications" for folder in data_dirs.split(":") if folder)
    return dirs


def parse_desktop_entry(content: str, path: Path | None = None) -> DesktopEntry | None:
    """Parse a ``.desktop`` file.

    Returns:
        None for hidden entries and entries without ``Name`` or ``Exec``
    """
    fields: dict[str, str] = {}
    in_main_group = False
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("["):
            in_main_group = line == "[Desktop Entry]"
            continue
        if not in_main_group or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key in ("Name", "Comment", "GenericName"):
            fields.setdefault(key, value)
        else:
            fields[key] = value

    name = fields.get("Name", "")
    command = fields.get("Exec", "")
    if not name or not command:
        return None
    if fields.get("NoDisplay", "").lower() == "true" or fields.get("Hidden", "").lower() == "true":
        return None
    for code in FIELD_CODES:
        command = command.replace(code, "")
    return DesktopEntry(
        name=name,
        exec=command.strip(),
        icon=fields.get("Icon", ""),
        description=fields.get("Comment") or fields.get("GenericName", ""),
        terminal=fields.get("Terminal", "").lower() == "true",
        path=path,
    )


async def _walk(folder: Path) -> list[Path]:
    files = []
    try:
        names = sorted(await aiofiles.os.listdir(folder))
    except OSError:
        return files
    for name in names:
        path = folder / name
        if await aiofiles.os.path.isdir(path):
            files.extend(await _walk(path))
        else:
            files.append(path)
    return files


async def load_entries(dirs: list[Path]) -> list[DesktopEntry]:
    """Load the visible applications, first occurrence of a name wins."""
    entries = []
    seen = set()
    for folder in dirs:
        for path in await _walk(folder):
            if path.suffix != ".desktop":
                continue
            try:
                async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
                    entry = parse_desktop_entry(await f.read(), path)
            except OSError:
                continue
            if entry is not None and entry.name not in seen:
                seen.add(entry.name)
                entries.append(entry)
    entries.sort(key=lambda entry: entry.name.lower())
    return entries


def launch_command(entry: DesktopEntry, terminal: str) -> list[str]:
    """Return the argument list starting `entry`."""
    if entry.terminal:
        return [terminal, "-e", "sh", "-c", entry.exec]
    return ["sh", "-c", entry.exec]


class Extension(Tool):
    """Desktop application launcher with an inline calculator."""

    app_name = "launch-gui"
    allow_delete = False
    window_size = (580, 400)
    default_css = DEFAULT_CSS
    behavior_schema = ConfigItems(
        ConfigField("terminal", str, default="kitty", description="Terminal emulator for Terminal=true applications"),
        ConfigField("calculator", bool, default=True, description="Evaluate queries starting with '='"),
        ConfigField("vim_mode", bool, default=False, description="Enable vim-style modal navigation"),
        ConfigField("max_results", int, default=DEFAULT_MAX_RESULTS, description="Maximum number of rows listed"),
    )

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.usage = UsageCounter()

    def create_filter(self) -> FuzzyFilter:
        return FuzzyFilter(limit=max(self.behavior_int("max_results"), 1))

    async def fetch(self) -> list[Candidate]:
        entries = await load_entries(application_dirs())
        self.log.info("loaded %d desktop entries", len(entries))
        candidates = [Candidate(entry.name, entry.description, payload=entry) for entry in entries]
        self.usage.stamp(candidates)
        return candidates

    async def preview(self, query: str) -> list[Candidate]:
        """Return the calculator row when `query` is a valid ``=expression``."""
        if not self.behavior_bool("calculator") or not query.startswith(CALC_PREFIX) or len(query) == len(CALC_PREFIX):
            return []
        expression = query[len(CALC_PREFIX) :]
        result = await calc_eval(expression, self.log)
        if result is None:
            return []
        return [
            Candidate(
                result,
                f"= {expression}",
                payload=CalcResult(expression, result),
                style_class="launch-calc-result",
            )
        ]

    async def activate(self, candidate: Candidate | None, query: str) -> bool:
        if candidate is None:
            return False
        if isinstance(candidate.payload, CalcResult):
            self.log.info("copied math result: %s", candidate.payload.value)
            self.tasks.add(run(["wl-copy", candidate.payload.value], self.log, capture=False))
            return True
        self.launch(candidate)
        return True

    def launch(self, candidate: Candidate) -> None:
        """Start the application of `candidate` and count the launch."""
        entry: DesktopEntry = candidate.payload
        self.usage.record(candidate)
        self.log.info("launching: %s (%s)", entry.name, entry.exec)
        spawn_detached(launch_command(entry, self.behavior_str("terminal")), self.log)
