"""Clipboard history popup backed by cliphist.

Entries come from ``cliphist list`` (``<id>\\t<preview>`` lines, most recent
first) and are filtered by substring. Selecting an entry pipes its
``cliphist decode`` output into ``wl-copy``; deleting it runs
``cliphist delete``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models import Candidate
from ..process import run
from ..search import SubstringFilter
from ..validation import ConfigField, ConfigItems
from .interface import Tool

__all__ = ["ClipEntry", "Extension", "content_type", "parse_entries", "parse_image_meta", "truncate"]

IMAGE_MARKER = "[[ binary data"
IMAGE_FORMATS = ("png", "jpg", "jpeg", "gif", "bmp", "webp")
NOTIFY_PREVIEW_LENGTH = 50
NOTIFY_TIMEOUT_MS = 2000

DEFAULT_CSS = """\
window { background: transparent; }
.clip-container { background: #1e1e2e; border-radius: 14px; padding: 12px; }
.clip-search { font-size: 15px; padding: 8px 12px; }
.clip-list row { padding: 6px 10px; border-radius: 8px; }
.clip-list row:selected { background: #313244; }
.clip-title { color: #cdd6f4; }
.clip-subtitle { color: #7f849c; font-size: 11px; }
.clip-status-bar { color: #6c7086; font-size: 11px; }
.vim-mode-indicator { font-weight: bold; }
"""


@dataclass
class ClipEntry:
    """One cliphist history line."""

    raw_line: str
    id: str
    preview: str

    @property
    def is_image(self) -> bool:
        """Tell if cliphist stored binary image data."""
        return IMAGE_MARKER in self.preview


def truncate(text: str, length: int) -> str:
    """Return `text` on one line, cut after `length` characters."""
    flat = text.strip().replace("\n", " ").replace("\t", " ")
    if len(flat) > length:
        return f"{flat[:length]}..."
    return flat


def parse_entries(output: str, max_items: int = 0) -> list[ClipEntry]:
    """Parse ``cliphist list`` output, keeping the first `max_items` (0: all)."""
    entries = []
    for line in output.splitlines():
        if not line:
            continue
        entry_id, sep, preview = line.partition("\t")
        entries.append(ClipEntry(line, entry_id.strip(), preview) if sep else ClipEntry(line, line, line))
        if max_items and len(entries) >= max_items:
            break
    return entries


def content_type(entry: ClipEntry) -> str:
    """Classify an entry as ``IMAGE``, ``URL`` or ``TEXT``."""
    if entry.is_image:
        return "IMAGE"
    if entry.preview.strip().startswith(("http://", "https://")):
        return "URL"
    return "TEXT"


def parse_image_meta(preview: str) -> str | None:
    """Extract ``"<dimensions> -- <FORMAT>"`` from an image preview.

    >>> parse_image_meta("[[ binary data 24 KiB png 64x64 ]]")
    '64x64 -- PNG'
    """
    inner = preview.strip().removeprefix(IMAGE_MARKER).removesuffix("]]").strip()
    dims = None
    fmt = None
    for part in inner.split():
        if "x" in part and all(c.isdigit() or c == "x" for c in part):
            dims = part
        if part.lower() in IMAGE_FORMATS:
            fmt = part.upper()
    return " -- ".join(p for p in (dims, fmt) if p) or None


def to_candidate(entry: ClipEntry) -> Candidate:
    """Wrap a history entry for the filter."""
    if entry.is_image:
        secondary = parse_image_meta(entry.preview) or "IMAGE"
    else:
        secondary = content_type(entry)
    return Candidate(entry.preview, secondary, payload=entry)


class Extension(Tool):
    """Clipboard history picker."""

    app_name = "cliphist-gui"
    allow_delete = True
    window_size = (580, 520)
    default_css = DEFAULT_CSS
    behavior_schema = ConfigItems(
        ConfigField("max_items", int, default=0, description="Number of history entries listed (0 for all)"),
        ConfigField("close_on_select", bool, default=True, description="Hide the window once an entry is copied"),
        ConfigField("notify_on_copy", bool, default=False, description="Send a desktop notification on copy"),
        ConfigField("vim_mode", bool, default=False, description="Enable vim-style modal navigation"),
    )

    def create_filter(self) -> SubstringFilter:
        return SubstringFilter()

    async def fetch(self) -> list[Candidate]:
        output = await run(["cliphist", "list"], self.log)
        if output is None:
            return []
        entries = parse_entries(output.decode(errors="replace"), max(self.behavior_int("max_items"), 0))
        self.log.debug("%d history entries", len(entries))
        return [to_candidate(entry) for entry in entries]

    async def activate(self, candidate: Candidate | None, query: str) -> bool:
        if candidate is None:
            return False
        self.tasks.add(self.copy(candidate.payload, notify=self.behavior_bool("notify_on_copy")))
        return self.behavior_bool("close_on_select")

    async def copy(self, entry: ClipEntry, notify: bool = False) -> bool:
        """Put `entry` back on the clipboard.

        Returns:
            True on success
        """
        data = await run(["cliphist", "decode"], self.log, stdin=entry.raw_line.encode())
        if data is None:
            return False
        mime = "image/png" if entry.is_image else "text/plain"
        if await run(["wl-copy", "--type", mime], self.log, stdin=data, capture=False) is None:
            return False
        self.log.info("copied entry %s", entry.id)
        if notify:
            message = "Image copied" if entry.is_image else f"Copied: {truncate(entry.preview, NOTIFY_PREVIEW_LENGTH)}"
            await run(["notify-send", "-t", str(NOTIFY_TIMEOUT_MS), self.app_name, message], self.log)
        return True

    async def remove(self, candidate: Candidate) -> None:
        entry = candidate.payload
        if await run(["cliphist", "delete"], self.log, stdin=entry.raw_line.encode()) is not None:
            self.log.info("deleted entry %s", entry.id)
