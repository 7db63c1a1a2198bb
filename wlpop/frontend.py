"""Display collaborators of the daemon.

The engine never draws anything itself: it tells a `Frontend` what to show.
`HeadlessFrontend` keeps the last rendered state in memory and logs it, which
is what the control socket ``state`` command reports and what the tests
inspect. A toolkit frontend feeds its key presses to the daemon through the
control socket (``key ctrl+u``, ``query fire``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence

    from .models import Candidate, Mode

__all__ = ["Frontend", "HeadlessFrontend"]


class Frontend:
    """Base class for the popup window implementations."""

    visible = False

    def __init__(self, log: logging.Logger) -> None:
        self.log = log

    def show(self) -> None:
        """Map the window."""
        self.visible = True

    def hide(self) -> None:
        """Unmap the window."""
        self.visible = False

    def render(self, rows: Sequence[Candidate], selected: int | None, query: str) -> None:
        """Display `rows` with row `selected` highlighted."""

    def set_mode(self, mode: Mode | None) -> None:
        """Display the vim mode indicator (None when vim mode is off)."""

    def apply_style(self, css: str) -> None:
        """Replace the stylesheet."""


class HeadlessFrontend(Frontend):
    """In-memory frontend."""

    def __init__(self, log: logging.Logger) -> None:
        super().__init__(log)
        self.rows: list[Candidate] = []
        self.selected: int | None = None
        self.query = ""
        self.mode: Mode | None = None
        self.css = ""

    def show(self) -> None:
        super().show()
        self.log.info("shown")

    def hide(self) -> None:
        super().hide()
        self.log.info("hidden")

    def render(self, rows: Sequence[Candidate], selected: int | None, query: str) -> None:
        self.rows = list(rows)
        self.selected = selected
        self.query = query
        self.log.debug("%d rows for %r, selected: %s", len(self.rows), query, selected)

    def set_mode(self, mode: Mode | None) -> None:
        self.mode = mode

    def apply_style(self, css: str) -> None:
        self.css = css
        self.log.debug("stylesheet applied (%d bytes)", len(css))
