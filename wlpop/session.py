"""Per-daemon state of the popup and its central event handler.

`Session.handle` takes one input event and returns an `Outcome` listing the
effects the daemon must carry out (redraw, hide, run the payload action...).
It never performs I/O, so any sequence of events can be replayed in tests.

Selection is a row number in the currently visible list; every query change
rebuilds that list and moves the selection back to the first row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import PAGE_SIZE
from .keys import Modifier, match_action
from .modal import ModalState
from .models import Action, Candidate, ModalAction, Mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config_loader import Settings
    from .search import CandidateFilter

__all__ = [
    "Activate",
    "Hide",
    "KeyPress",
    "ModeChanged",
    "Outcome",
    "Preview",
    "QueryChanged",
    "Remove",
    "Render",
    "RowActivated",
    "Session",
]


# Events


@dataclass(frozen=True)
class KeyPress:
    """A key press, as a GDK key name plus the modifier state."""

    key: str
    modifiers: Modifier = Modifier(0)


@dataclass(frozen=True)
class QueryChanged:
    """The search field now contains `text`."""

    text: str


@dataclass(frozen=True)
class RowActivated:
    """Row `index` was clicked."""

    index: int


Event = KeyPress | QueryChanged | RowActivated


# Effects


@dataclass(frozen=True)
class Render:
    """Rows, selection or query changed."""


@dataclass(frozen=True)
class Hide:
    """Close the popup."""


@dataclass(frozen=True)
class ModeChanged:
    """The vim mode indicator must show `mode`."""

    mode: Mode


@dataclass(frozen=True)
class Activate:
    """Run the payload action of `candidate` (None if no row is selected)."""

    candidate: Candidate | None
    query: str


@dataclass(frozen=True)
class Remove:
    """Delete `candidate` from its source."""

    candidate: Candidate


@dataclass(frozen=True)
class Preview:
    """Ask the tool for rows computed from `query` (calculator result)."""

    query: str


Effect = Render | Hide | ModeChanged | Activate | Remove | Preview


@dataclass
class Outcome:
    """Result of `Session.handle`.

    `handled` is False when a key press must go to the search field instead.
    """

    handled: bool
    effects: list[Effect] = field(default_factory=list)


_MODAL_ACTIONS = {
    ModalAction.CLOSE: Action.CLOSE,
    ModalAction.SELECT: Action.SELECT,
    ModalAction.DELETE: Action.DELETE,
    ModalAction.DOWN: Action.NEXT,
    ModalAction.UP: Action.PREV,
    ModalAction.TOP: Action.FIRST,
    ModalAction.BOTTOM: Action.LAST,
    ModalAction.HALF_PAGE_DOWN: Action.PAGE_DOWN,
    ModalAction.HALF_PAGE_UP: Action.PAGE_UP,
}

_SELECT_KEYS = ("Return", "KP_Enter")


class Session:
    """Query, selection, modal state and candidate list of one daemon."""

    def __init__(self, candidate_filter: CandidateFilter, settings: Settings, allow_delete: bool = True) -> None:
        self.filter = candidate_filter
        self.settings = settings
        self.candidates: list[Candidate] = []
        self.rows: list[Candidate] = []
        self.query = ""
        self.selected: int | None = None
        self.preview: list[Candidate] | None = None
        self.modal = ModalState(allow_delete=allow_delete)

    @property
    def vim_mode(self) -> bool:
        """Tell if key presses go through the modal layer."""
        return self.settings.vim_mode

    @property
    def mode(self) -> Mode | None:
        """Return the current vim mode, None when vim mode is off."""
        return self.modal.mode if self.vim_mode else None

    def reset(self, candidates: Sequence[Candidate], settings: Settings | None = None) -> None:
        """Start over: new candidates, empty query, NORMAL mode."""
        if settings is not None:
            self.settings = settings
        self.candidates = list(candidates)
        self.query = ""
        self.modal.reset()
        self._refresh()

    def set_candidates(self, candidates: Sequence[Candidate]) -> None:
        """Replace the candidate list, keeping the query and the selected row."""
        previous = self.selected
        self.candidates = list(candidates)
        if self.preview is not None:
            return
        self.rows = self.filter.visible(self.candidates, self.query)
        if not self.rows:
            self.selected = None
        else:
            self.selected = min(previous or 0, len(self.rows) - 1)

    def show_preview(self, rows: Sequence[Candidate]) -> None:
        """Display `rows` instead of the filtered candidates until the query changes."""
        if not rows:
            return
        self.preview = list(rows)
        self.rows = list(rows)
        self.selected = 0

    def current(self) -> Candidate | None:
        """Return the candidate on the selected row."""
        if self.selected is None:
            return None
        if self.preview is not None:
            return self.preview[self.selected]
        return self.filter.resolve_index(self.candidates, self.query, self.selected)

    def handle(self, event: Event) -> Outcome:
        """Process one event."""
        if isinstance(event, KeyPress):
            if self.vim_mode:
                return self._handle_vim_key(event.key, event.modifiers)
            action = match_action(self.settings.keybinds, event.key, event.modifiers)
            if action is None:
                return Outcome(False)
            return Outcome(True, self._apply(action))
        if isinstance(event, QueryChanged):
            if event.text == self.query:
                return Outcome(True)
            self.query = event.text
            self._refresh()
            return Outcome(True, [Preview(self.query), Render()])
        if isinstance(event, RowActivated) and 0 <= event.index < len(self.rows):
            self.selected = event.index
            return Outcome(True, [Render(), Activate(self.current(), self.query)])
        return Outcome(False)

    def _handle_vim_key(self, key: str, modifiers: Modifier) -> Outcome:
        mode = self.modal.mode
        action = self.modal.feed(key, modifiers)

        if mode == Mode.INSERT:
            if action == ModalAction.EXIT_INSERT:
                return Outcome(True, [ModeChanged(Mode.NORMAL)])
            if key in _SELECT_KEYS:
                return Outcome(True, self._apply(Action.SELECT))
            return Outcome(False)

        # NORMAL mode swallows every key
        if action is None:
            return Outcome(True)
        if action == ModalAction.ENTER_INSERT:
            return Outcome(True, [ModeChanged(Mode.INSERT)])
        return Outcome(True, self._apply(_MODAL_ACTIONS[action]))

    def _apply(self, action: Action) -> list[Effect]:
        if action == Action.CLOSE:
            return [Hide()]
        if action == Action.SELECT:
            return [Activate(self.current(), self.query)]
        if action == Action.DELETE:
            candidate = self.current()
            return [Remove(candidate)] if candidate is not None else []
        if action == Action.CLEAR_SEARCH:
            if not self.query:
                return []
            self.query = ""
            self._refresh()
            return [Render()]
        return self._move(action)

    def _move(self, action: Action) -> list[Effect]:
        if self.selected is None:
            return []
        last = len(self.rows) - 1
        targets = {
            Action.NEXT: self.selected + 1,
            Action.PREV: self.selected - 1,
            Action.PAGE_DOWN: self.selected + PAGE_SIZE,
            Action.PAGE_UP: self.selected - PAGE_SIZE,
            Action.FIRST: 0,
            Action.LAST: last,
        }
        target = max(0, min(targets[action], last))
        if target == self.selected:
            return []
        self.selected = target
        return [Render()]

    def _refresh(self) -> None:
        self.preview = None
        self.rows = self.filter.visible(self.candidates, self.query)
        self.selected = 0 if self.rows else None
