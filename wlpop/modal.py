"""Vim-style modal input.

In NORMAL mode single keys navigate the list (``j``/``k``, ``gg``/``G``,
``ctrl+d``/``ctrl+u``), ``dd`` deletes when the tool allows it and ``i``,
``a``, ``A``, ``I`` or ``/`` switch to INSERT mode. In INSERT mode keys go to
the search field, only Escape is consumed (back to NORMAL).

Two-key sequences buffer their first key in `ModalState.pending`. There is no
timeout: the next key press either completes the sequence or discards it.
"""

from dataclasses import dataclass

from .keys import RELEVANT_MODIFIERS, Modifier, key_to_char
from .models import ModalAction, Mode

__all__ = ["ModalState"]

_INSERT_KEYS = frozenset("iaAI/")
_SINGLE_KEYS = {
    "j": ModalAction.DOWN,
    "k": ModalAction.UP,
    "G": ModalAction.BOTTOM,
}
_CONTROL_KEYS = {
    "d": ModalAction.HALF_PAGE_DOWN,
    "u": ModalAction.HALF_PAGE_UP,
}
# modifiers which turn a character into a command chord rather than a vim key
_COMMAND_MODIFIERS = Modifier.CONTROL | Modifier.ALT | Modifier.SUPER


@dataclass
class ModalState:
    """NORMAL / INSERT state plus the pending key of a two-key sequence."""

    mode: Mode = Mode.NORMAL
    pending: str | None = None
    allow_delete: bool = True

    def set_mode(self, mode: Mode) -> None:
        """Switch mode, dropping any half typed sequence."""
        self.mode = mode
        self.pending = None

    def reset(self) -> None:
        """Return to the initial NORMAL state."""
        self.set_mode(Mode.NORMAL)

    def feed(self, key: str, modifiers: Modifier | int = 0) -> ModalAction | None:
        """Process one key press in the current mode, applying mode changes.

        Returns:
            The resulting action, or None if the key was not handled (in
            INSERT mode this means "let the text field have it")
        """
        if self.mode == Mode.NORMAL:
            action = self.handle_normal(key, modifiers)
            if action == ModalAction.ENTER_INSERT:
                self.set_mode(Mode.INSERT)
            return action
        action = self.handle_insert(key)
        if action == ModalAction.EXIT_INSERT:
            self.set_mode(Mode.NORMAL)
        return action

    def handle_normal(self, key: str, modifiers: Modifier | int = 0) -> ModalAction | None:
        """Resolve a NORMAL mode key press (mode changes are left to the caller)."""
        pending, self.pending = self.pending, None

        if key == "Escape":
            return ModalAction.CLOSE
        if key in ("Return", "KP_Enter"):
            return ModalAction.SELECT

        char = key_to_char(key)
        if char is None:
            return None
        held = Modifier(modifiers) & RELEVANT_MODIFIERS
        if held & Modifier.CONTROL:
            return _CONTROL_KEYS.get(char.lower())
        if held & _COMMAND_MODIFIERS:
            return None

        if char in _INSERT_KEYS:
            return ModalAction.ENTER_INSERT
        if char in _SINGLE_KEYS:
            return _SINGLE_KEYS[char]
        if char == "g":
            return self._sequence(pending, "g", ModalAction.TOP)
        if char == "d" and self.allow_delete:
            return self._sequence(pending, "d", ModalAction.DELETE)
        return None

    def handle_insert(self, key: str) -> ModalAction | None:
        """Resolve an INSERT mode key press: only Escape is consumed."""
        if key == "Escape":
            return ModalAction.EXIT_INSERT
        return None

    def _sequence(self, pending: str | None, char: str, action: ModalAction) -> ModalAction | None:
        if pending == char:
            return action
        self.pending = char
        return None
