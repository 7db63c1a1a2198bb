"""Key chord parsing and matching.

A chord is a logical key name (GDK keysym style: ``Return``, ``Page_Down``,
``a``, ``G``...) plus a set of modifiers. Configuration strings such as
``"ctrl+u Escape"`` are turned into chords once, at load time, and live key
events are then matched against the resulting table with `match_action`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import IntFlag

from .logging_setup import get_logger
from .models import Action

__all__ = [
    "RELEVANT_MODIFIERS",
    "KeyChord",
    "KeybindTable",
    "Modifier",
    "default_keybinds",
    "find_conflicts",
    "key_to_char",
    "match_action",
    "parse_action",
    "parse_chord",
    "parse_chords",
]

keys_logger = get_logger("keys")


class Modifier(IntFlag):
    """Modifier bits, using the GDK values."""

    SHIFT = 1 << 0
    LOCK = 1 << 1  # CapsLock
    CONTROL = 1 << 2
    ALT = 1 << 3
    NUM_LOCK = 1 << 4  # Mod2
    SUPER = 1 << 26


RELEVANT_MODIFIERS = Modifier.CONTROL | Modifier.SHIFT | Modifier.ALT | Modifier.SUPER

MODIFIER_NAMES: dict[str, Modifier] = {
    "ctrl": Modifier.CONTROL,
    "control": Modifier.CONTROL,
    "shift": Modifier.SHIFT,
    "alt": Modifier.ALT,
    "mod1": Modifier.ALT,
    "super": Modifier.SUPER,
    "mod4": Modifier.SUPER,
}

NAMED_KEYS: dict[str, str] = {
    "return": "Return",
    "enter": "Return",
    "kp_enter": "KP_Enter",
    "escape": "Escape",
    "esc": "Escape",
    "tab": "Tab",
    "delete": "Delete",
    "del": "Delete",
    "backspace": "BackSpace",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "end": "End",
    "page_up": "Page_Up",
    "pageup": "Page_Up",
    "pgup": "Page_Up",
    "page_down": "Page_Down",
    "pagedown": "Page_Down",
    "pgdn": "Page_Down",
    "space": "space",
}

# keysym names of the punctuation the modal layer reacts to
_PUNCTUATION_KEYSYMS = {
    "slash": "/",
    "question": "?",
    "colon": ":",
}

_MODIFIER_LABELS = (
    (Modifier.CONTROL, "ctrl"),
    (Modifier.SHIFT, "shift"),
    (Modifier.ALT, "alt"),
    (Modifier.SUPER, "super"),
)


@dataclass(frozen=True)
class KeyChord:
    """A logical key plus an exact set of relevant modifiers."""

    key: str
    modifiers: Modifier = Modifier(0)

    def matches(self, key: str, modifiers: Modifier | int) -> bool:
        """Tell if a live key event triggers this chord."""
        return self.key == key and self.modifiers == Modifier(modifiers) & RELEVANT_MODIFIERS

    def __str__(self) -> str:
        labels = [label for flag, label in _MODIFIER_LABELS if flag in self.modifiers]
        return "+".join([*labels, self.key])


KeybindTable = dict[Action, list[KeyChord]]


def parse_action(name: str) -> Action | None:
    """Return the Action called `name` in configuration files, if any."""
    try:
        return Action(name.strip().lower())
    except ValueError:
        return None


def parse_chord(token: str, log: logging.Logger = keys_logger) -> KeyChord | None:
    """Parse a single ``mod+mod+key`` token.

    Unknown modifiers are ignored, an unknown key invalidates the chord.
    """
    *mod_names, key_name = token.split("+")
    if not key_name:
        log.warning("Missing key in chord %r, chord dropped", token)
        return None
    modifiers = Modifier(0)
    for name in mod_names:
        flag = MODIFIER_NAMES.get(name.lower())
        if flag is None:
            log.warning("Ignoring unknown modifier %r in %r", name, token)
            continue
        modifiers |= flag

    if len(key_name) == 1:
        return KeyChord(key_name, modifiers)
    key = NAMED_KEYS.get(key_name.lower())
    if key is None:
        log.warning("Unknown key %r in %r, chord dropped", key_name, token)
        return None
    return KeyChord(key, modifiers)


def parse_chords(spec: str, log: logging.Logger = keys_logger) -> list[KeyChord]:
    """Parse a whitespace separated list of chords, dropping the invalid ones."""
    return [chord for chord in (parse_chord(token, log) for token in spec.split()) if chord is not None]


def default_keybinds(allow_delete: bool = True) -> KeybindTable:
    """Return the built-in keybindings, `delete` is omitted if not allowed."""
    table: KeybindTable = {
        Action.SELECT: [KeyChord("Return"), KeyChord("KP_Enter")],
        Action.DELETE: [KeyChord("Delete")],
        Action.CLEAR_SEARCH: [KeyChord("u", Modifier.CONTROL)],
        Action.CLOSE: [KeyChord("Escape")],
        Action.NEXT: [KeyChord("Down"), KeyChord("Tab")],
        Action.PREV: [KeyChord("Up"), KeyChord("Tab", Modifier.SHIFT)],
        Action.PAGE_DOWN: [KeyChord("Page_Down")],
        Action.PAGE_UP: [KeyChord("Page_Up")],
        Action.FIRST: [KeyChord("Home")],
        Action.LAST: [KeyChord("End")],
    }
    if not allow_delete:
        del table[Action.DELETE]
    return table


def match_action(table: Mapping[Action, Iterable[KeyChord]], key: str, modifiers: Modifier | int) -> Action | None:
    """Return the action bound to the live (`key`, `modifiers`) event.

    Actions are scanned in declaration order, so the result is stable even for
    a table holding conflicts (which configuration loading rejects anyway).
    """
    pressed = Modifier(modifiers) & RELEVANT_MODIFIERS
    for action in Action:
        for chord in table.get(action, ()):
            if chord.key == key and chord.modifiers == pressed:
                return action
    return None


def find_conflicts(table: Mapping[Action, Iterable[KeyChord]]) -> list[tuple[KeyChord, Action, Action]]:
    """List chords claimed by more than one action.

    Returns:
        (chord, owner, other) triples, `owner` being the earliest action
    """
    owners: dict[KeyChord, Action] = {}
    conflicts = []
    for action in Action:
        for chord in table.get(action, ()):
            owner = owners.setdefault(chord, action)
            if owner != action:
                conflicts.append((chord, owner, action))
    return conflicts


def key_to_char(key: str) -> str | None:
    """Return the printable ASCII character typed by `key`, if any."""
    if len(key) == 1:
        return key if key.isascii() and key.isprintable() and not key.isspace() else None
    return _PUNCTUATION_KEYSYMS.get(key)
