"""Common types shared by the engine, the tools and the CLI."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, StrEnum, auto
from typing import Any


class Action(StrEnum):
    """Logical commands bound to key chords (config names are the values)."""

    SELECT = "select"
    DELETE = "delete"
    CLEAR_SEARCH = "clear_search"
    CLOSE = "close"
    NEXT = "next"
    PREV = "prev"
    PAGE_DOWN = "page_down"
    PAGE_UP = "page_up"
    FIRST = "first"
    LAST = "last"


class ModalAction(Enum):
    """Commands produced by the vim-style input layer."""

    ENTER_INSERT = auto()
    EXIT_INSERT = auto()
    CLOSE = auto()
    DOWN = auto()
    UP = auto()
    TOP = auto()
    BOTTOM = auto()
    HALF_PAGE_DOWN = auto()
    HALF_PAGE_UP = auto()
    SELECT = auto()
    DELETE = auto()


class Mode(StrEnum):
    """Vim-style input modes."""

    NORMAL = "NORMAL"
    INSERT = "INSERT"


@dataclass
class Candidate:
    """One filterable list item.

    `payload` carries the tool specific object (clipboard entry, desktop
    entry) and takes no part in comparisons. `style_class` names an extra
    stylesheet class for the row.
    """

    primary_text: str
    secondary_text: str = ""
    usage_count: int = 0
    payload: Any = field(default=None, compare=False, repr=False)
    style_class: str = field(default="", compare=False)


class WlpopError(BaseException):
    """Used for errors which already triggered logging."""


class ExitCode(IntEnum):
    """Exit codes for the command line front-end."""

    SUCCESS = 0
    USAGE_ERROR = 1
    NOT_RUNNING = 2
    CONNECTION_ERROR = 3
    COMMAND_ERROR = 4
    CONFIG_ERROR = 5


class ResponsePrefix(StrEnum):
    """Response prefixes for daemon-client communication."""

    OK = "OK"
    ERROR = "ERROR"
