"""Common tool interface.

A tool provides the candidates of one popup and knows what to do with the
selected one. Tools are modules of this package exposing an ``Extension``
class derived from `Tool`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from ..config_loader import window_schema
from ..logging_setup import get_logger
from ..process import BackgroundTasks
from ..search import CandidateFilter
from ..validation import ConfigField, ConfigItems

if TYPE_CHECKING:
    from ..config_loader import Settings
    from ..models import Candidate

__all__ = ["Tool"]


class Tool:
    """Base class for any wlpop tool."""

    app_name: ClassVar[str] = "wlpop"
    """ name of the config, cache and state folders, also used in the pidfile name """

    allow_delete: ClassVar[bool] = False
    """ tells if the `delete` action (and the vim ``dd`` sequence) is available """

    window_size: ClassVar[tuple[int, int]] = (580, 400)
    """ default window width and height """

    behavior_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField("vim_mode", bool, default=False, description="Enable vim-style modal navigation"),
    )
    """ schema of the ``[behavior]`` section """

    default_css: ClassVar[str] = ""
    """ the built-in stylesheet """

    def __init__(self, name: str) -> None:
        """Create a new tool `name` and the matching logger."""
        self.name = name
        self.log = get_logger(name)
        self.tasks = BackgroundTasks(self.log)
        self.settings: Settings | None = None

    @classmethod
    def window_schema(cls) -> ConfigItems:
        """Return the ``[window]`` schema using this tool's default size."""
        return window_schema(*cls.window_size)

    # Functions to override

    async def on_reload(self, settings: Settings) -> None:
        """Receive a fresh configuration snapshot (on start, toggle and reload)."""
        self.settings = settings

    def create_filter(self) -> CandidateFilter:
        """Return the filter ranking this tool's candidates."""
        return CandidateFilter()

    async def fetch(self) -> list[Candidate]:
        """Return the candidates, an empty list if the source fails."""
        return []

    async def preview(self, query: str) -> list[Candidate]:
        """Return rows replacing the filtered list for `query`, none by default."""
        return []

    async def activate(self, candidate: Candidate | None, query: str) -> bool:
        """Run the payload action of `candidate`.

        Returns:
            True if the window must be hidden
        """
        return False

    async def remove(self, candidate: Candidate) -> None:
        """Delete `candidate` from its source."""

    async def exit(self) -> None:
        """Wait for the pending payload actions."""
        await self.tasks.wait()

    # Generic implementations

    def behavior_bool(self, name: str) -> bool:
        """Return a boolean ``[behavior]`` option."""
        assert self.settings is not None
        return self.settings.behavior.get_bool(name)

    def behavior_int(self, name: str) -> int:
        """Return an integer ``[behavior]`` option."""
        assert self.settings is not None
        return self.settings.behavior.get_int(name)

    def behavior_str(self, name: str) -> str:
        """Return a string ``[behavior]`` option."""
        assert self.settings is not None
        return self.settings.behavior.get_str(name)
