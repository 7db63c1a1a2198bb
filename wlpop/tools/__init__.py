"""Popup tools, loaded by name (``wlpop.tools.<name>``)."""

import importlib

from .interface import Tool

__all__ = ["TOOLS", "Tool", "load_tool"]

TOOLS = ("clipboard", "launcher")


def load_tool(name: str) -> Tool:
    """Instantiate the ``Extension`` class of tool `name`.

    Raises:
        ModuleNotFoundError: no such tool
    """
    return importlib.import_module(f"{__name__}.{name}").Extension(name)
