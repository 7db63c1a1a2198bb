"""Stylesheet lookup.

A theme is either the tool's bundled stylesheet (``default``) or a user file
``<config_dir>/themes/<name>.css``. The configured ``style.theme`` path is
used unless a preview daemon was started with a theme override.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import aiofiles

from .constants import THEME_OVERRIDE_ENV
from .logging_setup import get_logger
from .paths import config_dir

if TYPE_CHECKING:
    from pathlib import Path

    from .config_loader import Settings

__all__ = ["get_theme_css", "list_themes", "load_css", "resolve_css"]

BUILTIN_THEME = "default"

theme_logger = get_logger("themes")


def themes_dir(app_name: str) -> Path:
    """Return the folder holding the user themes."""
    return config_dir(app_name) / "themes"


def list_themes(app_name: str) -> list[str]:
    """Return the available theme names, built-in first."""
    folder = themes_dir(app_name)
    user_themes = sorted(p.stem for p in folder.glob("*.css")) if folder.is_dir() else []
    return [BUILTIN_THEME, *(name for name in user_themes if name != BUILTIN_THEME)]


async def _read(path: Path) -> str:
    async with aiofiles.open(path, encoding="utf-8") as f:
        return await f.read()


async def get_theme_css(app_name: str, name: str, default_css: str) -> str | None:
    """Return the stylesheet of theme `name`, None if unknown."""
    if name == BUILTIN_THEME:
        return default_css
    try:
        return await _read(themes_dir(app_name) / f"{name}.css")
    except (OSError, UnicodeDecodeError):
        return None


async def load_css(path: Path, default_css: str) -> str:
    """Read the stylesheet at `path`, or return `default_css`."""
    try:
        css = await _read(path)
    except (OSError, UnicodeDecodeError):
        theme_logger.info("theme not found: %s, using default", path)
        return default_css
    theme_logger.info("loaded css from %s", path)
    return css


async def resolve_css(app_name: str, settings: Settings, default_css: str) -> str:
    """Return the stylesheet to apply, honoring a preview override."""
    override = os.environ.get(THEME_OVERRIDE_ENV)
    if override:
        css = await get_theme_css(app_name, override, default_css)
        if css is not None:
            return css
        theme_logger.warning("Unknown theme override %r, using configuration", override)
    return await load_css(settings.theme, default_css)
