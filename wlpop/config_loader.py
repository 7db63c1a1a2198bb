"""Configuration file loading.

Each tool reads ``$XDG_CONFIG_HOME/<app>/config.toml``::

    [window]
    width = 580
    anchor = "top"

    [style]
    theme = "~/.config/cliphist-gui/nord.css"

    [keybinds]
    next = "Down Tab ctrl+n"

    [behavior]
    vim_mode = true

A missing file gives the defaults. A broken file is reported and also gives
the defaults: the daemon keeps running with a usable configuration.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles

from .config import Configuration
from .keys import KeybindTable, default_keybinds, find_conflicts, parse_action, parse_chords
from .paths import config_dir, expand_path
from .validation import ConfigField, ConfigItems, ConfigValidator, format_config_error

if TYPE_CHECKING:
    import logging

__all__ = ["ANCHORS", "STYLE_SCHEMA", "ConfigLoader", "Settings", "build_keybinds", "window_schema"]

ANCHORS = ["center", "top", "top_left", "top_right", "bottom", "bottom_left", "bottom_right", "cursor"]

STYLE_SCHEMA = ConfigItems(
    ConfigField("theme", str, description="Path to the CSS stylesheet"),
)


def _check_anchor(value: Any) -> list[str]:  # noqa: ANN401
    if str(value).lower().replace("-", "_") not in ANCHORS:
        return [f"Unknown anchor {value!r}, valid: {', '.join(ANCHORS)}"]
    return []


def window_schema(width: int, height: int) -> ConfigItems:
    """Return the ``[window]`` schema with the tool's default size."""
    return ConfigItems(
        ConfigField("width", int, default=width, description="Window width in pixels"),
        ConfigField("height", int, default=height, description="Window height in pixels"),
        ConfigField("anchor", str, default="center", description="Screen position", validator=_check_anchor),
        ConfigField("margin_top", int, default=0),
        ConfigField("margin_bottom", int, default=0),
        ConfigField("margin_left", int, default=0),
        ConfigField("margin_right", int, default=0),
    )


@dataclass
class Settings:
    """Immutable snapshot of a tool configuration, refreshed wholesale."""

    window: Configuration
    style: Configuration
    behavior: Configuration
    keybinds: KeybindTable
    theme: Path
    errors: list[str] = field(default_factory=list)

    @property
    def vim_mode(self) -> bool:
        """Tell if the vim-style modal input is enabled."""
        return self.behavior.get_bool("vim_mode")


def build_keybinds(raw: dict[str, Any], allow_delete: bool, log: logging.Logger) -> tuple[KeybindTable, list[str]]:
    """Apply the ``[keybinds]`` section over the defaults.

    Chords configured by the user take precedence over default ones. A chord
    configured for two actions is an error: the earliest action keeps it.

    Returns:
        The table and the list of problems found
    """
    table = default_keybinds(allow_delete)
    errors = []
    configured = set()

    for name, spec in raw.items():
        action = parse_action(name)
        if action is None or action not in table:
            errors.append(format_config_error("keybinds", name, "Unknown action", f"Valid actions: {', '.join(table)}"))
            continue
        if isinstance(spec, list):
            spec = " ".join(str(item) for item in spec)
        if not isinstance(spec, str):
            errors.append(format_config_error("keybinds", name, f"Expected str, got {type(spec).__name__}"))
            continue
        chords = parse_chords(spec, log)
        if len(chords) < len(spec.split()):
            errors.append(format_config_error("keybinds", name, f"Some chords in {spec!r} could not be parsed"))
        if chords:
            table[action] = chords
            configured.add(action)

    claimed = {chord for action in configured for chord in table[action]}
    for action in table:
        if action not in configured:
            table[action] = [chord for chord in table[action] if chord not in claimed]

    defaults = default_keybinds(allow_delete)
    for chord, owner, other in find_conflicts(table):
        errors.append(format_config_error("keybinds", other, f"'{chord}' is already bound to '{owner}'", "chord ignored"))
        table[other] = [c for c in table[other] if c != chord]
        if not table[other]:
            taken = {c for action, chords in table.items() if action != other for c in chords}
            table[other] = [c for c in defaults[other] if c not in taken]

    return table, errors


class ConfigLoader:
    """Reads and validates the configuration of one tool."""

    def __init__(self, app_name: str, log: logging.Logger) -> None:
        """Initialize the loader.

        Args:
            app_name: Tool application name, selects the config folder
            log: Logger instance for status and error messages
        """
        self.app_name = app_name
        self.log = log

    @property
    def path(self) -> Path:
        """Return the configuration file path."""
        return config_dir(self.app_name) / "config.toml"

    async def read(self) -> tuple[dict[str, Any], list[str]]:
        """Read the raw TOML content.

        Returns:
            The parsed document (empty if missing or invalid) and the errors
        """
        path = self.path
        if not path.exists():
            self.log.info("No config file at %s, using defaults", path)
            return {}, []
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
            data = tomllib.loads(content)
        except (OSError, UnicodeDecodeError) as e:
            return {}, [f"Cannot read {path}: {e}"]
        except tomllib.TOMLDecodeError as e:
            return {}, [f"Invalid TOML in {path}: {e}"]
        self.log.info("loaded config from %s", path)
        return data, []

    async def load(self, window: ConfigItems, behavior: ConfigItems, allow_delete: bool) -> Settings:
        """Load the configuration into a `Settings` snapshot.

        Args:
            window: ``[window]`` schema of the tool
            behavior: ``[behavior]`` schema of the tool
            allow_delete: Whether the tool supports the delete action
        """
        data, errors = await self.read()

        sections = {}
        for name, schema in (("window", window), ("style", STYLE_SCHEMA), ("behavior", behavior)):
            content = data.get(name, {})
            if not isinstance(content, dict):
                errors.append(format_config_error(name, name, "Expected a table"))
                content = {}
            validator = ConfigValidator(content, name)
            errors.extend(validator.validate(schema))
            errors.extend(validator.unknown_keys(schema))
            sections[name] = Configuration(content, logger=self.log, schema=schema)

        raw_keybinds = data.get("keybinds", {})
        if not isinstance(raw_keybinds, dict):
            errors.append(format_config_error("keybinds", "keybinds", "Expected a table"))
            raw_keybinds = {}
        keybinds, keybind_errors = build_keybinds(raw_keybinds, allow_delete, self.log)
        errors.extend(keybind_errors)

        for error in errors:
            self.log.error(error)

        theme = sections["style"].get_str("theme")
        return Settings(
            window=sections["window"],
            style=sections["style"],
            behavior=sections["behavior"],
            keybinds=keybinds,
            theme=expand_path(theme) if theme else config_dir(self.app_name) / "style.css",
            errors=errors,
        )
