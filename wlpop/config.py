"""Configuration section wrapper providing typed access and schema defaults."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging

    from .validation import ConfigItems

__all__ = ["BOOL_FALSE_STRINGS", "BOOL_STRINGS", "BOOL_TRUE_STRINGS", "Configuration", "coerce_to_bool"]

ConfigValueType = float | bool | str | list | dict

BOOL_TRUE_STRINGS = frozenset({"true", "yes", "on", "1", "enabled"})
BOOL_FALSE_STRINGS = frozenset({"false", "no", "off", "0", "disabled"})
BOOL_STRINGS = BOOL_TRUE_STRINGS | BOOL_FALSE_STRINGS


def coerce_to_bool(value: ConfigValueType | None, default: bool = False) -> bool:
    """Coerce a value to boolean, handling loose typing.

    Unrecognised strings give `default` (``vim_mode = "maybe"`` keeps the
    built-in behaviour rather than enabling it).
    """
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in BOOL_TRUE_STRINGS:
            return True
        if lowered in BOOL_FALSE_STRINGS:
            return False
        return default
    return bool(value)


class Configuration(dict):
    """One configuration section (``[window]``, ``[behavior]``...).

    Values missing from the file fall back to the schema defaults.
    """

    def __init__(
        self,
        *args: Any,  # noqa: ANN401
        logger: logging.Logger,
        schema: ConfigItems | None = None,
        **kwargs: Any,  # noqa: ANN401
    ):
        """Initialize the section.

        Args:
            *args: Arguments for dict
            logger: Logger instance to use for warnings
            schema: Optional list of ConfigField definitions for automatic defaults
            **kwargs: Keyword arguments for dict
        """
        super().__init__(*args, **kwargs)
        self.log = logger
        self._defaults: dict[str, Any] = schema.defaults() if schema else {}

    def get(self, name: str, default: ConfigValueType | None = None) -> ConfigValueType | None:  # type: ignore[override]
        """Get a value, or its schema default, or `default`."""
        if name in self:
            return self[name]
        return self._defaults.get(name, default)

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a boolean value, handling loose typing."""
        fallback = coerce_to_bool(self._defaults.get(name), default)
        return coerce_to_bool(self.get(name), fallback)

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value, `default` when missing or invalid."""
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid integer value for %s: %s", name, value)
            return int(self._defaults.get(name, default))

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        value = self.get(name)
        if value is None:
            return default
        return str(value)
