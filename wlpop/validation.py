"""Configuration validation framework with schema definitions.

Provides declarative schema definitions (ConfigField, ConfigItems) for the
sections of a tool configuration. Supports type checking, choices and fuzzy
matching of unknown keys for typo detection.

Used by:
- `wlpop.config_loader.ConfigLoader` to log problems found in user files
- the ``validate`` command of the CLI
"""

import difflib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import BOOL_STRINGS

__all__ = [
    "ConfigField",
    "ConfigItems",
    "ConfigValidator",
    "format_config_error",
]


@dataclass
class ConfigField:
    """Describes an expected configuration field.

    Attributes:
        name: The configuration key name
        field_type: Expected type (str, int, float, bool) or tuple of types
        default: Default value if not provided
        description: Human-readable description
        choices: List of valid values for enum-like fields
        validator: Custom validator returning a list of error messages
    """

    name: str
    field_type: type | tuple[type, ...] = str
    default: Any = None
    description: str = ""
    choices: list | None = None
    validator: Callable[[Any], list[str]] | None = None

    @property
    def type_name(self) -> str:
        """Return human-readable type name."""
        if isinstance(self.field_type, tuple):
            return " or ".join(t.__name__ for t in self.field_type)
        return self.field_type.__name__


class ConfigItems(list):
    """A list of ConfigField items with lookup by name."""

    def __init__(self, *args: ConfigField) -> None:
        super().__init__(args)

    def get(self, name: str) -> ConfigField | None:
        """Get a ConfigField by name."""
        return next((prop for prop in self if prop.name == name), None)

    def names(self) -> list[str]:
        """Return the known key names."""
        return [prop.name for prop in self]

    def defaults(self) -> dict[str, Any]:
        """Return the default values by name (fields without a default are skipped)."""
        return {prop.name: prop.default for prop in self if prop.default is not None}


def find_similar_key(unknown_key: str, known_keys: list[str]) -> str | None:
    """Find a similar key using fuzzy matching.

    Returns:
        The closest matching key, or None if no close match found
    """
    matches = difflib.get_close_matches(unknown_key, known_keys, n=1)
    return matches[0] if matches else None


def format_config_error(section: str, field: str, message: str, suggestion: str = "") -> str:
    """Format a configuration error message.

    Args:
        section: Section name
        field: Field name that has the error
        message: Error description
        suggestion: Optional suggestion for fixing the error
    """
    msg = f"[{section}] Config error for '{field}': {message}"
    if suggestion:
        msg += f" -> {suggestion}"
    return msg


class ConfigValidator:
    """Validates one configuration section against a schema."""

    def __init__(self, config: dict, section: str) -> None:
        """Initialize the validator.

        Args:
            config: The section content
            section: Name of the section for error messages
        """
        self.config = config
        self.section = section

    def validate(self, schema: ConfigItems) -> list[str]:
        """Validate the section against `schema`.

        Returns:
            List of error messages (empty if validation passed)
        """
        errors = []
        for field_def in schema:
            value = self.config.get(field_def.name)
            if value is None:
                continue
            type_error = self._check_type(field_def, value)
            if type_error:
                errors.append(type_error)
                continue
            if field_def.choices is not None and value not in field_def.choices:
                choices_str = ", ".join(repr(c) for c in field_def.choices)
                errors.append(
                    format_config_error(self.section, field_def.name, f"Invalid value {value!r}", f"Valid options: {choices_str}")
                )
            if field_def.validator:
                errors.extend(format_config_error(self.section, field_def.name, msg) for msg in field_def.validator(value))
        return errors

    def unknown_keys(self, schema: ConfigItems) -> list[str]:
        """Return a warning for each key the schema does not know about."""
        known = schema.names()
        warnings = []
        for key in self.config:
            if key in known:
                continue
            similar = find_similar_key(key, known)
            suggestion = f"Did you mean '{similar}'?" if similar else ""
            warnings.append(format_config_error(self.section, key, "Unknown option", suggestion))
        return warnings

    def _check_type(self, field_def: ConfigField, value: Any) -> str | None:  # noqa: ANN401
        expected = field_def.field_type if isinstance(field_def.field_type, tuple) else (field_def.field_type,)
        if any(self._is_instance(value, typ) for typ in expected):
            return None
        return format_config_error(
            self.section,
            field_def.name,
            f"Expected {field_def.type_name}, got {type(value).__name__}",
        )

    @staticmethod
    def _is_instance(value: Any, typ: type) -> bool:  # noqa: ANN401
        if typ is bool:
            return isinstance(value, bool) or (isinstance(value, str) and value.strip().lower() in BOOL_STRINGS)
        if typ in (int, float):
            if isinstance(value, bool):
                return False
            if isinstance(value, (int, float)):
                return typ is float or isinstance(value, int)
            if isinstance(value, str):
                try:
                    typ(value)
                except ValueError:
                    return False
                return True
            return False
        return isinstance(value, typ)
