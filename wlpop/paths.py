"""Per-user, per-tool filesystem locations."""

import os
from pathlib import Path

__all__ = [
    "config_dir",
    "control_socket_path",
    "expand_path",
    "pidfile_path",
]


def _xdg_dir(variable: str, fallback: str) -> Path:
    value = os.environ.get(variable)
    if value:
        return Path(value)
    return Path(os.environ.get("HOME") or "/tmp") / fallback  # noqa: S108


def config_dir(app_name: str) -> Path:
    """Return the configuration folder of `app_name` (may not exist)."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / app_name


def pidfile_path(app_name: str) -> Path:
    """Return the pidfile path, unique per user and tool."""
    return Path(f"/tmp/{app_name}-{os.getuid()}.pid")  # noqa: S108


def control_socket_path(app_name: str) -> Path:
    """Return the control socket path of the `app_name` daemon."""
    runtime = os.environ.get("XDG_RUNTIME_DIR")
    if runtime and Path(runtime).is_dir():
        return Path(runtime) / f"{app_name}.sock"
    return Path(f"/tmp/{app_name}-{os.getuid()}.sock")  # noqa: S108


def expand_path(value: str) -> Path:
    """Expand ``~`` and environment variables in a user supplied path."""
    return Path(os.path.expandvars(value)).expanduser()
