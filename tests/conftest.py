"""Generic fixtures."""

from pathlib import Path

import pytest

from wlpop.logging_setup import get_logger


def pytest_configure():
    "Runs once before all"
    from wlpop.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    return get_logger("tests")


@pytest.fixture
def xdg_home(tmp_path, monkeypatch):
    "Points every XDG folder (and HOME) to a temporary directory"
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name, folder in (
        ("XDG_CONFIG_HOME", "config"),
        ("XDG_CACHE_HOME", "cache"),
        ("XDG_STATE_HOME", "state"),
        ("XDG_DATA_HOME", "data"),
        ("XDG_RUNTIME_DIR", "runtime"),
    ):
        path = tmp_path / folder
        path.mkdir()
        monkeypatch.setenv(name, str(path))
    monkeypatch.setenv("XDG_DATA_DIRS", str(tmp_path / "system"))
    monkeypatch.delenv("GUI_THEME_OVERRIDE", raising=False)
    return tmp_path


@pytest.fixture
def configure(test_logger):
    "Hands a configuration snapshot built from `behavior` to a tool"
    from wlpop.config import Configuration
    from wlpop.config_loader import Settings
    from wlpop.keys import default_keybinds

    async def _configure(tool, **behavior):
        settings = Settings(
            window=Configuration({}, logger=test_logger, schema=tool.window_schema()),
            style=Configuration({}, logger=test_logger),
            behavior=Configuration(behavior, logger=test_logger, schema=tool.behavior_schema),
            keybinds=default_keybinds(tool.allow_delete),
            theme=Path("/nonexistent/style.css"),
        )
        await tool.on_reload(settings)
        return settings

    return _configure
