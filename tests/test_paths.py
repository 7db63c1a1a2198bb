import os

from wlpop import paths


def test_config_dir(xdg_home, monkeypatch):
    assert paths.config_dir("launch-gui") == xdg_home / "config" / "launch-gui"
    monkeypatch.delenv("XDG_CONFIG_HOME")
    assert paths.config_dir("launch-gui") == xdg_home / "home" / ".config" / "launch-gui"


def test_runtime_paths(xdg_home, monkeypatch):
    assert str(paths.pidfile_path("cliphist-gui")) == f"/tmp/cliphist-gui-{os.getuid()}.pid"
    assert paths.control_socket_path("cliphist-gui") == xdg_home / "runtime" / "cliphist-gui.sock"
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(xdg_home / "missing"))
    assert str(paths.control_socket_path("cliphist-gui")) == f"/tmp/cliphist-gui-{os.getuid()}.sock"


def test_expand_path(xdg_home, monkeypatch):
    monkeypatch.setenv("THEMES", "/srv/themes")
    assert paths.expand_path("~/style.css") == xdg_home / "home" / "style.css"
    assert str(paths.expand_path("$THEMES/nord.css")) == "/srv/themes/nord.css"


def test_exported_names():
    assert paths.__all__ == ["config_dir", "control_socket_path", "expand_path", "pidfile_path"]
