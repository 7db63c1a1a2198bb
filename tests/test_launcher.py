from unittest.mock import AsyncMock

import pytest

from wlpop.daemon import Daemon
from wlpop.models import Candidate
from wlpop.search import FuzzyFilter
from wlpop.session import KeyPress, QueryChanged
from wlpop.tools import load_tool
from wlpop.tools.launcher import (
    CalcResult,
    DesktopEntry,
    application_dirs,
    launch_command,
    load_entries,
    parse_desktop_entry,
)

FIREFOX = """\
[Desktop Entry]
Name=Firefox
Name[fr]=Firefox en français
GenericName=Web Browser
Comment=Browse the World Wide Web
Exec=firefox %u
Icon=firefox
Type=Application

[Desktop Action new-window]
Name=New Window
Exec=firefox --new-window %u
"""

HTOP = """\
[Desktop Entry]
Name=Htop
GenericName=Process Viewer
Exec=htop
Terminal=true
"""

HIDDEN = """\
[Desktop Entry]
Name=Secret
Exec=secret
NoDisplay=true
"""


@pytest.fixture
def tool():
    return load_tool("launcher")


@pytest.fixture
def apps_dir(xdg_home):
    folder = xdg_home / "data" / "applications"
    folder.mkdir()
    (folder / "firefox.desktop").write_text(FIREFOX)
    (folder / "htop.desktop").write_text(HTOP)
    (folder / "secret.desktop").write_text(HIDDEN)
    (folder / "notes.txt").write_text("Name=Nope")
    nested = folder / "kde"
    nested.mkdir()
    (nested / "files.desktop").write_text("[Desktop Entry]\nName=files\nExec=dolphin %F\n")
    return folder


def test_parse_desktop_entry():
    entry = parse_desktop_entry(FIREFOX)
    assert entry == DesktopEntry(name="Firefox", exec="firefox", icon="firefox", description="Browse the World Wide Web")


def test_parse_falls_back_to_generic_name():
    entry = parse_desktop_entry(HTOP)
    assert entry.description == "Process Viewer"
    assert entry.terminal


@pytest.mark.parametrize(
    "content",
    [
        HIDDEN,
        "[Desktop Entry]\nName=Gone\nExec=gone\nHidden=true\n",
        "[Desktop Entry]\nName=No command\n",
        "[Desktop Entry]\nExec=nameless\n",
        "[Other Group]\nName=Wrong\nExec=wrong\n",
        "",
    ],
)
def test_parse_rejects(content):
    assert parse_desktop_entry(content) is None


def test_application_dirs(monkeypatch):
    monkeypatch.setenv("HOME", "/home/me")
    monkeypatch.setenv("XDG_DATA_HOME", "/data")
    monkeypatch.setenv("XDG_DATA_DIRS", "/a:/b")
    assert [str(p) for p in application_dirs()] == [
        "/home/me/.local/share/applications",
        "/data/applications",
        "/a/applications",
        "/b/applications",
    ]
    monkeypatch.delenv("XDG_DATA_DIRS")
    assert [str(p) for p in application_dirs()][-2:] == ["/usr/local/share/applications", "/usr/share/applications"]


@pytest.mark.asyncio
async def test_load_entries(apps_dir):
    entries = await load_entries([apps_dir])
    assert [e.name for e in entries] == ["files", "Firefox", "Htop"]
    assert entries[0].exec == "dolphin"
    assert entries[1].path == apps_dir / "firefox.desktop"


@pytest.mark.asyncio
async def test_load_entries_first_folder_wins(apps_dir, tmp_path):
    override = tmp_path / "override"
    override.mkdir()
    (override / "firefox.desktop").write_text("[Desktop Entry]\nName=Firefox\nExec=firefox-nightly\n")
    entries = await load_entries([override, tmp_path / "missing", apps_dir])
    assert [e.exec for e in entries if e.name == "Firefox"] == ["firefox-nightly"]


def test_launch_command():
    assert launch_command(DesktopEntry("Firefox", "firefox --private"), "kitty") == ["sh", "-c", "firefox --private"]
    assert launch_command(DesktopEntry("Htop", "htop", terminal=True), "foot") == ["foot", "-e", "sh", "-c", "htop"]


@pytest.mark.asyncio
async def test_fetch_and_rank(tool, apps_dir, configure):
    await configure(tool)
    candidates = await tool.fetch()
    assert [c.primary_text for c in candidates] == ["files", "Firefox", "Htop"]
    ranked = tool.create_filter().visible(candidates, "fi")
    assert [c.primary_text for c in ranked] == ["files", "Firefox"]


@pytest.mark.asyncio
async def test_usage_boost_survives_refetch(tool, apps_dir, configure, mocker):
    mocker.patch("wlpop.tools.launcher.spawn_detached", return_value=True)
    await configure(tool)
    candidates = await tool.fetch()
    for _ in range(3):
        assert await tool.activate(candidates[1], "")
    candidates = await tool.fetch()
    assert [c.usage_count for c in candidates] == [0, 3, 0]
    ranked = tool.create_filter().visible(candidates, "fi")
    assert ranked[0].primary_text == "Firefox"


@pytest.mark.asyncio
async def test_max_results(tool, configure):
    await configure(tool, max_results=2)
    assert isinstance(tool.create_filter(), FuzzyFilter)
    assert tool.create_filter().limit == 2
    await configure(tool, max_results=0)
    assert tool.create_filter().limit == 1


@pytest.mark.asyncio
async def test_activate_launches(tool, configure, mocker):
    spawn = mocker.patch("wlpop.tools.launcher.spawn_detached", return_value=True)
    await configure(tool, terminal="foot")
    candidate = Candidate("Htop", payload=DesktopEntry("Htop", "htop", terminal=True))
    assert await tool.activate(candidate, "ht")
    spawn.assert_called_once_with(["foot", "-e", "sh", "-c", "htop"], tool.log)


@pytest.mark.asyncio
async def test_activate_nothing_selected(tool, configure, mocker):
    spawn = mocker.patch("wlpop.tools.launcher.spawn_detached")
    await configure(tool)
    assert not await tool.activate(None, "zzz")
    spawn.assert_not_called()


@pytest.mark.asyncio
async def test_calculator_preview(tool, configure, mocker):
    calc = mocker.patch("wlpop.tools.launcher.calc_eval", new_callable=AsyncMock, return_value="4")
    await configure(tool)
    rows = await tool.preview("=2+2")
    calc.assert_awaited_once_with("2+2", tool.log)
    assert [(row.primary_text, row.secondary_text, row.style_class) for row in rows] == [
        ("4", "= 2+2", "launch-calc-result")
    ]
    assert rows[0].payload == CalcResult("2+2", "4")
    assert await tool.preview("=") == []
    assert await tool.preview("fire") == []
    assert calc.await_count == 1


@pytest.mark.asyncio
async def test_calculator_row_copies_result(tool, configure, mocker):
    mocker.patch("wlpop.tools.launcher.calc_eval", new_callable=AsyncMock, return_value="4")
    run = mocker.patch("wlpop.tools.launcher.run", new_callable=AsyncMock, return_value=b"")
    spawn = mocker.patch("wlpop.tools.launcher.spawn_detached")
    await configure(tool)
    (row,) = await tool.preview("=2+2")
    assert await tool.activate(row, "=2+2")
    await tool.exit()
    run.assert_awaited_once_with(["wl-copy", "4"], tool.log, capture=False)
    spawn.assert_not_called()


@pytest.mark.asyncio
async def test_calculator_failure_falls_back_to_launch(tool, configure, mocker):
    mocker.patch("wlpop.tools.launcher.calc_eval", new_callable=AsyncMock, return_value=None)
    spawn = mocker.patch("wlpop.tools.launcher.spawn_detached", return_value=True)
    await configure(tool)
    assert await tool.preview("=firefox") == []
    candidate = Candidate("Firefox", payload=DesktopEntry("Firefox", "firefox"))
    assert await tool.activate(candidate, "=firefox")
    spawn.assert_called_once()


@pytest.mark.asyncio
async def test_calculator_disabled(tool, configure, mocker):
    calc = mocker.patch("wlpop.tools.launcher.calc_eval", new_callable=AsyncMock)
    await configure(tool, calculator=False)
    assert await tool.preview("=1+1") == []
    assert not await tool.activate(None, "=1+1")
    calc.assert_not_awaited()


@pytest.mark.asyncio
async def test_typing_an_expression_shows_the_result_row(tool, apps_dir, xdg_home, mocker):
    async def evaluate(expression, log):
        return "4" if expression == "2+2" else None

    mocker.patch("wlpop.tools.launcher.calc_eval", side_effect=evaluate)
    run = mocker.patch("wlpop.tools.launcher.run", new_callable=AsyncMock, return_value=b"")
    daemon = Daemon(tool, socket_path=xdg_home / "runtime" / "launcher.sock")
    await daemon.initialize()
    await daemon.toggle()

    await daemon.dispatch(QueryChanged("=2+2"))
    assert [row.primary_text for row in daemon.frontend.rows] == ["4"]
    assert daemon.frontend.rows[0].style_class == "launch-calc-result"
    assert daemon.frontend.selected == 0

    # not an expression: the regular filter runs on the whole query
    await daemon.dispatch(QueryChanged("=fi"))
    assert daemon.frontend.rows == []
    await daemon.dispatch(QueryChanged("fi"))
    assert [row.primary_text for row in daemon.frontend.rows] == ["files", "Firefox"]

    await daemon.dispatch(QueryChanged("=2+2"))
    await daemon.dispatch(KeyPress("Return"))
    await tool.exit()
    run.assert_awaited_once_with(["wl-copy", "4"], tool.log, capture=False)
    assert not daemon.frontend.visible
