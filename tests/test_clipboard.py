from unittest.mock import AsyncMock, call

import pytest

from wlpop.models import Candidate
from wlpop.search import SubstringFilter
from wlpop.tools import load_tool
from wlpop.tools.clipboard import ClipEntry, content_type, parse_entries, parse_image_meta, to_candidate, truncate

HISTORY = """\
12\thello world
11\thttps://example.com/page
10\t[[ binary data 24 KiB png 64x64 ]]
9\tmulti word entry

8\t  spaced  \n"""


@pytest.fixture
def tool():
    return load_tool("clipboard")


@pytest.fixture
def run(mocker):
    return mocker.patch("wlpop.tools.clipboard.run", new_callable=AsyncMock)


def test_parse_entries():
    entries = parse_entries(HISTORY)
    assert [e.id for e in entries] == ["12", "11", "10", "9", "8"]
    assert entries[0] == ClipEntry("12\thello world", "12", "hello world")
    assert entries[4].preview == "  spaced  "


def test_parse_entries_limit():
    assert [e.id for e in parse_entries(HISTORY, max_items=2)] == ["12", "11"]
    assert parse_entries("") == []


def test_parse_line_without_tab():
    (entry,) = parse_entries("orphan line")
    assert entry.id == entry.preview == entry.raw_line == "orphan line"


def test_content_type():
    entries = parse_entries(HISTORY)
    assert [content_type(e) for e in entries] == ["TEXT", "URL", "IMAGE", "TEXT", "TEXT"]


def test_parse_image_meta():
    assert parse_image_meta("[[ binary data 1 MiB jpeg 1920x1080 ]]") == "1920x1080 -- JPEG"
    assert parse_image_meta("[[ binary data 3 KiB bmp ]]") == "BMP"
    assert parse_image_meta("[[ binary data 3 KiB ]]") is None


def test_to_candidate():
    image = to_candidate(ClipEntry("10\t[[ binary data 24 KiB png 64x64 ]]", "10", "[[ binary data 24 KiB png 64x64 ]]"))
    assert image.secondary_text == "64x64 -- PNG"
    unknown = to_candidate(ClipEntry("7\t[[ binary data 2 KiB ]]", "7", "[[ binary data 2 KiB ]]"))
    assert unknown.secondary_text == "IMAGE"
    text = to_candidate(ClipEntry("1\tabc", "1", "abc"))
    assert text == Candidate("abc", "TEXT")
    assert text.payload.id == "1"


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate(" a\nb\tc ", 10) == "a b c"
    assert truncate("x" * 60, 50) == "x" * 50 + "..."


def test_tool_declaration(tool):
    assert tool.app_name == "cliphist-gui"
    assert tool.allow_delete
    assert isinstance(tool.create_filter(), SubstringFilter)
    assert tool.window_schema().get("height").default == 520


@pytest.mark.asyncio
async def test_fetch(tool, run, configure):
    await configure(tool, max_items=3)
    run.return_value = HISTORY.encode()
    candidates = await tool.fetch()
    run.assert_awaited_once_with(["cliphist", "list"], tool.log)
    assert [c.primary_text for c in candidates] == ["hello world", "https://example.com/page", "[[ binary data 24 KiB png 64x64 ]]"]


@pytest.mark.asyncio
async def test_fetch_failure(tool, run, configure):
    await configure(tool)
    run.return_value = None
    assert await tool.fetch() == []


@pytest.mark.asyncio
async def test_activate_copies(tool, run, configure):
    await configure(tool)
    run.side_effect = [b"hello world", b""]
    (candidate,) = [to_candidate(e) for e in parse_entries("12\thello world")]
    assert await tool.activate(candidate, "hel") is True
    await tool.exit()
    assert run.await_args_list == [
        call(["cliphist", "decode"], tool.log, stdin=b"12\thello world"),
        call(["wl-copy", "--type", "text/plain"], tool.log, stdin=b"hello world", capture=False),
    ]


@pytest.mark.asyncio
async def test_activate_keeps_window_open(tool, run, configure):
    await configure(tool, close_on_select=False)
    run.side_effect = [b"data", b""]
    (candidate,) = [to_candidate(e) for e in parse_entries("1\tdata")]
    assert await tool.activate(candidate, "") is False
    await tool.exit()


@pytest.mark.asyncio
async def test_activate_without_selection(tool, run, configure):
    await configure(tool)
    assert await tool.activate(None, "nothing") is False
    run.assert_not_awaited()


@pytest.mark.asyncio
async def test_copy_image_with_notification(tool, run, configure):
    await configure(tool)
    run.side_effect = [b"\x89PNG", b"", b""]
    (entry,) = parse_entries("10\t[[ binary data 24 KiB png 64x64 ]]")
    assert await tool.copy(entry, notify=True)
    assert run.await_args_list[1] == call(["wl-copy", "--type", "image/png"], tool.log, stdin=b"\x89PNG", capture=False)
    assert run.await_args_list[2] == call(["notify-send", "-t", "2000", "cliphist-gui", "Image copied"], tool.log)


@pytest.mark.asyncio
async def test_copy_text_notification_is_truncated(tool, run, configure):
    await configure(tool)
    run.side_effect = [b"x", b"", b""]
    (entry,) = parse_entries("3\t" + "y" * 80)
    assert await tool.copy(entry, notify=True)
    assert run.await_args_list[2].args[0][-1] == "Copied: " + "y" * 50 + "..."


@pytest.mark.asyncio
async def test_copy_decode_failure(tool, run, configure):
    await configure(tool)
    run.return_value = None
    (entry,) = parse_entries("3\tgone")
    assert not await tool.copy(entry)
    assert run.await_count == 1


@pytest.mark.asyncio
async def test_remove(tool, run, configure):
    await configure(tool)
    run.return_value = b""
    (candidate,) = [to_candidate(e) for e in parse_entries("9\tmulti word entry")]
    await tool.remove(candidate)
    run.assert_awaited_once_with(["cliphist", "delete"], tool.log, stdin=b"9\tmulti word entry")
