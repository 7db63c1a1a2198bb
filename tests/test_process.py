"""Tests for the subprocess helpers."""

import asyncio

import pytest

from wlpop.process import BackgroundTasks, run, spawn_detached


class TestRun:
    """Tests for run()."""

    @pytest.mark.asyncio
    async def test_captures_output(self, test_logger):
        """Output of a successful program is returned."""
        assert await run(["echo", "hello"], test_logger) == b"hello\n"

    @pytest.mark.asyncio
    async def test_feeds_stdin(self, test_logger):
        """Standard input is passed to the program."""
        assert await run(["cat"], test_logger, stdin=b"abc") == b"abc"

    @pytest.mark.asyncio
    async def test_extra_environment(self, test_logger):
        """Extra variables are added to the inherited environment."""
        output = await run(["sh", "-c", 'echo "$WLPOP_TEST"'], test_logger, env={"WLPOP_TEST": "42"})
        assert output == b"42\n"

    @pytest.mark.asyncio
    async def test_failure_gives_none(self, test_logger):
        """Non-zero exit status is reported as None."""
        assert await run(["false"], test_logger) is None

    @pytest.mark.asyncio
    async def test_missing_program(self, test_logger):
        """A program that cannot be found gives None."""
        assert await run(["wlpop-does-not-exist"], test_logger) is None

    @pytest.mark.asyncio
    async def test_timeout(self, test_logger):
        """A hung program is killed."""
        assert await run(["sleep", "10"], test_logger, timeout=0.1) is None

    @pytest.mark.asyncio
    async def test_no_capture(self, test_logger):
        """Without capture the output is discarded."""
        assert await run(["echo", "hidden"], test_logger, capture=False) == b""


def test_spawn_detached(mocker, test_logger):
    popen = mocker.patch("wlpop.process.subprocess.Popen")
    assert spawn_detached(["firefox", "--new-window"], test_logger)
    args, kwargs = popen.call_args
    assert args[0] == ["firefox", "--new-window"]
    assert kwargs["start_new_session"] is True


def test_spawn_detached_missing(mocker, test_logger):
    mocker.patch("wlpop.process.subprocess.Popen", side_effect=FileNotFoundError("nope"))
    assert not spawn_detached(["nope"], test_logger)


class TestBackgroundTasks:
    """Tests for BackgroundTasks."""

    @pytest.mark.asyncio
    async def test_wait(self, test_logger):
        """Tasks are kept until done."""
        results = []

        async def job(value):
            await asyncio.sleep(0.01)
            results.append(value)

        tasks = BackgroundTasks(test_logger)
        tasks.add(job(1))
        tasks.add(job(2))
        assert len(tasks) == 2
        await tasks.wait()
        await asyncio.sleep(0)
        assert sorted(results) == [1, 2]
        assert len(tasks) == 0

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, test_logger, mocker):
        """A failing task does not propagate."""
        error = mocker.spy(test_logger, "error")

        async def boom():
            raise ValueError("boom")

        tasks = BackgroundTasks(test_logger)
        tasks.add(boom())
        await tasks.wait()
        await asyncio.sleep(0)
        assert error.call_count == 1
