"""Tests for the completion watcher."""

from __future__ import annotations

import asyncio

import pytest

from sevenspawn.core.errors import ProgramError
from sevenspawn.core.watcher import CompletionWatcher, watch_process


def test_clean_exit_resolves_with_none(fake_process):
    async def scenario():
        proc = fake_process()
        fut = watch_process(proc)
        proc.exit(0, None)
        return await fut

    assert asyncio.run(scenario()) is None


def test_nonzero_exit_rejects_with_program_error(fake_process):
    async def scenario():
        proc = fake_process()
        fut = watch_process(proc)
        asyncio.get_running_loop().call_soon(proc.exit, 2, None)
        await fut

    with pytest.raises(ProgramError) as excinfo:
        asyncio.run(scenario())

    err = excinfo.value
    assert err.status == 2
    assert err.signal is None
    assert err.cwd == "/work"
    assert 'exit with code "2"' in err.message
    assert "Argument[0] = t" in err.program


def test_signal_exit_rejects_with_signal_name(fake_process):
    async def scenario():
        proc = fake_process()
        fut = watch_process(proc)
        proc.exit(None, "SIGKILL")
        await fut

    with pytest.raises(ProgramError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.signal == "SIGKILL"
    assert excinfo.value.status is None


def test_diagnostics_override(fake_process):
    async def scenario():
        proc = fake_process()
        fut = watch_process(proc, ["7zz", "a", "b.7z"], "/elsewhere")
        proc.exit(1, None)
        await fut

    with pytest.raises(ProgramError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.cwd == "/elsewhere"
    assert excinfo.value.commandline == ["7zz", "a", "b.7z"]


def test_startup_error_rejects_raw_and_preempts_exit(fake_process):
    async def scenario():
        proc = fake_process()
        fut = watch_process(proc)
        proc.fail(FileNotFoundError(2, "No such file or directory", "7za"))
        proc.exit(0, None)
        await fut

    with pytest.raises(FileNotFoundError):
        asyncio.run(scenario())


def test_settles_exactly_once_under_repeated_notifications(chatty_process):
    async def scenario():
        proc = chatty_process()
        watcher = CompletionWatcher(proc)
        for cb in list(proc.exit_callbacks):
            cb(0, None)
            cb(1, None)
            cb(None, "SIGTERM")
        for cb in list(proc.error_callbacks):
            cb(PermissionError("late"))
        return await watcher.future, watcher.ignored

    result, ignored = asyncio.run(scenario())
    assert result is None
    assert ignored == 3


def test_exit_before_watch_is_replayed(fake_process):
    async def scenario():
        proc = fake_process()
        proc.exit(0, None)
        return await watch_process(proc)

    assert asyncio.run(scenario()) is None
