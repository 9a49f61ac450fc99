"""Tests for verbosity-levelled logging."""

from __future__ import annotations

import pytest

from sevenspawn.core.log_bus import LogRecord, get_log_bus
from sevenspawn.core.logging import (
    VerbosityLevel,
    get_logger,
    get_verbosity,
    set_verbosity,
)


class TestVerbosityLevel:
    """Test VerbosityLevel enum."""

    def test_verbosity_ordering(self):
        assert VerbosityLevel.QUIET < VerbosityLevel.NORMAL < VerbosityLevel.VERBOSE
        assert VerbosityLevel.VERBOSE < VerbosityLevel.DEBUG

    def test_set_get_verbosity(self):
        set_verbosity(2)
        assert get_verbosity() == VerbosityLevel.VERBOSE

        set_verbosity("debug")
        assert get_verbosity() == VerbosityLevel.DEBUG

        set_verbosity(" Quiet ")
        assert get_verbosity() == VerbosityLevel.QUIET

    def test_unknown_name_rejected(self):
        with pytest.raises(KeyError):
            set_verbosity("loud")


def _collect(**filters) -> list[LogRecord]:
    collected: list[LogRecord] = []
    get_log_bus().subscribe(collected.append, **filters)
    return collected


def test_log_bus_receives_plain_record() -> None:
    collected = _collect()

    get_logger("logbus_test").info("hello")

    assert collected == [LogRecord("INFO", "[info] hello", "logbus_test", None)]


def test_verbosity_filters_records() -> None:
    collected = _collect()
    log = get_logger("filter_test")

    set_verbosity(VerbosityLevel.NORMAL)
    log.verbose("spawn")
    log.debug("pump")
    log.info("started")

    set_verbosity(VerbosityLevel.QUIET)
    log.info("hidden")
    log.warning("escalating")
    log.error("failed")

    assert [r.plain for r in collected] == [
        "[info] started",
        "[warning] escalating",
        "[error] failed",
    ]


def test_level_filter_is_case_insensitive() -> None:
    collected = _collect(level_name="error")

    log = get_logger("logbus_test")
    log.info("hello")
    log.error("boom")

    assert [r.plain for r in collected] == ["[error] boom"]


def test_pid_filter_follows_one_process() -> None:
    mine = _collect(pid=101)
    everything = _collect()
    log = get_logger("launcher_test")

    log.info("pid 101 started", pid=101)
    log.info("pid 202 started", pid=202)
    log.info("no process")

    assert [r.plain for r in mine] == ["[info] pid 101 started"]
    assert len(everything) == 3


def test_child_stderr_is_published_at_any_verbosity(capsys) -> None:
    collected = _collect(level_name="STDERR", pid=7)
    set_verbosity(VerbosityLevel.QUIET)

    get_logger("launcher_test").child_stderr(7, "12% 3 + archive.7z")

    assert [r.plain for r in collected] == ["[stderr] 12% 3 + archive.7z"]
    assert capsys.readouterr().err == ""


def test_child_stderr_is_printed_at_debug(capsys) -> None:
    set_verbosity(VerbosityLevel.DEBUG)
    get_logger("launcher_test").child_stderr(7, "ERROR: CRC failed")
    assert "[stderr] pid 7: ERROR: CRC failed" in capsys.readouterr().err


def test_unsubscribe() -> None:
    bus = get_log_bus()
    collected: list[LogRecord] = []
    sub = bus.subscribe(collected.append, level_name="INFO")
    bus.unsubscribe(sub)
    bus.unsubscribe(sub)

    get_logger("logbus_test").info("hello")
    assert collected == []


def test_failing_listener_does_not_stop_delivery(capsys) -> None:
    def _boom(_rec: LogRecord) -> None:
        raise RuntimeError("fail")

    get_log_bus().subscribe(_boom)
    after = _collect()
    get_logger("logbus_test").info("hello")

    err = capsys.readouterr().err
    assert "[info] hello" in err
    assert "log listener failed on '[info] hello'; skipped." in err
    assert "RuntimeError: fail" in err
    assert len(after) == 1


def test_console_output_goes_to_stderr(capsys) -> None:
    get_logger("console_test").info("launching")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[info] launching" in captured.err


def test_get_logger_is_cached() -> None:
    assert get_logger("same") is get_logger("same")
