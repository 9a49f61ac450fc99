"""Completion future for a running process.

The future settles exactly once:

- start failure -> fails with the raw OSError
- abnormal exit -> fails with ProgramError
- clean exit    -> result None

Anything the process reports after settlement is ignored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

from sevenspawn.core.logging import get_logger
from sevenspawn.core.status import Failure, classify_status

log = get_logger(__name__)


class WatchableProcess(Protocol):
    commandline: list[str]
    cwd: str

    def on_exit(self, callback: Callable[[int | None, str | None], None]) -> None: ...

    def on_error(self, callback: Callable[[OSError], None]) -> None: ...


class CompletionWatcher:
    """Bridges a process's exit/error notifications to one asyncio future."""

    def __init__(
        self,
        process: WatchableProcess,
        commandline: list[str] | None = None,
        cwd: str | None = None,
    ) -> None:
        self.process = process
        self.commandline = commandline if commandline is not None else process.commandline
        self.cwd = cwd if cwd is not None else process.cwd
        self.future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.ignored = 0

        # Error first: a start failure preempts any exit report.
        process.on_error(self._on_error)
        process.on_exit(self._on_exit)

    def _settled(self) -> bool:
        if self.future.done():
            self.ignored += 1
            return True
        return False

    def _on_error(self, error: OSError) -> None:
        if self._settled():
            return
        self.future.set_exception(error)

    def _on_exit(self, status: int | None, signal: str | None) -> None:
        if self._settled():
            return
        outcome = classify_status(status, signal, self.cwd, self.commandline)
        if isinstance(outcome, Failure):
            log.debug(outcome.message)
            self.future.set_exception(outcome.to_error())
        else:
            self.future.set_result(None)


def watch_process(
    process: WatchableProcess,
    commandline: list[str] | None = None,
    cwd: str | None = None,
) -> asyncio.Future[None]:
    """Return a future that settles once ``process`` has finished.

    Args:
        process: Running process handle
        commandline: Command line for diagnostics (default: the process's own)
        cwd: Working directory for diagnostics (default: the process's own)

    Must be called with a running event loop.
    """
    return CompletionWatcher(process, commandline, cwd).future
