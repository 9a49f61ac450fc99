"""Graceful-then-forced termination of a running process."""

from __future__ import annotations

import asyncio
from typing import Protocol

from sevenspawn.core.config import ConfigResolver
from sevenspawn.core.logging import get_logger

log = get_logger(__name__)


class TerminableProcess(Protocol):
    pid: int | None

    def on_exit(self, callback) -> None: ...

    def interrupt(self) -> bool: ...

    def kill(self) -> bool: ...


def terminate_gracefully(
    process: TerminableProcess,
    timeout: float | None = None,
    *,
    resolver: ConfigResolver | None = None,
) -> asyncio.Future[None]:
    """Interrupt ``process`` and kill it if it is still alive after ``timeout``.

    The returned future resolves once the process has exited, whichever way
    that happened, or right away if the interrupt could not be delivered.

    Args:
        process: Running process handle
        timeout: Seconds to wait before escalating; defaults to config key
            terminate.timeout_ms (5000 ms)
        resolver: Config resolver used when ``timeout`` is not given
    """
    if timeout is None:
        timeout = (resolver or ConfigResolver()).resolve_terminate_timeout()

    loop = asyncio.get_running_loop()
    done: asyncio.Future[None] = loop.create_future()

    def _escalate() -> None:
        log.warning(f"pid {process.pid} ignored interrupt for {timeout:g}s; killing")
        process.kill()

    timer = loop.call_later(timeout, _escalate)

    def _resolve(*_exit_info: object) -> None:
        timer.cancel()
        if not done.done():
            done.set_result(None)

    process.on_exit(_resolve)
    if done.done():
        return done

    if not process.interrupt():
        log.debug(f"could not interrupt pid {process.pid}; nothing to wait for")
        _resolve()
    return done
