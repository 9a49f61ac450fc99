"""Filtered delivery of log records to in-process listeners.

Every record names the logger that produced it and, when it concerns one
archiver run, that process's pid. A listener subscribes with optional level
and pid filters, so a job view can follow a single archive operation
(including the archiver's own progress lines on native stderr) without
seeing its neighbours.

Delivery never raises: a failing listener is reported on stderr and the
remaining listeners still get the record.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass

LogCallback = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str
    pid: int | None = None


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle returned by LogBus.subscribe(); pass it back to unsubscribe."""

    callback: LogCallback
    level_name: str | None = None
    pid: int | None = None

    def matches(self, record: LogRecord) -> bool:
        if self.level_name is not None and record.level_name != self.level_name:
            return False
        return self.pid is None or record.pid == self.pid


class LogBus:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        callback: LogCallback,
        *,
        level_name: str | None = None,
        pid: int | None = None,
    ) -> Subscription:
        """Deliver matching records to ``callback``.

        Args:
            callback: Called with each matching LogRecord
            level_name: Only records of this level (e.g. "ERROR", "STDERR")
            pid: Only records about this archiver process
        """
        level = level_name.upper() if level_name else None
        sub = Subscription(callback, level_name=level, pid=pid)
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, record: LogRecord) -> None:
        for sub in [s for s in self._subscriptions if s.matches(record)]:
            try:
                sub.callback(record)
            except Exception:
                # Not through the logger: it publishes here.
                msg = f"log listener failed on {record.plain!r}; skipped.\n"
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg + traceback.format_exc())

    def clear(self) -> None:
        self._subscriptions.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
