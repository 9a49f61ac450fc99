"""Verbosity-levelled logging for sevenspawn.

Four verbosity levels:
- QUIET (0): warnings + errors
- NORMAL (1): info + warnings + errors
- VERBOSE (2): process lifecycle (launch, exit, escalation)
- DEBUG (3): everything, including stream pumping

Usage:
    from sevenspawn.core.logging import get_logger, set_verbosity

    log = get_logger(__name__)
    set_verbosity(2)

    log.verbose("spawned pid 1234")
    log.warning("interrupt ignored, escalating")

Console output goes to stderr so it never interleaves with relayed archiver
output on stdout. Every emitted record is also published on the LogBus,
tagged with the archiver pid when it concerns one run. The archiver's own
stderr is published there at every verbosity (see child_stderr).
"""

from __future__ import annotations

import sys
from enum import IntEnum

from sevenspawn.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


_LEVEL_NAMES = {
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "debug": VerbosityLevel.DEBUG,
}

_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True


def set_verbosity(level: int | str | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: 0-3, a VerbosityLevel, or one of quiet|normal|verbose|debug
    """
    global _VERBOSITY

    if isinstance(level, str):
        level = _LEVEL_NAMES[level.strip().lower()]
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def set_colors(enabled: bool) -> None:
    """Enable or disable ANSI colours on TTY output."""
    global _USE_COLORS
    _USE_COLORS = enabled


class SevenSpawnLogger:
    """Logger with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "STDERR": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        self.name = name

    def _format_message(self, level_name: str, message: str) -> str:
        if _USE_COLORS and sys.stderr.isatty():
            color = self.COLORS.get(level_name, "")
            return f"{color}[{level_name.lower()}]{self.COLORS['RESET']} {message}"
        return f"[{level_name.lower()}] {message}"

    def _log(
        self, level: VerbosityLevel, level_name: str, message: str, pid: int | None = None
    ) -> None:
        if level > _VERBOSITY:
            return

        plain = f"[{level_name.lower()}] {message}"
        get_log_bus().publish(LogRecord(level_name, plain, self.name, pid))
        print(self._format_message(level_name, message), file=sys.stderr)

    def debug(self, message: str, *, pid: int | None = None) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message, pid)

    def verbose(self, message: str, *, pid: int | None = None) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message, pid)

    def info(self, message: str, *, pid: int | None = None) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message, pid)

    def warning(self, message: str, *, pid: int | None = None) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message, pid)

    def error(self, message: str, *, pid: int | None = None) -> None:
        """Log error message (always shown, regardless of verbosity)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message, pid)

    def child_stderr(self, pid: int, text: str) -> None:
        """Relay a line block the archiver wrote to its native stderr.

        Always published as a STDERR record for ``pid``; printed only at
        DEBUG verbosity.
        """
        get_log_bus().publish(LogRecord("STDERR", f"[stderr] {text}", self.name, pid))
        if _VERBOSITY >= VerbosityLevel.DEBUG:
            print(self._format_message("STDERR", f"pid {pid}: {text}"), file=sys.stderr)


_LOGGERS: dict[str, SevenSpawnLogger] = {}


def get_logger(name: str = __name__) -> SevenSpawnLogger:
    """Get logger instance for a module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Cached logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = SevenSpawnLogger(name)
    return _LOGGERS[name]
