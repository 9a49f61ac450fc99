"""Error types with friendly, standalone messages."""

from __future__ import annotations


class SevenSpawnError(Exception):
    """Base exception for all sevenspawn errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(SevenSpawnError):
    """Configuration error."""

    pass


class LaunchError(SevenSpawnError):
    """Launcher misuse (the OS never saw the request)."""

    pass


class ProgramError(SevenSpawnError):
    """The archiver ran but did not exit cleanly.

    Carries everything needed to print the failure on its own: the exit
    status or terminating signal, the working directory and the full
    command line dump.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None,
        signal: str | None,
        cwd: str,
        commandline: list[str],
        program: str,
    ) -> None:
        self.status = status
        self.signal = signal
        self.cwd = cwd
        self.commandline = list(commandline)
        self.program = program
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.message}\n  Working directory: {self.cwd}\n  Program: {self.program}"
