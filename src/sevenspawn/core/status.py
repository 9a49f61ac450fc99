"""Classification of a finished process into Success or Failure."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from sevenspawn.core.errors import ProgramError


@dataclass(frozen=True)
class Success:
    """The process exited with status 0 and no signal."""


@dataclass(frozen=True)
class Failure:
    """The process exited abnormally.

    At most one of ``status`` / ``signal`` is meaningful; both are kept for
    inspection.
    """

    message: str
    status: int | None
    signal: str | None
    cwd: str
    commandline: list[str] = field(default_factory=list)
    program: str = ""

    def to_error(self) -> ProgramError:
        return ProgramError(
            self.message,
            status=self.status,
            signal=self.signal,
            cwd=self.cwd,
            commandline=self.commandline,
            program=self.program,
        )


ProcessOutcome = Success | Failure


def indent_args(args: Sequence[str]) -> str:
    return "\n".join(f"  Argument[{index}] = {arg}" for index, arg in enumerate(args))


def describe_command(commandline: Sequence[str]) -> str:
    """Multi-line dump of a command line for error reports."""
    program = commandline[0] if commandline else ""
    lines = [f"`{' '.join(commandline)}`", f"    Command = {program}"]
    args = indent_args(commandline[1:])
    if args:
        lines.append(args)
    return "\n".join(lines) + "\n"


def classify_status(
    status: int | None,
    signal: str | None,
    cwd: str,
    commandline: Sequence[str],
) -> ProcessOutcome:
    """Turn an exit status / signal pair into a ProcessOutcome."""
    if status == 0 and not signal:
        return Success()

    if signal:
        message = f'Program exit by signal "{signal}"'
    else:
        message = f'Program exit with code "{status}"'
    return Failure(
        message=message,
        status=status,
        signal=signal,
        cwd=cwd,
        commandline=list(commandline),
        program=describe_command(commandline),
    )
