"""Launching the archiver as a child process.

Launching is split in two steps. ``spawn_archiver`` builds a LaunchDescriptor
whose output streams already exist, so callers can attach readers before
anything runs. ``LaunchDescriptor.execute`` then starts the OS process and
returns a RunningProcess.

Both exposed streams are branches of one Tee fed by the child's native
stdout. The child's native stderr is drained onto the log bus as STDERR
records tagged with its pid (see RunningProcess.subscribe_log).
"""

from __future__ import annotations

import asyncio
import os
import shlex
import signal
import subprocess
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sevenspawn.core.args import build_args
from sevenspawn.core.config import ConfigResolver
from sevenspawn.core.errors import LaunchError
from sevenspawn.core.events import EVENT_ERROR, EVENT_EXIT, ProcessEvents
from sevenspawn.core.log_bus import LogCallback, Subscription, get_log_bus
from sevenspawn.core.logging import get_logger
from sevenspawn.core.streams import CHUNK_SIZE, StreamBranch, Tee

log = get_logger(__name__)

IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class SpawnOptions:
    """Extra launch configuration.

    Attributes:
        cwd: Working directory (default: current directory at spawn time)
        env: Variables layered over os.environ for the child
        user: User id or name to run as (POSIX)
        group: Group id or name to run as (POSIX)
        shell: Run the command line through the system shell
    """

    cwd: str | os.PathLike[str] | None = None
    env: Mapping[str, str] | None = None
    user: int | str | None = None
    group: int | str | None = None
    shell: bool = False


def _split_returncode(returncode: int) -> tuple[int | None, str | None]:
    """Map an asyncio returncode to (status, signal name).

    On POSIX a negative returncode means the child died from signal -N.
    """
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"SIG{-returncode}"


class _ArchiverProtocol(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol that reports the exit as soon as the OS does.

    Process.wait() can only return once every pipe is closed as well, and a
    descendant that inherited the archiver's stdout keeps it open for as
    long as it lives.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_exit: Callable[[int, int], None],
    ) -> None:
        super().__init__(limit=CHUNK_SIZE, loop=loop)
        self._on_exit = on_exit
        self._process_transport: asyncio.SubprocessTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        assert isinstance(transport, asyncio.SubprocessTransport)
        self._process_transport = transport
        super().connection_made(transport)

    def process_exited(self) -> None:
        transport = self._process_transport
        assert transport is not None
        pid, returncode = transport.get_pid(), transport.get_returncode()
        super().process_exited()
        assert returncode is not None
        self._on_exit(pid, returncode)


class RunningProcess:
    """Handle on one launched archiver process.

    Created by LaunchDescriptor.execute(). If the OS refused to start the
    program, ``error`` holds the OSError and the error event has fired;
    otherwise the exit event fires as soon as the process ends, even while
    its output pipes are still open.
    """

    def __init__(
        self,
        commandline: list[str],
        cwd: str,
        stdout: StreamBranch,
        stderr: StreamBranch,
    ) -> None:
        self.commandline = commandline
        self.cwd = cwd
        self.stdout = stdout
        self.stderr = stderr
        self.events = ProcessEvents()
        self.error: OSError | None = None
        self.status: int | None = None
        self.signal: str | None = None
        self._proc: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task[Any]] = []

    def __repr__(self) -> str:
        return f"RunningProcess(pid={self.pid}, status={self.status}, signal={self.signal})"

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def exited(self) -> bool:
        return self.events.fired(EVENT_EXIT)

    def on_exit(self, callback: Callable[[int | None, str | None], None]) -> None:
        """Call ``callback(status, signal)`` once the process has exited."""
        self.events.subscribe(EVENT_EXIT, lambda data: callback(data["status"], data["signal"]))

    def on_error(self, callback: Callable[[OSError], None]) -> None:
        """Call ``callback(error)`` if the process could not be started."""
        self.events.subscribe(EVENT_ERROR, lambda data: callback(data["error"]))

    def subscribe_log(
        self, callback: LogCallback, level_name: str | None = None
    ) -> Subscription | None:
        """Receive log records about this process, including its native stderr.

        Native stderr arrives as "STDERR" records whatever the verbosity.

        Returns:
            The subscription, or None if the process never started
        """
        if self.pid is None:
            return None
        return get_log_bus().subscribe(callback, level_name=level_name, pid=self.pid)

    def send_signal(self, sig: int) -> bool:
        """Deliver a signal.

        Returns:
            False if there is no live process to deliver it to
        """
        if self._proc is None or self._proc.returncode is not None:
            return False
        try:
            self._proc.send_signal(sig)
        except ProcessLookupError:
            return False
        log.debug(f"sent {signal.Signals(sig).name} to pid {self.pid}", pid=self.pid)
        return True

    def interrupt(self) -> bool:
        """Ask the process to stop (SIGINT; TerminateProcess on Windows)."""
        if IS_WINDOWS:
            return self.send_signal(signal.SIGTERM)
        return self.send_signal(signal.SIGINT)

    def kill(self) -> bool:
        """Force the process to stop (SIGKILL; TerminateProcess on Windows)."""
        if IS_WINDOWS:
            return self.send_signal(signal.SIGTERM)
        return self.send_signal(signal.SIGKILL)

    async def wait(self) -> tuple[int | None, str | None]:
        """Wait for exit and return (status, signal).

        Raises:
            OSError: The process never started.
        """
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[tuple[int | None, str | None]] = loop.create_future()

        def _done(status: int | None, sig: str | None) -> None:
            if not fut.done():
                fut.set_result((status, sig))

        def _failed(error: OSError) -> None:
            if not fut.done():
                fut.set_exception(error)

        self.on_error(_failed)
        self.on_exit(_done)
        return await fut

    async def wait_closed(self) -> None:
        """Wait until the output pipes are fully drained into the streams.

        Pipes inherited by a descendant of the archiver stay open until that
        descendant exits too.
        """
        if self._tasks:
            await asyncio.gather(*self._tasks)

    def _attach(self, proc: asyncio.subprocess.Process, tee: Tee) -> None:
        self._proc = proc
        assert proc.stdout is not None and proc.stderr is not None
        self._tasks = [
            asyncio.create_task(tee.pump_from(proc.stdout)),
            asyncio.create_task(self._drain_native_stderr(proc.pid, proc.stderr)),
        ]

    def _fail(self, error: OSError) -> None:
        self.error = error
        log.verbose(f"could not start {self.commandline[0]}: {error}")
        self.events.publish(EVENT_ERROR, {"error": error})

    def _exited(self, pid: int, returncode: int) -> None:
        self.status, self.signal = _split_returncode(returncode)
        if self.signal:
            log.verbose(f"pid {pid} exited by signal {self.signal}", pid=pid)
        else:
            log.verbose(f"pid {pid} exited with code {self.status}", pid=pid)
        self.events.publish(EVENT_EXIT, {"status": self.status, "signal": self.signal})

    async def _drain_native_stderr(self, pid: int, reader: asyncio.StreamReader) -> None:
        while True:
            chunk = await reader.read(CHUNK_SIZE)
            if not chunk:
                return
            log.child_stderr(pid, chunk.decode(errors="replace").rstrip())


class LaunchDescriptor:
    """Everything about a launch that is known before the process starts."""

    def __init__(
        self,
        program: str,
        args: list[str],
        cli: bool,
        options: SpawnOptions,
    ) -> None:
        self.program = program
        self.args = args
        self.cli = cli
        self.options = options
        self.commandline = [program, *args]
        self.cwd = os.fspath(options.cwd) if options.cwd else os.getcwd()

        self._tee = Tee()
        self.stdout = self._tee.branch("stdout")
        self.stderr = self._tee.branch("stderr")
        self._executed = False

    def __repr__(self) -> str:
        return f"LaunchDescriptor({shlex.join(self.commandline)!r}, cwd={self.cwd!r})"

    def _popen_kwargs(self) -> dict[str, Any]:
        opts = self.options
        kwargs: dict[str, Any] = {
            "stdin": None if self.cli else subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "cwd": self.cwd,
            "start_new_session": False,
        }
        if opts.env is not None:
            kwargs["env"] = {**os.environ, **opts.env}
        if opts.user is not None:
            kwargs["user"] = opts.user
        if opts.group is not None:
            kwargs["group"] = opts.group
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        return kwargs

    async def execute(self) -> RunningProcess:
        """Start the OS process.

        OS-level start failures do not raise here; they are reported through
        the returned handle's error event.

        Raises:
            LaunchError: The descriptor was already executed.
        """
        if self._executed:
            raise LaunchError(
                "Launch descriptor was already executed",
                "Call spawn_archiver() again for a new run",
            )
        self._executed = True

        running = RunningProcess(self.commandline, self.cwd, self.stdout, self.stderr)
        kwargs = self._popen_kwargs()
        loop = asyncio.get_running_loop()

        def factory() -> _ArchiverProtocol:
            return _ArchiverProtocol(loop, running._exited)

        log.verbose(f"spawn `{' '.join(self.commandline)}` (cwd={self.cwd})")
        try:
            if self.options.shell:
                if IS_WINDOWS:
                    cmd = subprocess.list2cmdline(self.commandline)
                else:
                    cmd = shlex.join(self.commandline)
                transport, protocol = await loop.subprocess_shell(factory, cmd, **kwargs)
            else:
                transport, protocol = await loop.subprocess_exec(
                    factory, *self.commandline, **kwargs
                )
        except OSError as e:
            self._tee.close()
            running._fail(e)
            return running

        proc = asyncio.subprocess.Process(transport, protocol, loop)
        log.debug(f"pid {proc.pid} started", pid=proc.pid)
        running._attach(proc, self._tee)
        return running


def spawn_archiver(
    args: Sequence[str],
    cli: bool = False,
    options: SpawnOptions | None = None,
    *,
    program: str | os.PathLike[str] | None = None,
    resolver: ConfigResolver | None = None,
) -> LaunchDescriptor:
    """Prepare an archiver launch.

    Args:
        args: Raw archiver arguments; normalized with build_args()
        cli: Interactive mode (stdin inherited, no forced ``-y``)
        options: Working directory, environment, credentials, shell flag
        program: Archiver executable; defaults to config key archiver.path
        resolver: Config resolver used when ``program`` is not given

    Returns:
        Descriptor ready to execute()
    """
    if program is None:
        program = (resolver or ConfigResolver()).resolve_archiver_path()
    return LaunchDescriptor(
        program=os.fspath(program),
        args=build_args(args, cli=cli),
        cli=cli,
        options=options or SpawnOptions(),
    )
