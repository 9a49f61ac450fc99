"""One-call archiver run: spawn, execute, wait for the outcome."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Sequence

from sevenspawn.core.config import ConfigResolver
from sevenspawn.core.launcher import RunningProcess, SpawnOptions, spawn_archiver
from sevenspawn.core.streams import CHUNK_SIZE, StreamBranch
from sevenspawn.core.watcher import watch_process


async def run_archiver(
    args: Sequence[str],
    cli: bool = False,
    options: SpawnOptions | None = None,
    *,
    program: str | os.PathLike[str] | None = None,
    resolver: ConfigResolver | None = None,
) -> tuple[bytes, RunningProcess]:
    """Run the archiver to completion and collect its output.

    Returns:
        (primary output bytes, finished process handle)

    Raises:
        ProgramError: Non-zero exit or death by signal
        OSError: The archiver could not be started
    """
    launch = spawn_archiver(args, cli, options, program=program, resolver=resolver)
    process = await launch.execute()
    completion = watch_process(process, launch.commandline, launch.cwd)
    # Read before awaiting completion. The diagnostic copy is consumed and
    # dropped so it does not sit in memory next to the primary one.
    output, _ = await asyncio.gather(launch.stdout.read(), _discard(launch.stderr))
    await completion
    await process.wait_closed()
    return output, process


async def _discard(branch: StreamBranch) -> int:
    dropped = 0
    while True:
        chunk = await branch.read(CHUNK_SIZE)
        if not chunk:
            return dropped
        dropped += len(chunk)
