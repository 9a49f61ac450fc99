"""sevenspawn - run a 7-Zip style archiver as a managed child process."""

__version__ = "1.0.0"

from sevenspawn.core import (
    ConfigResolver,
    Failure,
    LaunchDescriptor,
    ProgramError,
    RunningProcess,
    SpawnOptions,
    Success,
    build_args,
    classify_status,
    spawn_archiver,
    terminate_gracefully,
    watch_process,
)
from sevenspawn.runner import run_archiver

__all__ = [
    "ConfigResolver",
    "Failure",
    "LaunchDescriptor",
    "ProgramError",
    "RunningProcess",
    "SpawnOptions",
    "Success",
    "build_args",
    "classify_status",
    "run_archiver",
    "spawn_archiver",
    "terminate_gracefully",
    "watch_process",
]
