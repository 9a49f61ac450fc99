"""sevenspawn core: launching an archiver and reporting how it ended."""

from sevenspawn.core.args import (
    ASSUME_YES_FLAG,
    OUTPUT_ROUTING_FLAGS,
    OUTPUT_ROUTING_PREFIX,
    build_args,
)
from sevenspawn.core.config import ConfigResolver, ConfigSource
from sevenspawn.core.errors import ConfigError, LaunchError, ProgramError, SevenSpawnError
from sevenspawn.core.events import ProcessEvents
from sevenspawn.core.launcher import LaunchDescriptor, RunningProcess, SpawnOptions, spawn_archiver
from sevenspawn.core.logging import (
    VerbosityLevel,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)
from sevenspawn.core.status import Failure, ProcessOutcome, Success, classify_status
from sevenspawn.core.streams import StreamBranch, Tee
from sevenspawn.core.terminator import terminate_gracefully
from sevenspawn.core.watcher import CompletionWatcher, watch_process

__all__ = [
    # Arguments
    "ASSUME_YES_FLAG",
    "OUTPUT_ROUTING_FLAGS",
    "OUTPUT_ROUTING_PREFIX",
    "build_args",
    # Launch
    "LaunchDescriptor",
    "RunningProcess",
    "SpawnOptions",
    "spawn_archiver",
    "ProcessEvents",
    "StreamBranch",
    "Tee",
    # Outcome
    "CompletionWatcher",
    "Failure",
    "ProcessOutcome",
    "Success",
    "classify_status",
    "watch_process",
    "terminate_gracefully",
    # Errors
    "SevenSpawnError",
    "ConfigError",
    "LaunchError",
    "ProgramError",
    # Config / logging
    "ConfigResolver",
    "ConfigSource",
    "VerbosityLevel",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
]
