"""sevenspawn - package entry point.

    python -m sevenspawn [options] -- <archiver arguments>

Runs the configured archiver, relays its primary output to stdout and
reports abnormal exits on stderr. Ctrl-C interrupts the archiver and kills
it if it does not stop within terminate.timeout_ms.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any

from sevenspawn.core.config import ConfigResolver
from sevenspawn.core.errors import ConfigError, ProgramError
from sevenspawn.core.launcher import IS_WINDOWS, SpawnOptions, spawn_archiver
from sevenspawn.core.logging import get_logger, set_colors, set_verbosity
from sevenspawn.core.terminator import terminate_gracefully
from sevenspawn.core.watcher import watch_process

log = get_logger("sevenspawn")

EXIT_INTERRUPTED = 130
EXIT_NOT_STARTED = 127


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sevenspawn",
        description="Run a 7-Zip style archiver and report how it ended.",
    )
    parser.add_argument(
        "--cli", action="store_true", help="interactive: inherit stdin, do not force -y"
    )
    parser.add_argument("--cwd", default=None, help="working directory for the archiver")
    parser.add_argument(
        "--program", default=None, help="archiver executable (config: archiver.path)"
    )
    parser.add_argument(
        "--timeout-ms", type=int, default=None, help="grace period before kill on Ctrl-C"
    )
    parser.add_argument("--no-color", action="store_true", help="disable coloured log output")
    level = parser.add_mutually_exclusive_group()
    level.add_argument(
        "-v", "--verbose", action="count", default=0, help="more logging (-vv for debug)"
    )
    level.add_argument("-q", "--quiet", action="store_true", help="warnings and errors only")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="arguments passed to the archiver")
    return parser


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if ns.program:
        overrides["archiver.path"] = ns.program
    if ns.timeout_ms is not None:
        overrides["terminate.timeout_ms"] = ns.timeout_ms
    if ns.no_color:
        overrides["logging.color"] = False
    if ns.quiet:
        overrides["logging.level"] = "quiet"
    elif ns.verbose:
        overrides["logging.level"] = "debug" if ns.verbose > 1 else "verbose"
    return overrides


async def main(argv: list[str] | None = None) -> int:
    """Run once; returns the process exit code to use."""
    ns = build_parser().parse_args(argv)
    args = ns.args[1:] if ns.args[:1] == ["--"] else ns.args

    resolver = ConfigResolver(cli_args=_cli_overrides(ns))
    try:
        set_verbosity(resolver.resolve_logging_level())
        set_colors(resolver.resolve_logging_color())
        timeout = resolver.resolve_terminate_timeout()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        launch = spawn_archiver(
            args, cli=ns.cli, options=SpawnOptions(cwd=ns.cwd), resolver=resolver
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    process = await launch.execute()
    completion = watch_process(process, launch.commandline, launch.cwd)
    relay = asyncio.create_task(launch.stdout.pipe_to(sys.stdout.buffer))

    interrupted = False
    stopping: list[asyncio.Future[None]] = []

    def _on_sigint() -> None:
        nonlocal interrupted
        if interrupted:
            return
        interrupted = True
        log.info("interrupted; stopping archiver")
        stopping.append(terminate_gracefully(process, timeout))

    loop = asyncio.get_running_loop()
    if not IS_WINDOWS:
        loop.add_signal_handler(signal.SIGINT, _on_sigint)

    try:
        await completion
    except ProgramError as e:
        print(f"Error: {e}", file=sys.stderr)
        if interrupted:
            return EXIT_INTERRUPTED
        return e.status if e.status else 1
    except OSError as e:
        print(f"Error: cannot start {launch.program}: {e}", file=sys.stderr)
        return EXIT_NOT_STARTED
    finally:
        if not IS_WINDOWS:
            loop.remove_signal_handler(signal.SIGINT)
        await asyncio.gather(*stopping)
        await relay

    return EXIT_INTERRUPTED if interrupted else 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
