"""Final argument vector for the archiver.

Output routing is owned here, not by callers: any ``-bs*`` switch a caller
passes is dropped and replaced by the fixed routing below, so the launcher
always knows which native channel carries what.
"""

from __future__ import annotations

from collections.abc import Sequence

ASSUME_YES_FLAG = "-y"
OUTPUT_ROUTING_PREFIX = "-bs"
OUTPUT_ROUTING_FLAGS = (
    "-bso1",  # standard output messages -> stdout
    "-bse1",  # error messages -> stdout
    "-bsp2",  # progress information -> stderr
)


def build_args(args: Sequence[str], cli: bool = False) -> list[str]:
    """Normalize caller arguments.

    Args:
        args: Raw archiver arguments (command, archive, files, switches)
        cli: Interactive mode; confirmation prompts are left to the caller

    Returns:
        New argument list; ``args`` is not modified
    """
    result = list(args)
    if not cli and ASSUME_YES_FLAG not in result:
        result.insert(0, ASSUME_YES_FLAG)

    result = [arg for arg in result if not arg.startswith(OUTPUT_ROUTING_PREFIX)]
    result.extend(OUTPUT_ROUTING_FLAGS)
    return result
