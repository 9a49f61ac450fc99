"""Pytest configuration and fixtures."""

import stat
import sys
from pathlib import Path

import pytest

# Add src to path (for 'sevenspawn.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))

from sevenspawn.core.log_bus import get_log_bus  # noqa: E402
from sevenspawn.core.logging import VerbosityLevel, set_colors, set_verbosity  # noqa: E402


# Stand-in for 7za. Switches (anything starting with '-') are ignored; the
# first remaining word picks a behaviour, the rest are its parameters.
FAKE_ARCHIVER = """\
import json
import os
import signal
import subprocess
import sys
import time

words = [a for a in sys.argv[1:] if not a.startswith("-")]
mode, params = (words[0], words[1:]) if words else ("noop", [])

if mode == "argv":
    print(json.dumps(sys.argv[1:]))
elif mode == "echo":
    for word in params:
        print(word)
elif mode == "exit":
    print("bye", flush=True)
    sys.exit(int(params[0]))
elif mode == "stderr":
    sys.stderr.write("oops\\n")
    sys.stderr.flush()
    print("out")
elif mode == "big":
    sys.stdout.write("x" * int(params[0]))
elif mode == "cwd":
    print(os.getcwd())
elif mode == "env":
    print(os.environ.get(params[0], ""))
elif mode == "stdin":
    print("EMPTY" if sys.stdin.read() == "" else "DATA")
elif mode == "sleep":
    print("ready", flush=True)
    time.sleep(float(params[0]))
elif mode == "ignore-int":
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    print("ready", flush=True)
    time.sleep(float(params[0]))
elif mode in ("orphan", "orphan-hang"):
    # Leave a child behind that inherits stdout and stderr.
    if mode == "orphan-hang":
        signal.signal(signal.SIGINT, signal.SIG_IGN)
    code = f"import time; time.sleep({float(params[0])})"
    child = subprocess.Popen([sys.executable, "-c", code])
    print("child", child.pid, flush=True)
    if mode == "orphan-hang":
        time.sleep(30)
elif mode == "kill-self":
    os.kill(os.getpid(), signal.SIGTERM)
    time.sleep(5)
"""


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep verbosity and LogBus subscribers from leaking between tests."""
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(False)
    get_log_bus().clear()
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)
    get_log_bus().clear()


@pytest.fixture
def fake_archiver(tmp_path):
    """Executable script standing in for the archiver binary.

    Returns:
        Path to the script
    """
    script = tmp_path / "fake7za"
    script.write_text(f"#!{sys.executable}\n" + FAKE_ARCHIVER)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def isolated_resolver(tmp_path):
    """ConfigResolver that ignores the machine's real config files."""
    from sevenspawn.core.config import ConfigResolver

    def _make(**cli_args):
        return ConfigResolver(
            cli_args=cli_args,
            user_config_path=tmp_path / "no-user.yaml",
            system_config_path=tmp_path / "no-system.yaml",
        )

    return _make
