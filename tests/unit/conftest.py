from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import pytest


def _load_fakes() -> tuple[type, type]:
    """Load fakes without turning tests/ into an importable package."""

    p = Path(__file__).resolve().parent.parent / "fakes" / "fake_process.py"
    spec = importlib.util.spec_from_file_location("_sevenspawn_test_fakes_process", p)
    assert spec and spec.loader
    mod = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = mod
    spec.loader.exec_module(mod)
    return mod.FakeProcess, mod.ChattyProcess


FakeProcess, ChattyProcess = _load_fakes()


@pytest.fixture()
def fake_process():
    """Factory for scriptable process handles."""
    return FakeProcess


@pytest.fixture()
def chatty_process():
    """Factory for handles that report exit repeatedly."""
    return ChattyProcess
