"""Tests for argument normalization."""

from __future__ import annotations

from sevenspawn.core.args import ASSUME_YES_FLAG, OUTPUT_ROUTING_FLAGS, build_args


class TestBuildArgs:
    """Tests for build_args()."""

    def test_non_interactive_add(self):
        """Non-interactive runs get -y first and the routing flags last."""
        result = build_args(["add", "archive.7z", "file.txt"])
        assert result == ["-y", "add", "archive.7z", "file.txt", "-bso1", "-bse1", "-bsp2"]

    def test_existing_assume_yes_not_duplicated(self):
        result = build_args(["x", "-y", "archive.7z"])
        assert result.count(ASSUME_YES_FLAG) == 1
        assert result[:3] == ["x", "-y", "archive.7z"]

    def test_interactive_keeps_confirmation_behaviour(self):
        result = build_args(["d", "archive.7z", "old.txt"], cli=True)
        assert ASSUME_YES_FLAG not in result
        assert result == ["d", "archive.7z", "old.txt", *OUTPUT_ROUTING_FLAGS]

    def test_interactive_keeps_caller_assume_yes(self):
        result = build_args(["-y", "t", "archive.7z"], cli=True)
        assert result[0] == "-y"

    def test_reserved_prefix_stripped(self):
        """Caller -bs* switches never survive; the fixed routing wins."""
        result = build_args(["a", "-bso0", "out.7z", "-bsp1", "-bse2", "-bb3"])
        assert result == ["-y", "a", "out.7z", "-bb3", *OUTPUT_ROUTING_FLAGS]

    def test_always_ends_with_exactly_one_routing_block(self):
        raw = ["a", "-bso1", "-bse1", "-bsp2", "-bso1", "x.7z"]
        result = build_args(raw)
        assert tuple(result[-3:]) == OUTPUT_ROUTING_FLAGS
        assert sum(1 for a in result if a.startswith("-bs")) == 3

    def test_idempotent(self):
        once = build_args(["add", "archive.7z", "file.txt"])
        assert build_args(once) == once
        assert build_args(build_args(once)) == once

    def test_input_not_mutated(self):
        raw = ["add", "-bsp1", "archive.7z"]
        build_args(raw)
        assert raw == ["add", "-bsp1", "archive.7z"]

    def test_empty(self):
        assert build_args([]) == ["-y", *OUTPUT_ROUTING_FLAGS]
        assert build_args([], cli=True) == list(OUTPUT_ROUTING_FLAGS)
