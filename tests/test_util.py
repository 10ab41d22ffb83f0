"""Tests for pattern matching and checksums."""

from __future__ import annotations

import hashlib

import pytest

from changecontrol.util import compile_pattern, compute_checksum, escape_for_pattern, matches_pattern


class TestMatchesPattern:
    @pytest.mark.parametrize(
        "value,pattern",
        [
            ("a", ""),
            ("a", "*"),
            ("a", "a"),
            ("a", "a*"),
            ("ab", "a*"),
            ("a:b", "a*"),
            ("a:b:c", "a:*:c"),
            ("a:b:c:d:e", "a:*:c:*:e"),
            ("-", "-"),
            ("a^", "a^"),
            ("v1.0", "v1.0"),
            ("(x)", "(x)"),
        ],
    )
    def test_matches(self, value: str, pattern: str):
        assert matches_pattern(value, pattern)

    @pytest.mark.parametrize(
        "value,pattern",
        [
            ("a", "b"),
            ("ba", "a*"),
            ("a:b:c", "a:*:d"),
            ("a:b:d", "a:*:c"),
            ("v1x0", "v1.0"),
            ("aa", "a"),
        ],
    )
    def test_does_not_match(self, value: str, pattern: str):
        assert not matches_pattern(value, pattern)

    def test_none_behaves_like_wildcard(self):
        assert matches_pattern("anything", None)

    def test_pattern_is_anchored(self):
        regex = compile_pattern("a:*")
        assert regex.pattern.startswith("^")
        assert regex.pattern.endswith("$")


class TestEscapeForPattern:
    def test_escapes_metacharacters_but_not_wildcard(self):
        assert escape_for_pattern("a.b*c") == r"a\.b*c"
        assert escape_for_pattern("x^$") == r"x\^\$"

    def test_plain_text_unchanged(self):
        assert escape_for_pattern("release:init") == "release:init"


class TestComputeChecksum:
    def test_text_is_sha256_of_utf8(self):
        assert compute_checksum("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_bytes_hashed_raw(self):
        assert compute_checksum(b"\x00\x01") == hashlib.sha256(b"\x00\x01").hexdigest()

    def test_mapping_key_order_is_irrelevant(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_different_content_differs(self):
        assert compute_checksum({"version": 1}) != compute_checksum({"version": 2})
