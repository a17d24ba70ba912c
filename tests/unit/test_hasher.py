"""Tests for hashing helpers."""

from __future__ import annotations

from formulary.core.hasher import (
    canonical_json_bytes,
    content_address,
    digests_match,
    sha256_hex,
    strip_address,
)

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestHasher:
    def test_sha256_of_empty(self):
        assert sha256_hex(b"") == EMPTY_SHA256

    def test_canonical_json_is_key_order_independent(self):
        assert canonical_json_bytes({"b": 1, "a": 2}) == canonical_json_bytes({"a": 2, "b": 1})
        assert canonical_json_bytes({"a": 1}) == b'{"a":1}'

    def test_content_address_prefix(self):
        assert content_address({"name": "netfetch"}).startswith("sha256:")

    def test_strip_address(self):
        assert strip_address("sha256:ABC") == "abc"
        assert strip_address("abc") == "abc"

    def test_digests_match(self):
        assert digests_match(EMPTY_SHA256, b"") == (True, EMPTY_SHA256)
        assert digests_match("sha256:" + EMPTY_SHA256.upper(), b"") == (True, EMPTY_SHA256)

    def test_digest_mismatch_reports_actual(self):
        matches, actual = digests_match(EMPTY_SHA256, b"x")
        assert matches is False
        assert actual == sha256_hex(b"x")
