"""Canonical hashing helpers for integrity checks and content addressing."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: sorted keys, compact separators."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def strip_address(content_address: str) -> str:
    """Strip the ``sha256:`` prefix from a content address, if present."""
    return content_address.removeprefix("sha256:").lower()


def content_address(obj: Any) -> str:
    """Content-address a JSON-serializable object as ``sha256:<hex>``."""
    return f"sha256:{sha256_hex(canonical_json_bytes(obj))}"


def digests_match(expected: str, data: bytes) -> tuple[bool, str]:
    """Hash ``data`` and compare it with ``expected`` in constant time.

    Returns ``(matches, actual_hex)``.
    """
    actual = sha256_hex(data)
    return hmac.compare_digest(strip_address(expected), actual), actual
