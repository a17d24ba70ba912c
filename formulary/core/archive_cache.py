"""Content-addressed cache of verified release archives.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
Only bytes that already passed verification are stored, and every read
re-hashes the file, so a corrupted cache entry is a miss rather than a
silent install.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from formulary.core.hasher import sha256_hex, strip_address

logger = logging.getLogger(__name__)


class ArchiveCache:
    """SHA-256 keyed, write-once archive store.

    Storing the same content twice is a no-op.  Entries that fail
    re-verification are discarded on read.

    Parameters
    ----------
    base_path:
        Root directory for cached archives.  Created lazily on first store.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base

    def _archive_path(self, sha256_digest: str) -> Path:
        """Layout: {base}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat"""
        return self._base / sha256_digest[:2] / sha256_digest[2:4] / f"{sha256_digest}.dat"

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store(self, data: bytes) -> str:
        """Store verified archive bytes; return their ``sha256:<hex>`` address.

        Cache write failures are logged and otherwise ignored: the cache
        is an optimisation, the install does not depend on it.
        """
        digest = sha256_hex(data)
        path = self._archive_path(digest)
        if path.exists() and self.verify(digest):
            return f"sha256:{digest}"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Could not cache archive %s: %s", digest[:16], exc)
        else:
            logger.debug("Cached archive %s (%d bytes).", digest[:16], len(data))
        return f"sha256:{digest}"

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, content_address: str) -> bytes | None:
        """Return cached bytes for a digest, or None on a miss.

        A present but corrupted entry is removed and reported as a miss.
        """
        digest = strip_address(content_address)
        path = self._archive_path(digest)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read cache entry %s: %s", digest[:16], exc)
            return None
        if sha256_hex(data) != digest:
            logger.warning("Discarding corrupted cache entry %s.", digest[:16])
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Cannot remove cache entry %s: %s", digest[:16], exc)
            return None
        return data

    # ------------------------------------------------------------------
    # Check and verify
    # ------------------------------------------------------------------

    def exists(self, content_address: str) -> bool:
        return self._archive_path(strip_address(content_address)).exists()

    def verify(self, content_address: str) -> bool:
        """Re-hash stored data and compare against the content address."""
        digest = strip_address(content_address)
        path = self._archive_path(digest)
        try:
            data = path.read_bytes()
        except OSError:
            return False
        return sha256_hex(data) == digest
