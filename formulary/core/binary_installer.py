"""Binary placement — atomic write, advisory lock, commit or rollback.

The executable is written to a temporary file in the target directory,
flushed to disk, marked executable, then renamed over the target, so a
reader never observes a half-written binary.  The binary it replaces is
kept as a backup until the caller commits, which lets a failed smoke
test restore the previous install.

Concurrent installs to the same path are serialised with a lock file
(``.<name>.lock``) beside the target.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path

from filelock import FileLock, Timeout

from formulary.core.errors import InstallFailed
from formulary.core.hasher import sha256_hex
from formulary.models.install import InstalledBinary

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


def lock_path_for(target: Path) -> Path:
    return target.with_name(f".{target.name}.lock")


@contextlib.contextmanager
def target_lock(target: Path, timeout: float = 60.0) -> Iterator[Path]:
    """Hold the advisory lock for ``target`` for the duration of the block.

    Raises ``InstallFailed`` if the directory cannot be created or the
    lock is not acquired within ``timeout`` seconds.
    """
    lock_file = lock_path_for(target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InstallFailed(
            f"Cannot create install directory {target.parent}", cause=exc
        ) from exc

    lock = FileLock(str(lock_file), timeout=timeout)
    try:
        lock.acquire()
    except Timeout as exc:
        raise InstallFailed(
            f"Timed out after {timeout}s waiting for install lock {lock_file}",
            cause=exc,
        ) from exc
    except OSError as exc:
        raise InstallFailed(f"Cannot create install lock {lock_file}", cause=exc) from exc

    try:
        yield lock_file
    finally:
        lock.release()


class BinaryInstaller:
    """Writes executables into place.  Callers hold ``target_lock`` around use."""

    def install(self, executable: bytes, target: Path) -> InstalledBinary:
        """Atomically place ``executable`` at ``target`` with mode 0755.

        Re-installing identical bytes leaves the same file behind.  Raises
        ``InstallFailed`` on any filesystem error; no temporary file is
        left behind.
        """
        target = Path(target)
        if target.is_dir():
            raise InstallFailed(f"Install target {target} is a directory")

        backup = self._backup_existing(target)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(executable)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, EXECUTABLE_MODE)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as exc:
            if backup is not None:
                backup.unlink(missing_ok=True)
            raise InstallFailed(f"Cannot write {target}: {exc}", cause=exc) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.info("Installed %s (%d bytes).", target, len(executable))
        return InstalledBinary(
            target_path=target,
            sha256=sha256_hex(executable),
            size_bytes=len(executable),
            backup_path=backup,
        )

    def commit(self, installed: InstalledBinary) -> None:
        """Discard the backup of the replaced binary."""
        if installed.backup_path is not None:
            installed.backup_path.unlink(missing_ok=True)

    def rollback(self, installed: InstalledBinary) -> None:
        """Restore the previous binary, or remove the new one if there was none."""
        target = installed.target_path
        if installed.backup_path is not None and installed.backup_path.exists():
            os.replace(installed.backup_path, target)
            logger.warning("Rolled back %s to the previously installed binary.", target)
        else:
            target.unlink(missing_ok=True)
            logger.warning("Rolled back %s: removed the new binary.", target)

    @staticmethod
    def _backup_existing(target: Path) -> Path | None:
        if not target.exists():
            return None
        backup = target.with_name(f".{target.name}.previous")
        try:
            shutil.copy2(target, backup)
        except OSError as exc:
            raise InstallFailed(
                f"Cannot back up existing binary {target}", cause=exc
            ) from exc
        return backup
