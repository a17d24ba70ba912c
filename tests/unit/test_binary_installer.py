"""Tests for BinaryInstaller — atomic placement, backup, rollback, locking."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest
from filelock import FileLock

from formulary.core.binary_installer import (
    EXECUTABLE_MODE,
    BinaryInstaller,
    lock_path_for,
    target_lock,
)
from formulary.core.errors import InstallFailed
from formulary.core.hasher import sha256_hex


@pytest.fixture
def target(tmp_dir: Path) -> Path:
    path = tmp_dir / "bin" / "netfetch"
    path.parent.mkdir()
    return path


class TestInstall:
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX file modes")
    def test_writes_executable(self, target: Path):
        installed = BinaryInstaller().install(b"\x7fELF binary", target)
        assert target.read_bytes() == b"\x7fELF binary"
        assert stat.S_IMODE(target.stat().st_mode) == EXECUTABLE_MODE
        assert installed.sha256 == sha256_hex(b"\x7fELF binary")
        assert installed.size_bytes == len(b"\x7fELF binary")
        assert installed.backup_path is None

    def test_reinstall_is_idempotent(self, target: Path):
        installer = BinaryInstaller()
        first = installer.install(b"same", target)
        installer.commit(first)
        second = installer.install(b"same", target)
        installer.commit(second)
        assert target.read_bytes() == b"same"
        assert first.sha256 == second.sha256

    def test_no_temp_files_left(self, target: Path):
        installer = BinaryInstaller()
        installer.commit(installer.install(b"one", target))
        installer.commit(installer.install(b"two", target))
        assert sorted(p.name for p in target.parent.iterdir()) == ["netfetch"]

    def test_directory_target_rejected(self, target: Path):
        target.mkdir()
        with pytest.raises(InstallFailed, match="is a directory"):
            BinaryInstaller().install(b"x", target)

    def test_missing_directory_is_install_failed(self, tmp_dir: Path):
        with pytest.raises(InstallFailed) as excinfo:
            BinaryInstaller().install(b"x", tmp_dir / "absent" / "netfetch")
        assert isinstance(excinfo.value.cause, OSError)


class TestBackupAndRollback:
    def test_replacing_keeps_backup_until_commit(self, target: Path):
        target.write_bytes(b"old")
        installer = BinaryInstaller()
        installed = installer.install(b"new", target)
        assert installed.backup_path is not None
        assert installed.backup_path.read_bytes() == b"old"

        installer.commit(installed)
        assert not installed.backup_path.exists()
        assert target.read_bytes() == b"new"

    def test_rollback_restores_previous(self, target: Path):
        target.write_bytes(b"old")
        installer = BinaryInstaller()
        installed = installer.install(b"new", target)
        installer.rollback(installed)
        assert target.read_bytes() == b"old"
        assert not installed.backup_path.exists()

    def test_rollback_without_previous_removes_target(self, target: Path):
        installer = BinaryInstaller()
        installed = installer.install(b"new", target)
        installer.rollback(installed)
        assert not target.exists()


class TestTargetLock:
    def test_lock_file_beside_target(self, target: Path):
        assert lock_path_for(target) == target.parent / ".netfetch.lock"

    def test_creates_directory(self, tmp_dir: Path):
        target = tmp_dir / "fresh" / "bin" / "netfetch"
        with target_lock(target, timeout=1.0) as lock_file:
            assert target.parent.is_dir()
            assert lock_file == lock_path_for(target)

    def test_contended_lock_times_out(self, target: Path):
        holder = FileLock(str(lock_path_for(target)))
        with holder:
            with pytest.raises(InstallFailed, match="Timed out"):
                with target_lock(target, timeout=0.05):
                    pass

    def test_lock_released_after_block(self, target: Path):
        with target_lock(target, timeout=1.0):
            pass
        with target_lock(target, timeout=0.05):
            pass
