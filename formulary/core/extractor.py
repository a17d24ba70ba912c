"""Archive extraction — pull the single executable out of a release archive.

Archives are read entirely in memory; member paths are never written to
disk, so traversal entries cannot escape anywhere.  The executable is the
one regular file named like the installed binary; if the archive has no
such file, the one regular file with an executable mode bit.  Zero or
several candidates is a malformed archive.
"""

from __future__ import annotations

import io
import logging
import stat
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import PurePosixPath

from formulary.core.errors import MalformedArchive

logger = logging.getLogger(__name__)

_EXEC_BITS = 0o111


class _Member:
    __slots__ = ("name", "mode", "read")

    def __init__(self, name: str, mode: int, read: Callable[[], bytes]) -> None:
        self.name = name
        self.mode = mode
        self.read = read

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name.replace("\\", "/")).name


def _tar_members(data: bytes) -> list[_Member]:
    archive = tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
    members: list[_Member] = []
    for info in archive.getmembers():
        if not info.isfile():
            continue

        def _read(info: tarfile.TarInfo = info) -> bytes:
            handle = archive.extractfile(info)
            if handle is None:
                raise MalformedArchive(f"Cannot read archive member {info.name}")
            return handle.read()

        members.append(_Member(info.name, info.mode, _read))
    return members


def _zip_members(data: bytes) -> list[_Member]:
    archive = zipfile.ZipFile(io.BytesIO(data))
    members: list[_Member] = []
    for info in archive.infolist():
        if info.is_dir():
            continue
        st_mode = info.external_attr >> 16
        # Entries from non-Unix tools carry no type bits
        if stat.S_IFMT(st_mode) and not stat.S_ISREG(st_mode):
            continue
        mode = stat.S_IMODE(st_mode)
        members.append(_Member(info.filename, mode, lambda info=info: archive.read(info)))
    return members


def _open(data: bytes) -> list[_Member]:
    try:
        if zipfile.is_zipfile(io.BytesIO(data)):
            return _zip_members(data)
        return _tar_members(data)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as exc:
        raise MalformedArchive(f"Unreadable archive: {exc}", cause=exc) from exc


def extract_executable(data: bytes, binary_name: str) -> bytes:
    """Return the bytes of the single executable inside ``data``.

    Raises
    ------
    MalformedArchive
        The archive cannot be read, or it holds zero or several
        candidate executables.
    """
    members = _open(data)

    candidates = [m for m in members if m.basename == binary_name]
    if not candidates:
        candidates = [m for m in members if m.mode & _EXEC_BITS]

    if not candidates:
        contents = ", ".join(m.name for m in members) or "no regular files"
        raise MalformedArchive(
            f"Expected exactly one '{binary_name}' executable in archive, "
            f"found 0 (archive holds: {contents})"
        )
    if len(candidates) > 1:
        found = ", ".join(m.name for m in candidates)
        raise MalformedArchive(
            f"Expected exactly one '{binary_name}' executable in archive, "
            f"found {len(candidates)} ({found})"
        )

    member = candidates[0]
    try:
        payload = member.read()
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as exc:
        raise MalformedArchive(
            f"Cannot read archive member {member.name}: {exc}", cause=exc
        ) from exc

    if not payload:
        raise MalformedArchive(f"Archive member {member.name} is empty")

    logger.debug("Extracted %s (%d bytes).", member.name, len(payload))
    return payload
