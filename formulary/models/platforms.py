"""Platform models — the (operating system, architecture) pair a descriptor targets."""

from __future__ import annotations

import platform as _host
from enum import Enum

from pydantic import BaseModel, ConfigDict


class OperatingSystem(str, Enum):
    """Operating systems a release archive can be built for."""

    DARWIN = "darwin"
    LINUX = "linux"
    WINDOWS = "windows"

    @property
    def display_name(self) -> str:
        return _OS_DISPLAY_NAMES[self]


class Architecture(str, Enum):
    """CPU architectures a release archive can be built for."""

    AMD64 = "amd64"
    ARM64 = "arm64"


_OS_DISPLAY_NAMES: dict[OperatingSystem, str] = {
    OperatingSystem.DARWIN: "macOS",
    OperatingSystem.LINUX: "Linux",
    OperatingSystem.WINDOWS: "Windows",
}

# Accepted spellings, lower-cased.  Release artifacts use the Go names.
_OS_ALIASES: dict[str, OperatingSystem] = {
    "darwin": OperatingSystem.DARWIN,
    "macos": OperatingSystem.DARWIN,
    "mac": OperatingSystem.DARWIN,
    "osx": OperatingSystem.DARWIN,
    "linux": OperatingSystem.LINUX,
    "windows": OperatingSystem.WINDOWS,
    "win32": OperatingSystem.WINDOWS,
}

_ARCH_ALIASES: dict[str, Architecture] = {
    "amd64": Architecture.AMD64,
    "x86_64": Architecture.AMD64,
    "x64": Architecture.AMD64,
    "arm64": Architecture.ARM64,
    "aarch64": Architecture.ARM64,
}


def parse_os(value: str) -> OperatingSystem:
    """Parse an operating system name or alias.  Raises ValueError if unknown."""
    try:
        return _OS_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown operating system: {value!r}") from None


def parse_arch(value: str) -> Architecture:
    """Parse an architecture name or alias.  Raises ValueError if unknown."""
    try:
        return _ARCH_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown architecture: {value!r}") from None


class Platform(BaseModel):
    """An operating system + architecture pair.

    Hashable and ordered by its string form so it can key the descriptor
    catalog and sort stably in listings.
    """

    model_config = ConfigDict(frozen=True)

    os: OperatingSystem
    arch: Architecture

    @classmethod
    def parse(cls, os_name: str, arch_name: str) -> Platform:
        return cls(os=parse_os(os_name), arch=parse_arch(arch_name))

    @classmethod
    def from_string(cls, value: str) -> Platform:
        """Parse ``"linux/amd64"`` (``-`` and ``_`` separators also accepted)."""
        for sep in ("/", "-", "_"):
            if sep in value:
                os_name, arch_name = value.split(sep, 1)
                return cls.parse(os_name, arch_name)
        raise ValueError(f"Platform must look like 'os/arch', got {value!r}")

    @property
    def slug(self) -> str:
        """Go-style ``os_arch`` as used in release archive names."""
        return f"{self.os.value}_{self.arch.value}"

    def __str__(self) -> str:
        return f"{self.os.value}/{self.arch.value}"

    def __lt__(self, other: Platform) -> bool:
        return str(self) < str(other)


def detect_platform() -> Platform:
    """Return the platform of the running host.

    Raises ValueError when the host OS or machine type has no
    corresponding enum member.
    """
    return Platform.parse(_host.system(), _host.machine())
