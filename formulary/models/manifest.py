"""Install manifest models — the formula a release binary is installed from.

A manifest binds a tool's metadata to per-platform release archives.  The
wire format is camelCase JSON (``installedBinaryName``, ``smokeTestArgs``);
snake_case field names are accepted as well.

Descriptors are immutable once published: the SHA-256 pins the archive
bytes permanently.  A newer revision for the same (version, platform)
replaces the older descriptor, it never accumulates next to it.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from formulary.models.platforms import Architecture, OperatingSystem, Platform

_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
_SHA256_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def normalize_version(value: str) -> str:
    """Strip whitespace and a leading ``v`` tag prefix; enforce MAJOR.MINOR.PATCH."""
    version = value.strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    if not _VERSION_PATTERN.match(version):
        raise ValueError(f"Not a semantic version: {value!r}")
    return version


def version_key(version: str) -> tuple[int, ...]:
    """Sort key for semantic versions (``0.5.3`` < ``5.2.5``)."""
    return tuple(int(part) for part in normalize_version(version).split("."))


def _normalize_sha256(value: str) -> str:
    digest = value.strip().lower().removeprefix("sha256:")
    if not _SHA256_PATTERN.match(digest):
        raise ValueError("sha256 must be a 64-character hexadecimal digest")
    return digest


class ArtifactDescriptor(BaseModel):
    """Binds one version and platform to a download location and its hash."""

    model_config = ConfigDict(frozen=True)

    version: str
    platform: Platform
    url: str
    content_hash: str  # SHA-256 hex of the archive bytes

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return normalize_version(value)

    @field_validator("content_hash")
    @classmethod
    def _check_hash(cls, value: str) -> str:
        return _normalize_sha256(value)

    @property
    def key(self) -> tuple[str, Platform]:
        return (self.version, self.platform)

    @property
    def archive_name(self) -> str:
        """Last path segment of the URL, e.g. ``netfetch_5.2.5_linux_amd64.tar.gz``."""
        return self.url.rstrip("/").rsplit("/", 1)[-1]


class PlatformArtifact(BaseModel):
    """A ``{os, arch, url, sha256}`` record as it appears in a manifest file."""

    model_config = ConfigDict(frozen=True)

    os: OperatingSystem
    arch: Architecture
    url: str = Field(min_length=1)
    sha256: str

    @field_validator("sha256")
    @classmethod
    def _check_sha256(cls, value: str) -> str:
        return _normalize_sha256(value)

    @property
    def platform(self) -> Platform:
        return Platform(os=self.os, arch=self.arch)


class ManifestRevision(BaseModel):
    """One published formula revision: a version and its per-platform archives.

    ``smoke_test_args`` overrides the manifest-level arguments for this
    version (the early releases answered to ``--version``, later ones to
    the ``version`` subcommand).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str
    platforms: list[PlatformArtifact] = Field(min_length=1)
    smoke_test_args: list[str] | None = Field(default=None, alias="smokeTestArgs")

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return normalize_version(value)

    def descriptors(self) -> Iterator[ArtifactDescriptor]:
        for artifact in self.platforms:
            yield ArtifactDescriptor(
                version=self.version,
                platform=artifact.platform,
                url=artifact.url,
                content_hash=artifact.sha256,
            )


class InstallManifest(BaseModel):
    """The current, authoritative install record for a tool.

    ``version`` and ``platforms`` describe the current revision.
    ``revisions`` keeps earlier revisions, oldest first, so older releases
    stay resolvable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    homepage: str = Field(min_length=1)
    version: str
    platforms: list[PlatformArtifact] = Field(min_length=1)
    installed_binary_name: str = Field(min_length=1, alias="installedBinaryName")
    smoke_test_args: list[str] = Field(
        default_factory=lambda: ["--version"], alias="smokeTestArgs"
    )
    revisions: list[ManifestRevision] = Field(default_factory=list)

    @field_validator("name", "description", "homepage", "installed_binary_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return normalize_version(value)

    @property
    def current_revision(self) -> ManifestRevision:
        return ManifestRevision(
            version=self.version,
            platforms=self.platforms,
            smoke_test_args=self.smoke_test_args,
        )

    def revision_log(self) -> list[ManifestRevision]:
        """All revisions in publication order, the current one last."""
        return [*self.revisions, self.current_revision]
