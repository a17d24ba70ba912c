"""Descriptor catalog — the superseding log behind ``resolve``.

Formula revisions are appended in publication order.  Each revision's
descriptors are keyed by (version, platform); a later revision for the
same key replaces the earlier descriptor, so at most one descriptor per
pair is ever active.  Resolution is a pure lookup: it never touches the
network and never falls back to a different version.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from formulary.core.errors import UnknownVersion, UnsupportedPlatform
from formulary.models.manifest import (
    ArtifactDescriptor,
    InstallManifest,
    ManifestRevision,
    normalize_version,
    version_key,
)
from formulary.models.platforms import Platform, detect_platform

logger = logging.getLogger(__name__)


class DescriptorCatalog:
    """Ordered map of (version, platform) -> ArtifactDescriptor.

    Parameters
    ----------
    default_smoke_test_args:
        Smoke-test arguments used for versions whose revision carries no
        override.
    """

    def __init__(self, default_smoke_test_args: Iterable[str] = ("--version",)) -> None:
        self._descriptors: dict[tuple[str, Platform], ArtifactDescriptor] = {}
        self._smoke_args: dict[str, list[str]] = {}
        self._default_smoke_args = list(default_smoke_test_args)

    @classmethod
    def from_manifest(cls, manifest: InstallManifest) -> DescriptorCatalog:
        catalog = cls(manifest.smoke_test_args)
        for revision in manifest.revision_log():
            catalog.append(revision)
        return catalog

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    def append(self, revision: ManifestRevision) -> list[ArtifactDescriptor]:
        """Append a revision, superseding descriptors with the same key.

        Returns the descriptors that were replaced.
        """
        superseded: list[ArtifactDescriptor] = []
        for descriptor in revision.descriptors():
            previous = self._descriptors.pop(descriptor.key, None)
            if previous is not None and previous != descriptor:
                logger.debug(
                    "Descriptor for %s on %s superseded (%s -> %s).",
                    descriptor.version,
                    descriptor.platform,
                    previous.content_hash[:12],
                    descriptor.content_hash[:12],
                )
                superseded.append(previous)
            self._descriptors[descriptor.key] = descriptor
        if revision.smoke_test_args is not None:
            self._smoke_args[revision.version] = list(revision.smoke_test_args)
        return superseded

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def resolve(
        self, version: str | None = None, platform: Platform | None = None
    ) -> ArtifactDescriptor:
        """Map (version, platform) to its single published descriptor.

        ``version=None`` means the latest published version;
        ``platform=None`` means the running host.

        Raises
        ------
        UnknownVersion
            The version has no descriptor on any platform.
        UnsupportedPlatform
            The version is published, but not for this platform.
        """
        if version is None:
            version = self.latest_version()
        else:
            version = self._published(version, platform)

        if platform is None:
            try:
                platform = detect_platform()
            except ValueError as exc:
                raise UnsupportedPlatform(
                    f"Host platform is not supported: {exc}",
                    version=version,
                    cause=exc,
                ) from exc

        descriptor = self._descriptors.get((version, platform))
        if descriptor is None:
            supported = ", ".join(str(p) for p in self.platforms_for(version))
            raise UnsupportedPlatform(
                f"Version {version} has no archive for {platform}. "
                f"Supported: {supported}",
                version=version,
                platform=platform,
            )
        return descriptor

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def versions(self) -> list[str]:
        """Published versions, ascending."""
        return sorted({v for v, _ in self._descriptors}, key=version_key)

    def latest_version(self) -> str:
        versions = self.versions()
        if not versions:
            raise UnknownVersion("No versions are published")
        return versions[-1]

    def platforms_for(self, version: str) -> list[Platform]:
        version = normalize_version(version)
        return sorted(p for v, p in self._descriptors if v == version)

    def descriptors(self) -> list[ArtifactDescriptor]:
        """All active descriptors, ordered by version then platform."""
        return sorted(
            self._descriptors.values(),
            key=lambda d: (version_key(d.version), str(d.platform)),
        )

    def smoke_test_args_for(self, version: str) -> list[str]:
        """Smoke-test arguments for a published version.

        Raises ``UnknownVersion`` for malformed or unpublished versions.
        """
        version = self._published(version)
        return list(self._smoke_args.get(version, self._default_smoke_args))

    def _published(self, version: str, platform: Platform | None = None) -> str:
        try:
            normalized = normalize_version(version)
        except ValueError as exc:
            raise UnknownVersion(
                f"{version!r} is not a published version",
                version=version,
                platform=platform,
                cause=exc,
            ) from exc
        if normalized not in self.versions():
            raise UnknownVersion(
                f"Version {normalized} is not published. "
                f"Available: {', '.join(self.versions()) or 'none'}",
                version=normalized,
                platform=platform,
            )
        return normalized

    def __len__(self) -> int:
        return len(self._descriptors)
