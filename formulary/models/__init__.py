"""Formulary data models — all Pydantic v2, all frozen (immutable)."""

from formulary.models.install import (
    TERMINAL_STAGES,
    VALID_TRANSITIONS,
    InstallReport,
    InstallStage,
    InstallTransition,
    InstalledBinary,
    SmokeTestResult,
)
from formulary.models.manifest import (
    ArtifactDescriptor,
    InstallManifest,
    ManifestRevision,
    PlatformArtifact,
    normalize_version,
    version_key,
)
from formulary.models.platforms import (
    Architecture,
    OperatingSystem,
    Platform,
    detect_platform,
)

__all__ = [
    # platforms
    "OperatingSystem",
    "Architecture",
    "Platform",
    "detect_platform",
    # manifest
    "ArtifactDescriptor",
    "PlatformArtifact",
    "ManifestRevision",
    "InstallManifest",
    "normalize_version",
    "version_key",
    # install
    "InstallStage",
    "InstallTransition",
    "VALID_TRANSITIONS",
    "TERMINAL_STAGES",
    "SmokeTestResult",
    "InstalledBinary",
    "InstallReport",
]
