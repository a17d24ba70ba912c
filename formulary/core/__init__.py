"""Core install machinery: catalog, fetch, verify, extract, install, smoke test."""

from formulary.core.catalog import DescriptorCatalog
from formulary.core.errors import (
    DownloadFailed,
    InstallerError,
    InstallFailed,
    IntegrityMismatch,
    MalformedArchive,
    ManifestError,
    OperationCancelled,
    SmokeTestFailed,
    UnknownVersion,
    UnsupportedPlatform,
)
from formulary.core.installer import Installer

__all__ = [
    "DescriptorCatalog",
    "Installer",
    "InstallerError",
    "ManifestError",
    "UnknownVersion",
    "UnsupportedPlatform",
    "DownloadFailed",
    "IntegrityMismatch",
    "MalformedArchive",
    "InstallFailed",
    "SmokeTestFailed",
    "OperationCancelled",
]
