"""Formulary: verified installer for the netfetch release binary.

Resolves a (version, platform) pair against the install manifest, fetches
the release archive, checks its SHA-256, extracts the executable, places
it atomically and smoke-tests it.
"""

__version__ = "0.1.0"
__description__ = "Manifest-driven, integrity-checked installer for release binaries"

from formulary.core.installer import Installer
from formulary.core.manifest_loader import load_manifest
from formulary.cli.app import app as cli

__all__ = ["Installer", "load_manifest", "cli", "__version__"]
