"""Option parsing shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer

from formulary.config import InstallerSettings
from formulary.core.installer import Installer
from formulary.models.platforms import Platform, detect_platform, parse_arch, parse_os


def parse_platform(os_name: str | None, arch_name: str | None) -> Platform | None:
    """Build a Platform from --os/--arch; missing halves come from the host.

    Returns None when neither is given, so the catalog detects the host.
    """
    if os_name is None and arch_name is None:
        return None
    try:
        if os_name is None or arch_name is None:
            host = detect_platform()
            os_value = parse_os(os_name) if os_name else host.os
            arch_value = parse_arch(arch_name) if arch_name else host.arch
            return Platform(os=os_value, arch=arch_value)
        return Platform.parse(os_name, arch_name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def build_installer(
    manifest: Path | None = None,
    bin_dir: Path | None = None,
    use_cache: bool | None = None,
) -> Installer:
    """Create an Installer from env settings with CLI overrides applied."""
    overrides: dict[str, object] = {}
    if manifest is not None:
        overrides["manifest_path"] = manifest
    if bin_dir is not None:
        overrides["bin_dir"] = bin_dir
    if use_cache is not None:
        overrides["use_cache"] = use_cache
    return Installer(settings=InstallerSettings(**overrides))
