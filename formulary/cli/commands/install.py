"""``formulary install`` — resolve, fetch, verify and install the binary.

Prints the stage journal either way.  On failure the error panel names
the stage's reason, version, platform and cause, and the command exits 1.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from formulary.cli.commands._options import build_installer, parse_platform
from formulary.cli.renderer import InstallRenderer
from formulary.core.errors import InstallerError

console = Console()


def install_cmd(
    version: str = typer.Option(
        None,
        "--version",
        "-v",
        help="Version to install (default: latest published).",
    ),
    os_name: str = typer.Option(
        None, "--os", help="Target operating system (default: this host)."
    ),
    arch: str = typer.Option(
        None, "--arch", help="Target architecture (default: this host)."
    ),
    bin_dir: Path = typer.Option(
        None, "--bin-dir", "-b", help="Directory to install the binary into."
    ),
    manifest: Path = typer.Option(
        None, "--manifest", "-m", help="Manifest JSON file (default: bundled)."
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always download, ignoring verified archives in the local cache.",
    ),
) -> None:
    """Install the tool for the requested version and platform."""
    platform = parse_platform(os_name, arch)
    renderer = InstallRenderer(console=console)

    try:
        installer = build_installer(manifest, bin_dir, False if no_cache else None)
    except InstallerError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    try:
        report = installer.install(version, platform)
    except InstallerError as exc:
        if installer.last_journal is not None:
            renderer.print_journal(installer.last_journal.transitions)
            console.print()
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    console.print()
    renderer.print_report(report)
