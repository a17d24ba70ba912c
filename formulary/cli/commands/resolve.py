"""``formulary resolve`` and ``formulary list`` — query the descriptor catalog.

Neither command touches the network.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from formulary.cli.commands._options import build_installer, parse_platform
from formulary.cli.renderer import InstallRenderer
from formulary.core.errors import InstallerError

console = Console()


def resolve_cmd(
    version: str = typer.Option(
        None, "--version", "-v", help="Version to resolve (default: latest)."
    ),
    os_name: str = typer.Option(None, "--os", help="Operating system (default: host)."),
    arch: str = typer.Option(None, "--arch", help="Architecture (default: host)."),
    manifest: Path = typer.Option(
        None, "--manifest", "-m", help="Manifest JSON file (default: bundled)."
    ),
    url_only: bool = typer.Option(
        False, "--url", help="Print only the download URL, for scripting."
    ),
) -> None:
    """Show the descriptor a version and platform resolve to."""
    platform = parse_platform(os_name, arch)
    renderer = InstallRenderer(console=console)
    try:
        installer = build_installer(manifest, use_cache=False)
        descriptor = installer.resolve(version, platform)
    except InstallerError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    if url_only:
        console.print(descriptor.url, soft_wrap=True, highlight=False)
        return
    renderer.print_descriptor(
        descriptor, installer.catalog.smoke_test_args_for(descriptor.version)
    )


def list_cmd(
    manifest: Path = typer.Option(
        None, "--manifest", "-m", help="Manifest JSON file (default: bundled)."
    ),
) -> None:
    """List every published (version, platform) descriptor."""
    renderer = InstallRenderer(console=console)
    try:
        installer = build_installer(manifest, use_cache=False)
    except InstallerError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    catalog = installer.catalog
    if not len(catalog):
        console.print("[dim]No descriptors published.[/dim]")
        return
    renderer.print_catalog(catalog.descriptors(), latest=catalog.latest_version())
