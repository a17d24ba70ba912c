"""Main Typer application — imports and registers all CLI commands.

Entry point: ``formulary`` (configured via pyproject.toml project.scripts).

Commands: install, resolve, list, info, verify, platform.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from formulary.cli.commands._options import build_installer
from formulary.cli.commands.install import install_cmd
from formulary.cli.commands.resolve import list_cmd, resolve_cmd
from formulary.config import settings
from formulary.core.errors import InstallerError

app = typer.Typer(
    name="formulary",
    help="Formulary: verified installer for the netfetch release binary.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="install", help="Download, verify and install the binary.")(install_cmd)
app.command(name="resolve", help="Show the descriptor for a version and platform.")(resolve_cmd)
app.command(name="list", help="List published versions and platforms.")(list_cmd)


def configure_logging(level: str) -> None:
    """Route log records through Rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, markup=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: FORMULARY_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Formulary: verified installer for the netfetch release binary."""
    configure_logging(log_level or settings.log_level)


@app.command(name="info", help="Show manifest metadata.")
def info_cmd(
    manifest: Path = typer.Option(
        None, "--manifest", "-m", help="Manifest JSON file (default: bundled)."
    ),
) -> None:
    """Show the manifest's name, homepage, current version and fingerprint."""
    from formulary.cli.renderer import InstallRenderer
    from formulary.core.hasher import content_address

    renderer = InstallRenderer()
    try:
        installer = build_installer(manifest, use_cache=False)
    except InstallerError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    fingerprint = content_address(installer.manifest.model_dump(mode="json", by_alias=True))
    renderer.print_manifest(installer.manifest, fingerprint)


@app.command(name="verify", help="Re-run the smoke test on an installed binary.")
def verify_cmd(
    bin_dir: Path = typer.Option(
        None, "--bin-dir", "-b", help="Directory the binary was installed into."
    ),
    version: str = typer.Option(
        None, "--version", "-v", help="Installed version (selects smoke-test args)."
    ),
    manifest: Path = typer.Option(
        None, "--manifest", "-m", help="Manifest JSON file (default: bundled)."
    ),
) -> None:
    """Run the installed binary with its manifest's version arguments."""
    from formulary.cli.renderer import InstallRenderer

    console = Console()
    renderer = InstallRenderer(console=console)
    try:
        installer = build_installer(manifest, bin_dir, use_cache=False)
        result = installer.verify_install(version=version)
    except InstallerError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    console.print(f"[green]OK[/green] {' '.join(result.command)}")
    if result.stdout:
        console.print(result.stdout, highlight=False)


@app.command(name="platform", help="Show the detected host platform.")
def platform_cmd() -> None:
    """Print the host platform as ``os/arch``."""
    from formulary.models.platforms import detect_platform

    console = Console()
    try:
        host = detect_platform()
    except ValueError as exc:
        console.print(f"[bold red]Unsupported host:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"{host} ({host.os.display_name})", highlight=False)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
