"""Rich terminal rendering for install journals, descriptors and errors.

Color scheme
------------
- green     : DONE, completed stages
- red       : FAILED
- cyan      : descriptor fields
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from formulary.core.errors import InstallerError
from formulary.models.install import InstallReport, InstallStage, InstallTransition
from formulary.models.manifest import ArtifactDescriptor, InstallManifest

_STAGE_ICONS: dict[InstallStage, str] = {
    InstallStage.REQUESTED: "[dim]REQUESTED[/dim]",
    InstallStage.RESOLVED: "[green]RESOLVED[/green]",
    InstallStage.FETCHED: "[green]FETCHED[/green]",
    InstallStage.VERIFIED: "[green]VERIFIED[/green]",
    InstallStage.EXTRACTED: "[green]EXTRACTED[/green]",
    InstallStage.INSTALLED: "[green]INSTALLED[/green]",
    InstallStage.SMOKE_TESTED: "[green]SMOKE TESTED[/green]",
    InstallStage.DONE: "[bold green]DONE[/bold green]",
    InstallStage.FAILED: "[bold red]FAILED[/bold red]",
}


class InstallRenderer:
    """Renders installer output with Rich.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def render_journal(self, transitions: Iterable[InstallTransition]) -> Table:
        table = Table(title="Install Stages", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Stage")
        table.add_column("Detail", overflow="fold")
        table.add_column("Time (UTC)", style="dim")
        for index, transition in enumerate(transitions, start=1):
            stage = _STAGE_ICONS.get(transition.to_stage, transition.to_stage.value)
            if transition.reason:
                stage = f"{stage} [red]({transition.reason})[/red]"
            table.add_row(
                str(index),
                stage,
                transition.detail,
                transition.timestamp_utc.strftime("%H:%M:%S.%f")[:-3],
            )
        return table

    def print_journal(self, transitions: Iterable[InstallTransition]) -> None:
        self.console.print(self.render_journal(transitions))

    # ------------------------------------------------------------------
    # Descriptors and manifest
    # ------------------------------------------------------------------

    def print_descriptor(self, descriptor: ArtifactDescriptor, smoke_args: list[str]) -> None:
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold]Version:[/bold]   [cyan]{descriptor.version}[/cyan]",
                    f"[bold]Platform:[/bold]  [cyan]{descriptor.platform}[/cyan]"
                    f" ({descriptor.platform.os.display_name})",
                    f"[bold]URL:[/bold]       {descriptor.url}",
                    f"[bold]SHA-256:[/bold]   {descriptor.content_hash}",
                    f"[bold]Smoke test:[/bold] {' '.join(smoke_args)}",
                ]),
                title="[bold]Resolved Descriptor[/bold]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def print_catalog(
        self,
        descriptors: Iterable[ArtifactDescriptor],
        *,
        latest: str | None = None,
    ) -> None:
        table = Table(title="Published Descriptors")
        table.add_column("Version", style="green")
        table.add_column("Platform", style="cyan")
        table.add_column("Archive")
        table.add_column("SHA-256", style="dim")
        for descriptor in descriptors:
            version = descriptor.version
            if version == latest:
                version = f"[bold]{version}[/bold] (latest)"
            table.add_row(
                version,
                str(descriptor.platform),
                descriptor.archive_name,
                descriptor.content_hash[:16] + "...",
            )
        self.console.print(table)

    def print_manifest(self, manifest: InstallManifest, fingerprint: str) -> None:
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold]Name:[/bold]        {manifest.name}",
                    f"[bold]Description:[/bold] {manifest.description}",
                    f"[bold]Homepage:[/bold]    {manifest.homepage}",
                    f"[bold]Current:[/bold]     {manifest.version}",
                    f"[bold]Binary:[/bold]      {manifest.installed_binary_name}",
                    f"[bold]Smoke test:[/bold]  {' '.join(manifest.smoke_test_args)}",
                    f"[bold]Revisions:[/bold]   {len(manifest.revision_log())}",
                    "",
                    f"[dim]Manifest {fingerprint}[/dim]",
                ]),
                title=f"[bold]{manifest.name}[/bold]",
                border_style="blue",
                padding=(1, 2),
            )
        )

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def print_report(self, report: InstallReport) -> None:
        self.print_journal(report.transitions)
        self.console.print()
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold green]{report.manifest_name} {report.descriptor.version} installed![/bold green]",
                    "",
                    f"[bold]Path:[/bold]     {report.target_path}",
                    f"[bold]Platform:[/bold] {report.descriptor.platform}",
                    f"[bold]Binary:[/bold]   sha256:{report.binary_sha256[:16]}...",
                    f"[bold]Archive:[/bold]  {'cache' if report.from_cache else report.descriptor.url}",
                    "",
                    f"[dim]{report.smoke_test.stdout or 'smoke test passed'}[/dim]",
                ]),
                title="[bold]Install Complete[/bold]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def print_error(self, exc: InstallerError) -> None:
        lines = [f"[bold red]{exc.message}[/bold red]", ""]
        for key, value in exc.context().items():
            lines.append(f"[bold]{key}:[/bold] {value}")
        output = getattr(exc, "output", "")
        if output:
            lines.extend(["", f"[dim]{output}[/dim]"])
        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]{type(exc).__name__}[/bold]",
                border_style="red",
                padding=(1, 2),
            )
        )
