"""Terminal output for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

if TYPE_CHECKING:
    from terminal_ide.catalog import ToolSpec
    from terminal_ide.types import RunSummary
    from terminal_ide.uninstall import UninstallReport
    from terminal_ide.verify import VerificationReport

_STATUS_STYLES = {
    "pass": "[green]PASS[/green]",
    "fail": "[red]FAIL[/red]",
    "warn": "[yellow]WARN[/yellow]",
}


class TerminalUI:
    """Severity-tagged, colored output for terminal-ide (non-interactive)."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the UI.

        Args:
            console: Rich console to print to. Defaults to stdout.
        """
        self.console = console or Console()

    def show_banner(self, title: str, subtitle: str) -> None:
        """Display a command banner."""
        title = f"[bold blue]{title}[/bold blue]"
        self.console.print(Panel(subtitle, title=title, border_style="blue"))

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask for confirmation.

        Args:
            message: Confirmation message.
            default: Default response.

        Returns:
            User's response.
        """
        return Confirm.ask(message, default=default, console=self.console)

    def show_success(self, message: str) -> None:
        """Display success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Display error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def show_warning(self, message: str) -> None:
        """Display warning message."""
        self.console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        """Display info message."""
        self.console.print(f"[blue]i[/blue] {message}")

    def show_dry_run(self, message: str) -> None:
        """Display an action that a dry run skipped."""
        self.console.print(f"[yellow][DRY RUN][/yellow] {message}")

    def show_plan(self, plan: list[tuple[ToolSpec, list[str]]]) -> None:
        """Display the strategies each tool would try."""
        for tool, steps in plan:
            self.console.print(f"[bold]{tool.name}[/bold]")
            for number, step in enumerate(steps, 1):
                self.show_dry_run(f"{number}. {step}")

    def show_install_summary(self, summary: RunSummary) -> None:
        """Display per-tool install results."""
        table = Table(title="Installation Summary")
        table.add_column("Tool", style="cyan")
        table.add_column("Status")
        table.add_column("Via")
        table.add_column("Details")

        for result in summary.results:
            if result.skipped:
                status, via, details = "[blue]present[/blue]", "-", "already installed"
            elif result.success:
                status = "[green]installed[/green]"
                via = result.strategy or "-"
                details = ", ".join(str(p) for p in result.installed_paths)
            else:
                status, via, details = "[red]failed[/red]", "-", result.error or ""
            table.add_row(result.tool, status, via, details)

        self.console.print(table)

    def show_verification(self, report: VerificationReport, verbose: bool = False) -> None:
        """Display verification checks and totals.

        Args:
            report: Verification report.
            verbose: Also show info-level details.
        """
        for check in report.checks:
            if check.status == "info":
                if verbose:
                    self.console.print(f"[cyan][DEBUG][/cyan] {check.message}")
                continue
            self.console.print(f"{_STATUS_STYLES[check.status]} {check.message}")

        table = Table(title="Verification Summary", show_header=False)
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Total checks", f"[cyan]{report.total}[/cyan]")
        table.add_row("Passed", f"[green]{report.passed}[/green]")
        table.add_row("Failed", f"[red]{report.failed}[/red]")
        table.add_row("Warnings", f"[yellow]{report.warnings}[/yellow]")
        table.add_row("Success rate", f"[cyan]{report.success_rate}%[/cyan]")
        self.console.print()
        self.console.print(table)

    def show_uninstall_report(self, report: UninstallReport) -> None:
        """Display what an uninstall run did or would do."""
        for action in report.planned:
            self.show_dry_run(f"Would remove: {action}")
        for item in report.removed:
            self.show_info(f"Removed {item}")
        for error in report.errors:
            self.show_error(error)
        if report.backup_dir is not None:
            self.show_info(f"Configurations backed up to {report.backup_dir}")
        if report.remaining:
            self.show_warning(
                "Still accessible (possibly system-installed): " + ", ".join(report.remaining)
            )
