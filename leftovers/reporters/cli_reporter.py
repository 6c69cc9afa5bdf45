"""
CLI Reporter Module
===================

Terminal output for listings and deletion runs using the Rich library.

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from leftovers.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report_run(run_report)

See Also
--------
rich : Python library for rich text and formatting.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from leftovers.core.async_deleter import RunReport
from leftovers.core.deletable import Deletable

# Module logger
logger = logging.getLogger(__name__)


class CLIReporter:
    """
    Reporter for displaying listings and run reports in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report_listing(deletables)
    >>> reporter.report_run(run_report)
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the CLI reporter with a Rich Console."""
        self.console = console or Console()
        logger.debug("Initialized CLIReporter")

    def report_listing(self, deletables: Sequence[Deletable]) -> None:
        """
        Print how many listed resources there are of each type.

        Parameters
        ----------
        deletables : sequence of Deletable
            Resources that were listed, in listing order.
        """
        if not deletables:
            self.console.print("\n[green]No matching resources found.[/green]")
            return

        counts: Dict[str, int] = {}
        for d in deletables:
            counts[d.resource_type] = counts.get(d.resource_type, 0) + 1

        table = Table(
            title=f"\n{len(deletables)} resources would be deleted",
            title_style="bold",
            show_lines=False,
        )
        table.add_column("Type", style="yellow", no_wrap=True)
        table.add_column("Count", style="cyan", justify="right")

        for resource_type, count in counts.items():
            table.add_row(resource_type, str(count))

        self.console.print(table)

    def report_run(self, report: RunReport) -> None:
        """
        Print the summary of a deletion run.

        Parameters
        ----------
        report : RunReport
            Report of the finished run.
        """
        self._print_header(report)
        self._print_summary(report)

        if report.has_failures:
            self._print_failures(report)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, report: RunReport) -> None:
        header_text = Text()
        header_text.append("\nDeletion Report\n", style="bold blue")
        header_text.append(
            f"{report.rounds} pass(es), {report.attempts} delete call(s)",
            style="dim",
        )
        self.console.print(Panel(header_text, border_style="blue"))

    def _print_summary(self, report: RunReport) -> None:
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        summary.add_row("Deleted:", f"[green]{report.succeeded_count}[/]")

        failed_style = "red" if report.failed_count > 0 else "green"
        summary.add_row("Failed:", f"[{failed_style}]{report.failed_count}[/]")
        summary.add_row("Duration:", f"{report.duration_seconds:.1f}s")

        self.console.print(summary)

    def _print_failures(self, report: RunReport) -> None:
        table = Table(
            title="\nResources left behind",
            title_style="bold red",
            show_lines=False,
        )
        table.add_column("Type", style="yellow", no_wrap=True)
        table.add_column("Name", style="cyan")
        table.add_column("Last Error", style="dim", max_width=60)

        for key, error in report.failed.items():
            table.add_row(
                key.resource_type,
                escape(key.name),
                escape(self._truncate(str(error), 60)),
            )

        self.console.print(table)
        self.console.print("\n[yellow]Common reasons:[/yellow]")
        self.console.print("  • The resource is still referenced by one that was not selected")
        self.console.print("  • The resource is protected or owned by another account")
        self.console.print("  • Insufficient IAM permissions")
        self.console.print("  • A longer dependency chain: retry with a higher --max-rounds")

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        """Truncate text to ``max_length`` characters, ellipsis included."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Public Methods: Messages
    # =========================================================================

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        """Print the completion message and where the report was saved."""
        self.console.print("\n[green bold]Done![/green bold]")
        if output_file:
            self.console.print(f"[dim]Report saved to: {escape(output_file)}[/dim]")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"\n[red bold]Error:[/red bold] {escape(message)}")

    def __repr__(self) -> str:
        """Return string representation."""
        return "CLIReporter()"
