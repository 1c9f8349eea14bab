"""
Rendering functions for imageupdate output.

This module handles all pretty-printing and table formatting.
Services return data, this module makes it human-readable.
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .domain import OperationStatus, RunResult

console = Console(stderr=True)

_STATUS_STYLES = {
    OperationStatus.SUCCESS: "green",
    OperationStatus.SKIPPED: "yellow",
    OperationStatus.FAILED: "red",
}


def render_run_result(result: RunResult, out: Optional[Console] = None) -> None:
    """
    Render the outcome of a run as a table followed by totals.

    Args:
        result: Result from RunCoordinator
        out: Console to print to (stderr console by default)
    """
    out = out or console
    image = f"{result.image}:{result.tag}"

    if not result.found:
        out.print(f"[yellow]No Dockerfiles reference {result.image}.[/yellow]")
        return

    if not result.details:
        out.print(f"[yellow]No forks were updated to {image}.[/yellow]")
        return

    table = Table(
        title=f"Base image {image}",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Repository")
    table.add_column("Parent")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Details")

    for detail in result.details:
        style = _STATUS_STYLES.get(detail.status, "white")
        table.add_row(
            detail.repo_name,
            detail.parent or "",
            detail.branch or "",
            f"[{style}]{detail.status.value}[/{style}]",
            detail.error or detail.action,
        )

    out.print(table)
    out.print(
        f"[bold]Updated:[/bold] {result.successful}  "
        f"[bold]Skipped:[/bold] {result.skipped}  "
        f"[bold]Failed:[/bold] {result.failed}"
    )
