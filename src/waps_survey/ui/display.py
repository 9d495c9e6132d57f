"""Rich terminal display functions for survey results."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from waps_survey.apps.survey.aggregator import (
    group_by_emitter,
    summarize_batch,
    summarize_bucket,
)
from waps_survey.core.config import LEVEL_UNIT
from waps_survey.storage.models import ScanBatch

# Global console instance
_console: Console | None = None


def get_console() -> Console:
    """Get the global rich console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def print_banner(title: str, subtitle: str | None = None) -> None:
    """Print a styled banner.

    Args:
        title: Main title text.
        subtitle: Optional subtitle.
    """
    text = Text(title, style="bold cyan")
    if subtitle:
        text.append(f"\n{subtitle}", style="dim")
    get_console().print(Panel(text, border_style="cyan"))


def print_success(message: str) -> None:
    get_console().print(f"[bold green]✓[/] {message}")


def print_warning(message: str) -> None:
    get_console().print(f"[bold yellow]⚠[/] {message}")


def print_error(message: str) -> None:
    get_console().print(f"[bold red]✗[/] {message}")


def display_location_summary(location: str, batches: Sequence[ScanBatch]) -> None:
    """Display overall statistics for one location.

    Args:
        location: Location name.
        batches: All batches recorded at the location.
    """
    summary = summarize_bucket(batches)

    info = Text()
    info.append("Scans: ", style="dim")
    info.append(f"{len(batches)}\n", style="cyan")
    info.append("Total APs Found: ", style="dim")
    info.append(f"{summary.total_count}\n", style="bold green")
    info.append("Average RSSI: ", style="dim")
    info.append(f"{summary.average_text()}\n", style="yellow")
    info.append("RSSI Range: ", style="dim")
    info.append(summary.level_range.describe(), style="yellow")

    get_console().print(
        Panel(info, title=f"[bold]Location Stats: {location}[/]", border_style="green")
    )


def display_emitters(batches: Sequence[ScanBatch], max_rows: int = 25) -> None:
    """Display per-emitter statistics in a rich table.

    Args:
        batches: Batches to aggregate.
        max_rows: Maximum number of emitters to list.
    """
    console = get_console()
    emitters = group_by_emitter(batches)
    if not emitters:
        console.print("[dim]No scan data.[/]")
        return

    table = Table(title="Access Points", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("SSID", style="cyan")
    table.add_column("BSSID", style="dim")
    table.add_column("Seen", justify="right")
    table.add_column("Avg RSSI", justify="right", style="green")
    table.add_column("Range", justify="right", style="yellow")

    for idx, emitter in enumerate(emitters[:max_rows], 1):
        avg = "N/A" if emitter.average is None else f"{emitter.average} {LEVEL_UNIT}"
        if emitter.minimum is None:
            span = "N/A"
        else:
            span = f"{emitter.minimum} to {emitter.maximum} {LEVEL_UNIT}"
        table.add_row(str(idx), emitter.label or "Unknown SSID", emitter.id, str(emitter.count), avg, span)

    console.print(table)
    if len(emitters) > max_rows:
        console.print(f"[dim]... and {len(emitters) - max_rows} more access points[/]")


def display_scan_log(
    location: str,
    batches: Sequence[ScanBatch],
    last: int | None = None,
    detail: bool = False,
) -> None:
    """Display each scan batch for a location.

    Args:
        location: Location name.
        batches: Batches in chronological order.
        last: Only show the most recent N scans.
        detail: Also list every access point seen in each scan.
    """
    console = get_console()
    if not batches:
        console.print(f"[dim]No scan logs for {location}.[/]")
        return

    start = 0 if last is None else max(0, len(batches) - last)
    table = Table(title=f"Scan Log: {location}", show_header=True, header_style="bold magenta")
    table.add_column("Scan", justify="right", style="dim")
    table.add_column("Source", style="dim")
    table.add_column("APs Found", justify="right", style="cyan")
    table.add_column("Avg RSSI", justify="right", style="green")
    table.add_column("RSSI Range", justify="right", style="yellow")

    for idx in range(start, len(batches)):
        summary = summarize_batch(batches[idx])
        table.add_row(
            str(idx + 1),
            batches[idx].source,
            str(summary.total_count),
            summary.average_text(),
            summary.level_range.describe(),
        )

    console.print(table)

    if detail:
        for idx in range(start, len(batches)):
            console.print(_scan_detail(location, idx + 1, batches[idx]))


def _scan_detail(location: str, number: int, batch: ScanBatch) -> Panel:
    """Build the per-access-point card for one scan."""
    info = Text()
    if not batch.samples:
        info.append("(No APs in this scan)", style="dim")
    for i, sample in enumerate(batch.samples):
        if i:
            info.append("\n")
        level = f"{sample.level} {LEVEL_UNIT}" if sample.has_level else "N/A"
        info.append(f"{sample.label}\n", style="bold cyan")
        info.append(f"  RSSI: {level} | BSSID: {sample.id}", style="dim")

    return Panel(info, title=f"[bold]Scan {number} ({location})[/]", border_style="blue")


def create_progress() -> Progress:
    """Create a progress bar tracking scans against the budget."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=get_console(),
    )
