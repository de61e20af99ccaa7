"""Rich terminal formatting for reqfix output."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from reqfix.core.models import BatchResult, ChangeRecord

console = Console()
error_console = Console(stderr=True)


def configure_logging(verbose: bool = False, level: str | None = None) -> None:
    """Route reqfix logs through rich on stderr."""
    resolved = logging.DEBUG if verbose else logging.WARNING
    if level:
        candidate = logging.getLevelName(level.strip().upper())
        if isinstance(candidate, int):
            resolved = candidate
    logger = logging.getLogger("reqfix")
    logger.setLevel(resolved)
    if not logger.handlers:
        logger.addHandler(RichHandler(console=error_console, show_path=False))


def format_change(change: ChangeRecord) -> str:
    if change.success:
        fixes = f" [dim](fixes {', '.join(change.vulns)})[/dim]" if change.vulns else ""
        return f"    [green]✔[/green] {change.user_message}{fixes}"
    reason = f" [dim]({change.reason})[/dim]" if change.reason else ""
    return f"    [red]✖[/red] {change.user_message}{reason}"


def print_batch_result(result: BatchResult, dry_run: bool = False) -> None:
    """Print the outcome of a fix run."""
    lines = []

    if result.succeeded:
        lines.append("")
        lines.append("  [green bold]Successful fixes[/green bold]")
        for unit in result.succeeded:
            lines.append(f"  {unit.original.label}")
            lines.extend(format_change(change) for change in unit.changes)

    if result.failed:
        lines.append("")
        lines.append("  [red bold]Unresolved items[/red bold]")
        for failure in result.failed:
            lines.append(f"  {failure.original.label}")
            lines.append(f"    [red]✖[/red] {failure.user_message}")

    if result.skipped:
        lines.append("")
        lines.append("  [yellow bold]Skipped[/yellow bold]")
        for skipped in result.skipped:
            lines.append(f"  {skipped.original.label}")
            lines.append(f"    [yellow]-[/yellow] {skipped.user_message}")

    lines.append("")
    lines.append(
        f"  {len(result.succeeded)} fixed | "
        f"{len(result.failed)} failed | "
        f"{len(result.skipped)} skipped"
    )
    if dry_run:
        lines.append("  [dim]Dry run: no files were changed.[/dim]")
    lines.append("")

    border = "red" if result.failed else "green" if result.succeeded else "yellow"
    console.print(Panel(
        "\n".join(lines),
        title="[bold]reqfix Summary[/bold]",
        border_style=border,
        padding=(0, 1),
    ))
