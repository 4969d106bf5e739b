"""
Console reporting with rich: status lines, long-running operations, step
counters and summary panels.
"""

import time
from collections import Counter
from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ {message}[/blue]")


def print_success(message: str) -> None:
    console.print(f"[green]✓ {message}[/green]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_error(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")


def print_dry_run(message: str) -> None:
    console.print(f"[magenta][DRY RUN][/magenta] {message}")


def _elapsed(started: float) -> str:
    seconds = int(time.monotonic() - started)
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}m{seconds:02d}s" if minutes else f"{seconds}s"


@contextmanager
def operation_status(operation: str) -> Iterator[None]:
    """
    Spinner for a blocking call such as a waiter or a download.

    Prints the outcome with the elapsed time; exceptions are re-raised.

    Usage:
        with operation_status("Creating VPC stack demo-vpc-1700000000"):
            waiter.wait(...)
    """
    started = time.monotonic()
    try:
        with console.status(f"[bold blue]{operation}...[/bold blue]"):
            yield
    except Exception as e:
        console.print(f"[red]✗ {operation} failed after {_elapsed(started)}: {e}[/red]")
        raise
    console.print(f"[green]✓ {operation} ({_elapsed(started)})[/green]")


class StepTracker:
    """Numbered step headers for a fixed sequence, plus a status tally at the end."""

    def __init__(self, title: str, total: int):
        self.title = title
        self.total = total
        self.current = 0
        self.outcomes: Counter[str] = Counter()
        self.started = time.monotonic()
        console.print(f"[bold blue]{title}[/bold blue] ({total} steps)")

    def begin(self, name: str) -> None:
        self.current += 1
        console.print(f"\n[bold][{self.current}/{self.total}][/bold] {name}")

    def record(self, status: str) -> None:
        self.outcomes[status] += 1

    def finish(self) -> None:
        tally = ", ".join(f"{count} {status}" for status, count in self.outcomes.items())
        console.print(
            f"\n[green]✓ {self.title} finished in {_elapsed(self.started)}[/green]"
            + (f" [dim]({tally})[/dim]" if tally else "")
        )


def show_summary(title: str, items: dict[str, str | int]):
    """
    Print key/value pairs in a bordered panel.

    Args:
        title: Panel title
        items: Rows to show, in order
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in items.items():
        table.add_row(key, str(value))
    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="blue"))


def show_table(title: str, columns: list[str], rows: list[list[str]]):
    """Print rows as a rich table; used for resource inventories."""
    table = Table(title=title, show_lines=False)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*[str(cell) for cell in row])
    console.print(table)
