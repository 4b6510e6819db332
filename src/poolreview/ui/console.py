"""Rich-powered console output for poolreview."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.tree import Tree

from poolreview import __version__
from poolreview.exceptions import LoaderError
from poolreview.pool.models import ITEM_TYPE_NAMES
from poolreview.review.closure import ClosureRecord


class Console:
    """Terminal output for poolreview using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        """Show the poolreview banner."""
        self.console.print(
            Panel(
                f"[bold cyan]poolreview[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Change-impact review for component pools[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def indexing_progress(self) -> Progress:
        """Create a progress bar for indexing."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )

    def show_stats(self, stats: dict) -> None:
        """Display index statistics in a table."""
        table = Table(title="Pool Index Statistics", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right", style="cyan")

        table.add_row("Total Items", str(stats.get("total_items", 0)))
        table.add_row("Total Edges", str(stats.get("total_edges", 0)))
        table.add_row("Dangling Refs", str(stats.get("dangling_refs", 0)))
        if "file_errors" in stats:
            table.add_row("File Errors", str(stats["file_errors"]))

        item_types = stats.get("item_types", {})
        if item_types:
            table.add_section()
            for kind, count in sorted(item_types.items(), key=lambda x: -x[1]):
                table.add_row(f"  {kind}", str(count))

        self.console.print(table)

    def show_file_errors(self, errors: list[LoaderError]) -> None:
        for error in errors:
            self.console.print(f"  [red]{error.filename}[/red] [dim]{error.detail}[/dim]")

    def show_closure(self, records: list[ClosureRecord]) -> None:
        """Display closure records as one tree per root part."""
        trees: list[Tree] = []
        depth_nodes: dict[int, Tree] = {}
        current_root = None

        for record in records:
            label = f"{ITEM_TYPE_NAMES[record.type]} {record.name or record.id}"
            if record.in_pr:
                label = f"[bold yellow]{label}[/bold yellow]"
            if record.root != current_root:
                current_root = record.root
                depth_nodes = {}
            if record.level == 0:
                tree = Tree(label)
                trees.append(tree)
                depth_nodes = {0: tree}
                continue
            parent = depth_nodes.get(record.level - 1) or depth_nodes.get(0)
            if parent is None:
                continue
            depth_nodes[record.level] = parent.add(label)

        for tree in trees:
            self.console.print(tree)
