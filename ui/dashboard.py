"""
Rich-based terminal output for the speedtest server.

All formatting helpers live in ``server.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from server.stats import format_latency, format_throughput

console = Console()

ROUTES: List[Tuple[str, str, str]] = [
    ("GET", "/", "Index page"),
    ("GET", "/static/*", "Static assets"),
    ("GET", "/api/download?size=N", "N MB of test data (default 10, max 100)"),
    ("POST", "/api/upload", "Accept upload data"),
    ("GET", "/api/ping", "Latency probe"),
    ("GET", "/api/speedtest", "Combined server-side test"),
]


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def setup_logging(level: str = "INFO") -> None:
    """Route stdlib logging (ours and aiohttp's) through a RichHandler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Speedtest Server[/bold cyan]\n"
            "[dim]Download, upload and latency endpoints for LAN speed tests[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_routes(host: str, port: int, test_duration: float) -> None:
    table = Table(title=f"Listening on http://{host}:{port}", box=box.ROUNDED)
    table.add_column("Method", style="bold")
    table.add_column("Path", style="cyan")
    table.add_column("Description", style="dim")
    for method, path, description in ROUTES:
        table.add_row(method, path, description)
    console.print(table)
    console.print(
        f"[dim]/api/speedtest runs {test_duration:.0f} s download + "
        f"{test_duration:.0f} s upload[/dim]\n"
    )


def print_config(config: dict, path: str) -> None:
    table = Table(title="Configuration", box=box.ROUNDED)
    table.add_column("Key", style="bold")
    table.add_column("Value", justify="right")
    for key in sorted(config):
        table.add_row(key, str(config[key]))
    console.print(table)
    console.print(f"[dim]{path}[/dim]")


def print_final_results(download_speed: float, upload_speed: float, latency: int) -> None:
    console.print()
    console.print(
        Panel.fit(
            f"[bold white]   Latency:[/bold white]  [bold yellow]{format_latency(latency)}[/bold yellow]\n"
            f"[bold white]   Download:[/bold white]  [bold green]{format_throughput(download_speed)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_throughput(upload_speed)}[/bold blue]",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar during an in-process measurement."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None

    def start(self, description: str) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100, speed="")

    def update(self, progress: float, speed_mb_s: float = 0) -> None:
        if self._task_id is None:
            return
        speed_str = format_throughput(speed_mb_s) if speed_mb_s > 0 else "..."
        self.progress.update(self._task_id, completed=progress * 100, speed=speed_str)

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=100)
        self.progress.stop()
