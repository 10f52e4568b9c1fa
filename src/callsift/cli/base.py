"""Base CLI utilities and common functionality."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

# Global console instance
console = Console()

app = typer.Typer(help="callsift: classify meeting transcripts and extract sales-call data")


def create_table(title: str, columns: list[str]) -> Table:
    """Create a rich table with standard formatting."""
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    return table


def print_success(message: str) -> None:
    console.print(f"[bold green]✅ {message}[/bold green]")


def print_error(message: str) -> None:
    console.print(f"[bold red]❌ {message}[/bold red]")


def print_info(message: str) -> None:
    console.print(f"[bold blue]ℹ️ {message}[/bold blue]")
