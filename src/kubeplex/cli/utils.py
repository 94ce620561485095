"""
CLI utility helpers — consoles and error reporting.
"""

from __future__ import annotations

import typer
from rich.console import Console

from kubeplex.core.errors import KubePlexError

console = Console()
err_console = Console(stderr=True)


def fail(error: KubePlexError) -> typer.Exit:
    """Print ``error`` to stderr and return the Exit to raise."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    return typer.Exit(code=1)
