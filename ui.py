"""
Shared UI module for VideoBatch
Provides a centralized Rich console and common UI helpers.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.theme import Theme

# Custom theme with semantic color names
VB_THEME = Theme({
    "success": "green",
    "error": "red",
    "warning": "yellow",
    "filename": "bold white",
    "dim": "dim",
})

# Global console instance -- all modules import this
console = Console(theme=VB_THEME)


def warning(message: str):
    """Print a warning message."""
    console.print(f"[warning]⚠[/warning] {message}")


def run_banner(rows):
    """
    Display the start-of-run settings as a Rich Panel.

    Args:
        rows: (label, value) pairs, shown in order
    """
    width = max(len(label) for label, _ in rows) + 2
    lines = []
    for label, value in rows:
        heading = f"{label}:".ljust(width)
        lines.append(f"[bold]{heading}[/bold]{escape(str(value))}")
    console.print(Panel("\n".join(lines), title="Video Batch Converter", style="cyan", expand=True))
    console.print()
