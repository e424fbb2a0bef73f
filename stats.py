"""
Run statistics for VideoBatch
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.table import Table
from rich.markup import escape

from post_processor import size_reduction
from ui import console


def format_size(size_bytes):
    """Format bytes as human-readable size."""
    if size_bytes == 0:
        return "0B"
    size_names = ("B", "KB", "MB", "GB", "TB")
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024
        i += 1
    return f"{size_bytes:.2f} {size_names[i]}"


@dataclass
class RunSummary:
    """
    Counters for one batch run.

    Owned by the batch driver and updated once per item, so at the end of a
    run processed == skipped + succeeded + failed.
    """
    total: int = 0
    processed: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0
    log_dir: Optional[Path] = None
    failed_items: List[Path] = field(default_factory=list)
    source_bytes: int = 0
    output_bytes: int = 0

    def record_skip(self):
        self.processed += 1
        self.skipped += 1

    def record_success(self, source_bytes: int = 0, output_bytes: int = 0):
        self.processed += 1
        self.succeeded += 1
        self.source_bytes += source_bytes
        self.output_bytes += output_bytes

    def record_failure(self, source_path: Path):
        self.processed += 1
        self.failed += 1
        self.failed_items.append(source_path)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def total_reduction(self) -> Optional[float]:
        """Overall percentage saved across converted items"""
        return size_reduction(self.source_bytes, self.output_bytes)


def display_summary(summary: RunSummary):
    """
    Displays the end-of-run summary as a Rich table.

    Args:
        summary: The finished RunSummary.
    """
    table = Table(title="Conversion Summary")
    table.add_column("Result", style="cyan", no_wrap=True)
    table.add_column("Files", justify="right")

    table.add_row("[success]Succeeded[/success]", str(summary.succeeded))
    table.add_row("[error]Failed[/error]", str(summary.failed))
    table.add_row("[dim]Skipped (already exists)[/dim]", str(summary.skipped))

    # Footer row
    table.add_section()
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total}[/bold]")

    console.print(table)

    if summary.succeeded and summary.source_bytes:
        reduction = summary.total_reduction
        console.print(
            f"Converted size: {format_size(summary.source_bytes)} → "
            f"{format_size(summary.output_bytes)} ({reduction}% reduction)"
        )

    for path in summary.failed_items:
        console.print(f"[error]✗[/error] Failed: [filename]{escape(path.name)}[/filename]")

    if summary.log_dir is not None:
        console.print(f"Logs saved to: {escape(str(summary.log_dir))}")
