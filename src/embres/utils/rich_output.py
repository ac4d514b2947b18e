"""Rich renderables for displaying resources on the console."""

from typing import Iterable, Tuple

from rich.syntax import Syntax
from rich.table import Table


def _format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def resource_table(package: str, rows: Iterable[Tuple[str, int]]) -> Table:
    """
    Build a table of resource names and sizes.

    Args:
        package: Import name shown in the title.
        rows: ``(resource_name, size_in_bytes)`` pairs.

    Returns:
        Rich Table ready for ``console.print``.
    """
    table = Table(
        title=f"Resources in {package}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Resource", style="cyan", no_wrap=True)
    table.add_column("Size", style="magenta", justify="right")

    for name, size in rows:
        table.add_row(name, _format_size(size))

    return table


def xml_syntax(text: str) -> Syntax:
    """Highlight XML text for terminal output."""
    return Syntax(text, "xml", theme="ansi_dark", word_wrap=True)
