"""CLI module for embres.

Inspect the resources shipped inside an installed package: list them, print
them as text, or pretty-print them as XML.
"""

import io
import logging
from typing import Optional

import typer
from lxml import etree
from rich.console import Console

from embres.config import load_config
from embres.exceptions import EmbresError
from embres.resources.accessor import ResourceAccessor
from embres.utils.logging import setup_logging
from embres.utils.rich_output import resource_table, xml_syntax

app = typer.Typer(
    name="embres",
    help="embres - Embedded package resource reader",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _accessor(verbose: bool, encoding: Optional[str] = None) -> ResourceAccessor:
    if verbose:
        setup_logging(level=logging.DEBUG)
    return ResourceAccessor(config=load_config(encoding=encoding, verbose=verbose))


def _resource_size(accessor: ResourceAccessor, package: str, name: str) -> int:
    with accessor.open_stream(package, name) as stream:
        return stream.seek(0, io.SEEK_END)


def _fail(error: Exception) -> typer.Exit:
    err_console.print(f"[red]✗[/red] {error}")
    return typer.Exit(code=1)


@app.command("ls")
def list_command(
    package: str = typer.Argument(..., help="Import name of the package"),
    subpath: str = typer.Option("", "--subpath", "-s", help="Directory to list"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
) -> None:
    """List the resources packaged inside PACKAGE."""
    accessor = _accessor(verbose)
    try:
        names = accessor.list_resources(package, subpath=subpath)
        rows = [(name, _resource_size(accessor, package, name)) for name in names]
    except (EmbresError, ModuleNotFoundError) as e:
        raise _fail(e) from e

    if not rows:
        console.print(f"[dim]No resources found in {package}.[/dim]")
        return
    console.print(resource_table(package, rows))


@app.command("cat")
def cat_command(
    package: str = typer.Argument(..., help="Import name of the package"),
    resource: str = typer.Argument(..., help="Resource name, e.g. data/item.xml"),
    encoding: Optional[str] = typer.Option(
        None, "--encoding", "-e", help="Text encoding override"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
) -> None:
    """Print a resource as text."""
    try:
        text = _accessor(verbose, encoding).read_text(package, resource)
    except (EmbresError, ModuleNotFoundError, UnicodeDecodeError) as e:
        raise _fail(e) from e
    console.out(text, end="", highlight=False)


@app.command("xml")
def xml_command(
    package: str = typer.Argument(..., help="Import name of the package"),
    resource: str = typer.Argument(..., help="Resource name, e.g. data/item.xml"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
) -> None:
    """Parse a resource as XML and pretty-print it."""
    try:
        root = _accessor(verbose).read_xml(package, resource)
    except (EmbresError, ModuleNotFoundError, UnicodeDecodeError) as e:
        raise _fail(e) from e
    pretty = etree.tostring(root, pretty_print=True, encoding="unicode")
    console.print(xml_syntax(pretty))


if __name__ == "__main__":
    app()
