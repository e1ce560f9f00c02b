"""
queryshape CLI - Static index advisor for document-store queries.

Usage:
    queryshape analyze query.json --indexes indexes.yaml
    queryshape analyze query.yaml -i indexes.yaml --format json
    queryshape indexes indexes.yaml
    queryshape --help
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console

from queryshape import __version__
from queryshape.cli.commands import analyze as analyze_commands
from queryshape.cli.commands import indexes as index_commands
from queryshape.config import get_config
from queryshape.exceptions import ConfigurationError

app = typer.Typer(
    name="queryshape",
    help="Static index and coverage advisor for document-store queries",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"queryshape version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Enable debug logging."),
    ] = False,
) -> None:
    """queryshape - Static index and coverage advisor."""
    if verbose:
        level = "DEBUG"
    else:
        try:
            level = get_config().log_level
        except ConfigurationError as e:
            error_console.print(f"[red]Configuration error:[/red] {e.message}")
            raise typer.Exit(code=1)

    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


analyze_commands.register(app)
index_commands.register(app)


if __name__ == "__main__":
    app()
