"""Registry inspection command: indexes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from queryshape.exceptions import QueryShapeError
from queryshape.loader import load_registry
from queryshape.output.renderers import index_to_schema

console = Console()
error_console = Console(stderr=True)


def register(app: typer.Typer) -> None:
    """Register registry commands on the given Typer app."""

    @app.command()
    def indexes(
        index_file: Annotated[
            Path,
            typer.Argument(
                help="Index document (JSON or YAML)",
                exists=True,
                readable=True,
                resolve_path=True,
            ),
        ],
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output declared indexes as JSON"),
        ] = False,
    ) -> None:
        """
        List the collections and indexes an index document declares.

        Examples:

            $ queryshape indexes indexes.yaml
        """
        try:
            registry = load_registry(index_file)
        except QueryShapeError as e:
            error_console.print(f"[red]Error:[/red] {escape(e.message)}")
            raise typer.Exit(code=1)

        if json_output:
            data = {
                collection: [
                    index_to_schema(index).model_dump(mode="json")
                    for index in registry.indexes(collection)
                ]
                for collection in registry.collections()
            }
            typer.echo(json.dumps(data, indent=2))
            return

        table = Table(title="Declared Indexes")
        table.add_column("Collection", style="cyan")
        table.add_column("Index", style="green")
        table.add_column("Name")
        table.add_column("Flags", style="dim")

        for collection in registry.collections():
            declared = registry.indexes(collection)
            if not declared:
                table.add_row(collection, "[dim](none)[/dim]", "", "")
                continue
            for index in declared:
                flags = [
                    flag
                    for flag, enabled in (
                        ("unique", index.unique),
                        ("sparse", index.sparse),
                        ("partial", index.is_partial),
                    )
                    if enabled
                ]
                table.add_row(
                    collection,
                    escape(index.shell_notation()),
                    escape(index.index_name),
                    ", ".join(flags),
                )

        console.print(table)
        console.print(
            f"\n[dim]{len(registry.collections())} collection(s), "
            f"registry version {registry.version}[/dim]"
        )
