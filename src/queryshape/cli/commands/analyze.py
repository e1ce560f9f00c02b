"""Core command: analyze."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from queryshape.config import get_config
from queryshape.engine import AnalysisReport, QueryAdvisor
from queryshape.exceptions import InputError, QueryShapeError
from queryshape.loader import load_query, load_registry
from queryshape.output.renderers import OutputFormat, render

console = Console()
error_console = Console(stderr=True)


def register(app: typer.Typer) -> None:
    """Register core commands on the given Typer app."""

    @app.command()
    def analyze(
        query_file: Annotated[
            Path,
            typer.Argument(
                help="Query document (JSON or YAML)",
                exists=True,
                readable=True,
                resolve_path=True,
            ),
        ],
        indexes: Annotated[
            Path,
            typer.Option(
                "--indexes",
                "-i",
                help="Index document (JSON or YAML) declaring the collections",
                exists=True,
                readable=True,
                resolve_path=True,
            ),
        ],
        output_format: Annotated[
            OutputFormat,
            typer.Option("--format", "-f", help="Output format"),
        ] = OutputFormat.TEXT,
        recommend: Annotated[
            Optional[bool],
            typer.Option(
                "--recommend/--no-recommend",
                help="Synthesize index recommendations (default from config)",
            ),
        ] = None,
    ) -> None:
        """
        Analyze a query against declared indexes.

        Reports the index that best serves the query, whether it covers the
        query, and which indexes would do better.

        Examples:

            $ queryshape analyze query.json --indexes indexes.yaml
            $ queryshape analyze query.yaml -i indexes.yaml --format json
        """
        try:
            config = get_config()
            registry = load_registry(indexes)
            descriptor = load_query(query_file, config=config.parser_config())

            advisor = QueryAdvisor(registry=registry, config=config)
            report = advisor.analyze_query(descriptor, recommend=recommend)
        except QueryShapeError as e:
            _print_error(e)
            raise typer.Exit(code=1)

        if output_format == OutputFormat.TEXT:
            _print_summary(report)
            console.print(
                render(report, output_format),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
        else:
            typer.echo(render(report, output_format))


def _print_summary(report: AnalysisReport) -> None:
    if report.is_optimal:
        console.print(
            Panel(
                "[green]Query is fully served by an index.[/green]",
                title="queryshape",
                border_style="green",
            )
        )
    elif report.requires_collection_scan:
        console.print(
            Panel(
                "[red]No declared index supports this filter: collection scan.[/red]",
                title="queryshape",
                border_style="red",
            )
        )
    else:
        count = len(report.recommendations)
        console.print(
            Panel(
                f"[yellow]Index match can be improved[/yellow] "
                f"({count} recommendation(s)).",
                title="queryshape",
                border_style="yellow",
            )
        )


def _print_error(error: QueryShapeError) -> None:
    error_console.print(f"[red]Error:[/red] {escape(error.message)}")
    if isinstance(error, InputError) and error.detail:
        error_console.print(f"\n[dim]{escape(error.detail)}[/dim]")
