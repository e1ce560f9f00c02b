"""
Output module - Separates rendering from analysis.

Design principle: Presentation ≠ domain logic.

Provides multiple output formats:
- render_text: Plain terminal output for the CLI
- render_json: Stable JSON schema for tooling
- render_markdown: GitHub/Slack-friendly format

Usage:
    from queryshape.output import render_json, render_text

    report = advisor.analyze_query(descriptor)
    print(render_text(report))
"""

from queryshape.output.renderers import (
    OutputFormat,
    index_to_schema,
    render,
    render_json,
    render_markdown,
    render_text,
    report_to_schema,
)
from queryshape.output.schema import (
    IndexSchema,
    MatchResultSchema,
    RecommendationSchema,
    ReportSchema,
    get_json_schema,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_text",
    "render_json",
    "render_markdown",
    "report_to_schema",
    "index_to_schema",
    "IndexSchema",
    "MatchResultSchema",
    "RecommendationSchema",
    "ReportSchema",
    "get_json_schema",
]
