"""
Output renderers for different formats.

Separates presentation logic from analysis logic.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization, no manual dict construction.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from queryshape.output.schema import (
    IndexSchema,
    MatchResultSchema,
    RecommendationSchema,
    ReportSchema,
)

if TYPE_CHECKING:
    from queryshape.analyzer.models import MatchResult, Recommendation
    from queryshape.engine import AnalysisReport
    from queryshape.registry.models import IndexSpec


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def render(report: "AnalysisReport", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render an analysis report in the specified format.

    Args:
        report: Analysis report to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(report)
    elif format == OutputFormat.JSON:
        return render_json(report)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(report)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization (single source of truth)
# =============================================================================


def index_to_schema(index: "IndexSpec") -> IndexSchema:
    """Convert IndexSpec to the Pydantic schema model."""
    return IndexSchema(
        name=index.index_name,
        keys=index.key_document(),
        shell=index.shell_notation(),
        unique=index.unique,
        sparse=index.sparse,
        partial=index.is_partial,
    )


def _match_to_schema(result: "MatchResult") -> MatchResultSchema:
    return MatchResultSchema(
        chosen=index_to_schema(result.chosen) if result.chosen else None,
        equality_prefix_length=result.equality_prefix_length,
        has_range_bound=result.has_range_bound,
        sort_satisfied=result.sort_satisfied,
        sort_reversed=result.sort_reversed,
        is_covered=result.is_covered,
    )


def _recommendation_to_schema(rec: "Recommendation") -> RecommendationSchema:
    return RecommendationSchema(
        kind=rec.kind.value,
        index=index_to_schema(rec.index),
        benefit=rec.benefit.label,
        reason=rec.reason,
        command=rec.command,
        notes=list(rec.notes),
    )


def report_to_schema(report: "AnalysisReport") -> ReportSchema:
    """Convert AnalysisReport to the Pydantic schema model."""
    return ReportSchema(
        version="1.0",
        collection=report.query.collection,
        registry_version=report.registry_version,
        is_disjunctive=report.query.is_disjunctive,
        requires_collection_scan=report.requires_collection_scan,
        requires_in_memory_sort=report.requires_in_memory_sort,
        is_optimal=report.is_optimal,
        match=_match_to_schema(report.match_result),
        recommendations=[_recommendation_to_schema(r) for r in report.recommendations],
        notes=list(report.notes),
        unanalyzed_stages=list(report.query.unanalyzed_stages),
    )


def report_to_dict(report: "AnalysisReport") -> dict[str, Any]:
    """Convert AnalysisReport to dictionary via the schema model."""
    return report_to_schema(report).model_dump(mode="json")


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def render_text(report: "AnalysisReport") -> str:
    """Render an analysis report as plain terminal text."""
    lines: list[str] = []
    query = report.query
    result = report.match_result

    lines.append("=" * 60)
    lines.append(f"queryshape report: {query.collection}")
    lines.append("=" * 60)
    lines.append("")

    lines.append("Query shape:")
    lines.append(f"  Equality: {_join(query.equality_fields)}")
    lines.append(f"  Range:    {_join(query.range_fields)}")
    lines.append(f"  Sort:     {_join(_sort_terms(report))}")
    if query.is_disjunctive:
        lines.append("  Filter contains $or")
    lines.append("")

    lines.append("Match:")
    if result.chosen is None:
        lines.append("  Chosen index: none (collection scan)")
    else:
        lines.append(f"  Chosen index: {result.chosen.shell_notation()}")
        lines.append(f"  Equality prefix: {result.equality_prefix_length}")
        lines.append(f"  Range bound: {_yes_no(result.has_range_bound)}")
    sort_text = _yes_no(result.sort_satisfied)
    if result.sort_reversed:
        sort_text += " (reverse scan)"
    lines.append(f"  Sort from index: {sort_text}")
    lines.append(f"  Covered: {_yes_no(result.is_covered)}")
    lines.append("")

    if report.recommendations:
        lines.append("-" * 60)
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 60)
        for i, rec in enumerate(report.recommendations, 1):
            lines.append("")
            lines.append(f"[{i}] {rec.index.shell_notation()} ({rec.kind.value})")
            lines.append(f"    Benefit: {rec.benefit.label}")
            if rec.reason:
                lines.append(f"    {rec.reason}")
            lines.append(f"    {rec.command}")
            for note in rec.notes:
                lines.append(f"    Note: {note}")
        lines.append("")
    elif report.is_optimal:
        lines.append("✓ Query is fully served by an index")
        lines.append("")

    if report.notes:
        lines.append("Notes:")
        for note in report.notes:
            lines.append(f"  • {note}")
        lines.append("")

    lines.append("=" * 60)
    return "\n".join(lines)


# =============================================================================
# JSON renderer (uses schema models)
# =============================================================================


def render_json(report: "AnalysisReport", indent: int = 2) -> str:
    """
    Render an analysis report as stable JSON schema.

    Suitable for CI/CD integration and log aggregation.
    """
    return json.dumps(report_to_dict(report), indent=indent)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(report: "AnalysisReport") -> str:
    """
    Render an analysis report as Markdown.

    Suitable for GitHub comments/issues, Slack messages, documentation.
    """
    lines: list[str] = []
    query = report.query
    result = report.match_result

    lines.append(f"# queryshape report: `{query.collection}`")
    lines.append("")

    if report.is_optimal:
        lines.append("✅ **Query is fully served by an index**")
    elif report.requires_collection_scan:
        lines.append("🔴 **Collection scan**")
    else:
        lines.append("🟡 **Index match can be improved**")
    lines.append("")

    lines.append("## Match")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    chosen = f"`{result.chosen.shell_notation()}`" if result.chosen else "none"
    lines.append(f"| Chosen index | {chosen} |")
    lines.append(f"| Equality prefix | {result.equality_prefix_length} |")
    lines.append(f"| Range bound | {_yes_no(result.has_range_bound)} |")
    lines.append(f"| Sort from index | {_yes_no(result.sort_satisfied)} |")
    lines.append(f"| Covered | {_yes_no(result.is_covered)} |")
    lines.append("")

    if report.recommendations:
        lines.append("## Recommendations")
        lines.append("")
        for i, rec in enumerate(report.recommendations, 1):
            lines.append(f"### {i}. `{rec.index.shell_notation()}` ({rec.kind.value})")
            lines.append("")
            lines.append(f"**Benefit:** {rec.benefit.label}  ")
            if rec.reason:
                lines.append(rec.reason)
            lines.append("")
            lines.append("```javascript")
            lines.append(rec.command)
            lines.append("```")
            lines.append("")
            for note in rec.notes:
                lines.append(f"- {note}")
            if rec.notes:
                lines.append("")

    if report.notes:
        lines.append("## Notes")
        lines.append("")
        for note in report.notes:
            lines.append(f"- {note}")
        lines.append("")

    return "\n".join(lines)


# =============================================================================
# Helpers
# =============================================================================


def _join(items: Any) -> str:
    items = list(items)
    return ", ".join(str(item) for item in items) if items else "-"


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def _sort_terms(report: "AnalysisReport") -> list[str]:
    return [f"{key.field} {int(key.direction)}" for key in report.query.sort]
