"""
JSON Schema definitions for stable report output.

Provides versioned schema for:
- CI/CD integration
- Tooling that consumes `queryshape analyze --format json`
- Documentation generation

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IndexSchema(BaseModel):
    """Schema for an index."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Declared or conventional index name")
    keys: dict[str, int] = Field(..., description="Ordered {field: direction} keys")
    shell: str = Field(..., description="Shell notation, e.g. {age: 1, name: -1}")
    unique: bool = Field(False, description="Unique constraint flag")
    sparse: bool = Field(False, description="Sparse index flag")
    partial: bool = Field(False, description="Whether a partial filter is declared")


class MatchResultSchema(BaseModel):
    """Schema for the chosen index and its match quality."""

    model_config = ConfigDict(frozen=True)

    chosen: IndexSchema | None = Field(None, description="Best index, null for a collection scan")
    equality_prefix_length: int = Field(0, description="Leading index fields bound by equality")
    has_range_bound: bool = Field(False, description="Next index field bound by a range")
    sort_satisfied: bool = Field(True, description="Sort served from index order")
    sort_reversed: bool = Field(False, description="Index walked backwards for the sort")
    is_covered: bool = Field(False, description="Index alone answers the query")


class RecommendationSchema(BaseModel):
    """Schema for a single index recommendation."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Synthesis rule (primary/covering)")
    index: IndexSchema = Field(..., description="Suggested index")
    benefit: str = Field(..., description="Benefit estimate (none/partial/full-coverage)")
    reason: str = Field("", description="Why the keys are ordered this way")
    command: str = Field(..., description="Shell command creating the index")
    notes: list[str] = Field(default_factory=list, description="Caveats to act on")


class ReportSchema(BaseModel):
    """
    Top-level schema for an analysis report.

    This schema is stable across minor versions.
    Breaking changes require major version bump.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    collection: str = Field(..., description="Analyzed collection")
    registry_version: int = Field(0, description="Registry version the analysis read")
    is_disjunctive: bool = Field(False, description="Filter contains $or")
    requires_collection_scan: bool = Field(False, description="No index narrows the filter")
    requires_in_memory_sort: bool = Field(False, description="Sort not served by the index")
    is_optimal: bool = Field(False, description="Nothing left to improve")
    match: MatchResultSchema = Field(..., description="Match result")
    recommendations: list[RecommendationSchema] = Field(
        default_factory=list, description="Suggested indexes, best first"
    )
    notes: list[str] = Field(default_factory=list, description="Caveats about the analysis")
    unanalyzed_stages: list[str] = Field(
        default_factory=list, description="Pipeline stages beyond the analysed prefix"
    )


def get_json_schema() -> dict[str, Any]:
    """Get the JSON Schema of the report output."""
    return ReportSchema.model_json_schema()
