"""
QueryAdvisor - orchestration layer for queryshape.

This is the single entry point for declaring indexes and analyzing queries.
The CLI and library callers should use this class rather than wiring the
registry, matcher, coverage analyzer and recommender themselves.

Design principle:
- Matching, coverage and recommendation are pure functions over immutable
  inputs; they never touch the registry directly
- The advisor reads one registry snapshot per analysis, under the registry's
  read lock, so a concurrent declaration is either fully visible or not at all

Usage:
    from queryshape.engine import QueryAdvisor
    from queryshape.registry import IndexSpec

    advisor = QueryAdvisor()
    advisor.declare_index("users", IndexSpec.from_keys({"age": 1}))

    report = advisor.analyze(
        "users",
        filter={"age": {"$gt": 20}},
        projection={"name": 1, "age": 1},
    )
    for rec in report.recommendations:
        print(rec.command)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from queryshape.analyzer import coverage, matcher, recommender
from queryshape.analyzer.models import MatchResult, Recommendation
from queryshape.parser.models import QueryDescriptor
from queryshape.parser.parser import parse_query
from queryshape.parser.pipeline import parse_pipeline
from queryshape.registry.models import IndexSpec
from queryshape.registry.registry import SchemaRegistry

if TYPE_CHECKING:
    from queryshape.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    """
    Result of analyzing one query against one registry version.

    Attributes:
        query: The analyzed descriptor.
        match_result: Best index and coverage.
        recommendations: Suggested indexes, best first.
        notes: Caveats about the analysis itself.
        registry_version: Registry version the analysis read.
    """

    query: QueryDescriptor
    match_result: MatchResult
    recommendations: tuple[Recommendation, ...] = ()
    notes: tuple[str, ...] = ()
    registry_version: int = 0

    @property
    def requires_collection_scan(self) -> bool:
        """No index narrows the filter."""
        return self.match_result.requires_collection_scan

    @property
    def requires_in_memory_sort(self) -> bool:
        """A sort was requested and index order cannot provide it."""
        return bool(self.query.sort) and not self.match_result.sort_satisfied

    @property
    def is_optimal(self) -> bool:
        """
        Indexed, sorted from index order, and covered whenever the
        projection allows it.
        """
        if self.requires_collection_scan or self.requires_in_memory_sort:
            return False
        if coverage.can_be_covered(self.query):
            return self.match_result.is_covered
        return True


class QueryAdvisor:
    """
    Static query-shape advisor.

    Owns a SchemaRegistry (or shares one passed in) and analyzes query
    descriptors against it. Safe to use from several threads at once.
    """

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        config: "Config | None" = None,
    ) -> None:
        if config is None:
            from queryshape.config import get_config

            config = get_config()

        self.registry = registry if registry is not None else SchemaRegistry()
        self.config = config

    # ── Registry administration ──────────────────────────────────────────

    def declare_collection(self, collection: str) -> None:
        """Register a collection with no indexes."""
        self.registry.declare_collection(collection)

    def declare_index(self, collection: str, spec: IndexSpec) -> None:
        """
        Declare an index on a collection.

        Raises:
            DuplicateIndex: A field-identical index is already declared.
        """
        self.registry.declare_index(collection, spec)
        logger.info("Declared index %s on %r", spec.shell_notation(), collection)

    # ── Analysis ─────────────────────────────────────────────────────────

    def analyze_query(
        self,
        descriptor: QueryDescriptor,
        recommend: bool | None = None,
    ) -> AnalysisReport:
        """
        Match, coverage-analyze and (optionally) recommend for a query.

        Args:
            descriptor: Parsed query.
            recommend: Synthesize recommendations. None uses the configured
                default.

        Raises:
            UnknownCollection: The collection was never declared.
        """
        if recommend is None:
            recommend = self.config.recommendations_enabled
        id_field = self.config.id_field

        with self.registry.reading(descriptor.collection) as snapshot:
            indexes = snapshot.indexes
            version = snapshot.version
            result = matcher.match(descriptor, indexes, id_field=id_field)

        result = coverage.analyze(descriptor, result, id_field=id_field)

        recommendations: tuple[Recommendation, ...] = ()
        if recommend:
            recommendations = tuple(
                recommender.recommend(
                    descriptor, result, id_field=id_field, declared=indexes
                )
            )

        report = AnalysisReport(
            query=descriptor,
            match_result=result,
            recommendations=recommendations,
            notes=_report_notes(descriptor, result, id_field),
            registry_version=version,
        )

        logger.debug(
            "Analyzed query on %r: chosen=%s covered=%s sort=%s recommendations=%d",
            descriptor.collection,
            result.chosen.shell_notation() if result.chosen else "none",
            result.is_covered,
            result.sort_satisfied,
            len(recommendations),
        )
        return report

    def analyze(
        self,
        collection: str,
        filter: Mapping[str, Any] | None = None,
        projection: Mapping[str, Any] | None = None,
        sort: Mapping[str, Any] | Sequence[Any] | None = None,
        limit: int | None = None,
        *,
        recommend: bool | None = None,
    ) -> AnalysisReport:
        """Parse raw query parts and analyze them."""
        descriptor = parse_query(
            collection,
            filter,
            projection,
            sort,
            limit,
            config=self.config.parser_config(),
        )
        return self.analyze_query(descriptor, recommend=recommend)

    def analyze_pipeline(
        self,
        collection: str,
        stages: Sequence[Mapping[str, Any]],
        *,
        recommend: bool | None = None,
    ) -> AnalysisReport:
        """Analyze the index-eligible prefix of an aggregation pipeline."""
        descriptor = parse_pipeline(
            collection, stages, config=self.config.parser_config()
        )
        return self.analyze_query(descriptor, recommend=recommend)


def _report_notes(
    query: QueryDescriptor,
    result: MatchResult,
    id_field: str,
) -> tuple[str, ...]:
    notes: list[str] = []

    if query.is_disjunctive:
        notes.append(
            "Filter contains $or: index selection for disjunctions is not "
            "analyzed, no recommendation is made"
        )

    chosen = result.chosen
    if chosen is not None:
        if not result.is_covered and coverage.can_be_covered(query):
            missing = coverage.missing_fields(query, chosen.field_set, id_field)
            if missing and all(path == id_field for path in missing):
                notes.append(
                    f"Project {{{id_field}: 0}} so index {chosen.index_name} "
                    "alone can answer the query"
                )
        if result.equality_prefix_length == 0 and not result.has_range_bound:
            notes.append(
                f"Index {chosen.index_name} only provides the sort order: "
                "every index entry is read"
            )
        if chosen.is_partial:
            notes.append(
                f"Index {chosen.index_name} is partial: its filter expression is "
                "not checked against the query"
            )
        if chosen.sparse:
            notes.append(
                f"Index {chosen.index_name} is sparse: documents missing its "
                "fields are not indexed"
            )

    if query.unanalyzed_stages:
        notes.append(
            "Pipeline stages not analyzed: " + ", ".join(query.unanalyzed_stages)
        )

    return tuple(notes)
