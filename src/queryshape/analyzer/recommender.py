"""
Index recommendation engine.

When the best declared index is missing or does not cover the query,
synthesize at most two candidate indexes:

1. Primary: equality-bound fields (filter order), then one range-bound
   field, then sort fields not already present. This is the smallest index
   giving a full-prefix match with the sort served from index order.
2. Covering: the primary plus every other field the filter or projection
   references, so no document has to be fetched. Always ranked second: it
   buys coverage with a larger index.

Each candidate is scored by running it through the same matcher and
coverage analyzer used for declared indexes. Candidates that would not
beat the current match (benefit NONE) are dropped, and so are candidates
that are already declared.

The engine is static: it sees no document statistics, and identical
inputs always yield identical output.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from queryshape.analyzer.coverage import (
    DEFAULT_ID_FIELD,
    can_be_covered,
    missing_fields,
)
from queryshape.analyzer.matcher import evaluate_index
from queryshape.analyzer.models import (
    BenefitLevel,
    MatchResult,
    Recommendation,
    RecommendationKind,
)
from queryshape.parser.models import Direction, FieldPath, QueryDescriptor
from queryshape.registry.models import IndexKey, IndexSpec

logger = logging.getLogger(__name__)


def build_primary(query: QueryDescriptor) -> IndexSpec | None:
    """
    Synthesize the primary candidate, or None if the query constrains nothing.

    Equality fields come first in filter order. The first range-bound
    field follows; it takes the sort direction when the sort starts with
    it. Sort fields not yet present close the key list.
    """
    keys: list[IndexKey] = []
    used: set[str] = set()

    def add(path: FieldPath, direction: Direction) -> None:
        if path not in used:
            used.add(path)
            keys.append(IndexKey(path, direction))

    for path in query.equality_fields:
        add(path, Direction.ASCENDING)

    if query.range_fields:
        range_field = query.range_fields[0]
        open_sort = [k for k in query.sort if not query.is_equality_bound(k.field)]
        if open_sort and open_sort[0].field == range_field:
            add(range_field, open_sort[0].direction)
        else:
            add(range_field, Direction.ASCENDING)

    for sort_key in query.sort:
        add(sort_key.field, sort_key.direction)

    if not keys:
        return None
    return IndexSpec(keys=tuple(keys))


def build_covering(
    query: QueryDescriptor,
    primary: IndexSpec,
    id_field: str = DEFAULT_ID_FIELD,
) -> IndexSpec | None:
    """
    Extend the primary candidate with the remaining referenced fields.

    The identifier field is never added; when the projection returns it,
    the caller is told to exclude it instead. Returns None if coverage is
    impossible or nothing would be added.
    """
    if not can_be_covered(query):
        return None

    extra = [
        path
        for path in missing_fields(query, primary.field_set, id_field)
        if path != id_field
    ]
    if not extra:
        return None

    keys = primary.keys + tuple(IndexKey(path) for path in extra)
    return IndexSpec(keys=keys)


def estimate_benefit(
    query: QueryDescriptor,
    result: MatchResult,
    candidate: IndexSpec,
    id_field: str = DEFAULT_ID_FIELD,
) -> tuple[BenefitLevel, bool]:
    """
    Estimate the benefit of adding ``candidate``.

    Returns:
        (benefit, needs_id_exclusion). ``needs_id_exclusion`` is true when
        the candidate covers the query only once the identifier field is
        excluded from the projection.
    """
    if candidate == result.chosen:
        return BenefitLevel.NONE, False

    evaluation = evaluate_index(query, candidate)
    if not evaluation.is_eligible:
        return BenefitLevel.NONE, False

    if can_be_covered(query) and not result.is_covered:
        missing = missing_fields(query, candidate.field_set, id_field)
        if all(path == id_field for path in missing):
            return BenefitLevel.FULL_COVERAGE, bool(missing)

    if result.chosen is None:
        return BenefitLevel.PARTIAL, False

    current = (
        result.equality_prefix_length,
        result.has_range_bound,
        result.sort_satisfied,
    )
    if evaluation.quality > current:
        return BenefitLevel.PARTIAL, False
    return BenefitLevel.NONE, False


def recommend(
    query: QueryDescriptor,
    result: MatchResult,
    *,
    id_field: str = DEFAULT_ID_FIELD,
    declared: Collection[IndexSpec] = (),
) -> list[Recommendation]:
    """
    Recommend indexes for a query, best first.

    Args:
        query: Parsed query.
        result: Its coverage-analyzed MatchResult.
        id_field: Identifier field name.
        declared: Indexes already declared on the collection; never
            recommended again.

    Returns:
        Zero, one or two recommendations. Empty when the query is already
        covered, when the filter is disjunctive, or when no candidate
        improves on the current match.
    """
    if result.is_covered or query.is_disjunctive:
        return []

    primary = build_primary(query)
    if primary is None:
        return []

    recommendations: list[Recommendation] = []

    benefit, needs_id_exclusion = estimate_benefit(query, result, primary, id_field)
    if primary in declared:
        benefit = BenefitLevel.NONE
    if benefit > BenefitLevel.NONE:
        recommendations.append(
            Recommendation(
                collection=query.collection,
                index=primary,
                benefit=benefit,
                kind=RecommendationKind.PRIMARY,
                reason=_primary_reason(query, primary),
                notes=_notes(query, needs_id_exclusion, id_field),
            )
        )

    if benefit < BenefitLevel.FULL_COVERAGE:
        covering = build_covering(query, primary, id_field)
        if covering is not None and covering not in declared:
            cover_benefit, cover_needs_id = estimate_benefit(
                query, result, covering, id_field
            )
            if cover_benefit == BenefitLevel.FULL_COVERAGE:
                added = ", ".join(covering.fields[len(primary):])
                recommendations.append(
                    Recommendation(
                        collection=query.collection,
                        index=covering,
                        benefit=cover_benefit,
                        kind=RecommendationKind.COVERING,
                        reason=(
                            f"Extends {primary.shell_notation()} with {added} "
                            "so the index alone answers the query"
                        ),
                        notes=_notes(query, cover_needs_id, id_field),
                    )
                )

    logger.debug(
        "%d recommendation(s) for %r: %s",
        len(recommendations),
        query.collection,
        ", ".join(r.index.shell_notation() for r in recommendations) or "none",
    )
    return recommendations


def _primary_reason(query: QueryDescriptor, primary: IndexSpec) -> str:
    parts: list[str] = []
    equality = [f for f in query.equality_fields if f in primary.field_set]
    if equality:
        parts.append(f"equality on {', '.join(equality)}")
    if query.range_fields:
        parts.append(f"range on {query.range_fields[0]}")
    sort_only = [
        f for f in query.sort_fields
        if f not in query.equality_fields and f not in query.range_fields[:1]
    ]
    if sort_only:
        parts.append(f"sort on {', '.join(sort_only)}")
    return "Index keys ordered by " + ", then ".join(parts)


def _notes(
    query: QueryDescriptor,
    needs_id_exclusion: bool,
    id_field: str,
) -> tuple[str, ...]:
    notes: list[str] = []
    if needs_id_exclusion:
        notes.append(
            f"Project {{{id_field}: 0}} so the index alone can answer the query"
        )
    if len(query.range_fields) > 1:
        rest = ", ".join(query.range_fields[1:])
        notes.append(
            f"Only {query.range_fields[0]} bounds the index scan; "
            f"range predicates on {rest} are applied afterwards"
        )
    return tuple(notes)
