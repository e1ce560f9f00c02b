"""
Index matcher.

Decides which declared index (if any) best supports a query's filter.

Technical approach:
1. For each index, walk its keys while each is bound by an equality leaf
   (the equality prefix).
2. If the next key is bound by a range leaf, count it and stop; trailing
   keys are not used for filtering.
3. Check whether the requested sort can be read off index order: sort keys
   bound by equality are dropped (their value is constant), the rest must
   line up with the keys right after the matched prefix, all in the index
   direction or all reversed.
4. Rank eligible indexes by (equality prefix, range bound, sort satisfied,
   covers the query, fewer keys, earlier declaration).

An index is eligible when it yields an equality prefix or a range bound.
For a query with no filter fields, an index that serves the whole sort is
eligible too.

Coverage ranks ahead of index length: among indexes equal on the first
three criteria, one that covers the query is chosen even when a shorter
index exists. Fewer keys only decides between indexes that both cover or
both do not.

Leaf lookups go through the descriptor's per-field mappings, so each index
key costs O(1).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from queryshape.analyzer.coverage import DEFAULT_ID_FIELD, can_be_covered, missing_fields
from queryshape.analyzer.models import MatchResult
from queryshape.parser.models import QueryDescriptor
from queryshape.registry.models import IndexSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEvaluation:
    """Match quality of one index against one query."""

    index: IndexSpec
    position: int
    equality_prefix_length: int
    has_range_bound: bool
    sort_satisfied: bool
    sort_reversed: bool
    covers: bool = False
    serves_sort_only: bool = False

    @property
    def is_eligible(self) -> bool:
        """The index narrows the filter, or orders an unfiltered query."""
        return (
            self.equality_prefix_length > 0
            or self.has_range_bound
            or self.serves_sort_only
        )

    @property
    def quality(self) -> tuple[int, bool, bool]:
        return (self.equality_prefix_length, self.has_range_bound, self.sort_satisfied)

    def rank_key(self) -> tuple[int, bool, bool, bool, int, int]:
        """Larger is better."""
        return (*self.quality, self.covers, -len(self.index), -self.position)

    def to_match_result(self) -> MatchResult:
        return MatchResult(
            chosen=self.index,
            equality_prefix_length=self.equality_prefix_length,
            has_range_bound=self.has_range_bound,
            sort_satisfied=self.sort_satisfied,
            sort_reversed=self.sort_reversed,
        )


def evaluate_index(
    query: QueryDescriptor,
    index: IndexSpec,
    position: int = 0,
    *,
    id_field: str = DEFAULT_ID_FIELD,
) -> IndexEvaluation:
    """
    Compute the match quality of a single index.

    Args:
        query: Parsed query.
        index: Candidate index.
        position: Declaration position, used only as the final tie-break.
        id_field: Identifier field name, for the coverage tie-break.
    """
    fields = index.fields

    prefix = 0
    while prefix < len(fields) and query.is_equality_bound(fields[prefix]):
        prefix += 1

    has_range = prefix < len(fields) and query.is_range_bound(fields[prefix])

    satisfied, reversed_scan = _sort_alignment(query, index, prefix, has_range)
    serves_sort_only = query.is_match_all and bool(query.sort) and satisfied

    covers = can_be_covered(query) and not missing_fields(
        query, index.field_set, id_field
    )

    return IndexEvaluation(
        index=index,
        position=position,
        equality_prefix_length=prefix,
        has_range_bound=has_range,
        sort_satisfied=satisfied,
        sort_reversed=reversed_scan,
        covers=covers,
        serves_sort_only=serves_sort_only,
    )


def _sort_alignment(
    query: QueryDescriptor,
    index: IndexSpec,
    prefix: int,
    has_range: bool,
) -> tuple[bool, bool]:
    """Return (sort satisfied, index walked in reverse)."""
    remaining = [key for key in query.sort if not query.is_equality_bound(key.field)]
    if not remaining:
        return True, False

    starts = [prefix + 1, prefix] if has_range else [prefix]
    for start in starts:
        segment = index.keys[start:start + len(remaining)]
        if len(segment) < len(remaining):
            continue
        if any(k.field != s.field for k, s in zip(segment, remaining)):
            continue

        same = [k.direction == s.direction for k, s in zip(segment, remaining)]
        if all(same):
            return True, False
        if not any(same):
            return True, True
        # Mixed directions cannot be served by one forward or backward walk.

    return False, False


def unmatched(query: QueryDescriptor) -> MatchResult:
    """MatchResult for a full collection scan."""
    return MatchResult(chosen=None, sort_satisfied=not query.sort)


def match(
    query: QueryDescriptor,
    indexes: Sequence[IndexSpec],
    *,
    id_field: str = DEFAULT_ID_FIELD,
) -> MatchResult:
    """
    Pick the best index for a query.

    Args:
        query: Parsed query.
        indexes: The collection's indexes, in declaration order.
        id_field: Identifier field name.

    Returns:
        MatchResult with ``chosen=None`` when the filter is disjunctive or
        no index is eligible.
    """
    if query.is_disjunctive:
        logger.debug("Disjunctive filter on %r: not matched", query.collection)
        return unmatched(query)

    best: IndexEvaluation | None = None
    for position, index in enumerate(indexes):
        evaluation = evaluate_index(query, index, position, id_field=id_field)
        if not evaluation.is_eligible:
            continue
        if best is None or evaluation.rank_key() > best.rank_key():
            best = evaluation

    if best is None:
        return unmatched(query)
    return best.to_match_result()
