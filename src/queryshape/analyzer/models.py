"""
Data models for the analyzer module.

These are the outputs of matching, coverage analysis and recommendation.
They're designed to be:
- Immutable (frozen=True): produced fresh per analysis, never mutated
- Comparable: two analyses of the same query against the same registry
  state compare equal
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum, IntEnum

from queryshape.registry.models import IndexSpec


class BenefitLevel(IntEnum):
    """
    Ordinal estimate of what a recommended index buys.

    NONE: the current match is already as good
    PARTIAL: better index match, documents still fetched
    FULL_COVERAGE: the index alone answers the query
    """

    NONE = 0
    PARTIAL = 1
    FULL_COVERAGE = 2

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


class RecommendationKind(str, Enum):
    """Which synthesis rule produced a recommendation."""

    PRIMARY = "primary"
    COVERING = "covering"


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching one query against a collection's indexes.

    Attributes:
        chosen: Best supporting index, or None (full collection scan).
        equality_prefix_length: Leading index fields bound by equality.
        has_range_bound: The field after the equality prefix is range-bound.
        sort_satisfied: The requested sort comes from index order (always
            true when no sort is requested).
        sort_reversed: The index must be walked backwards for the sort.
        is_covered: The index alone answers the query.
    """

    chosen: IndexSpec | None = None
    equality_prefix_length: int = 0
    has_range_bound: bool = False
    sort_satisfied: bool = True
    sort_reversed: bool = False
    is_covered: bool = False

    @property
    def requires_collection_scan(self) -> bool:
        return self.chosen is None

    def with_coverage(self, is_covered: bool) -> "MatchResult":
        return dataclasses.replace(self, is_covered=is_covered)


@dataclass(frozen=True)
class Recommendation:
    """
    A synthesized index suggestion.

    Attributes:
        collection: Collection the index belongs on.
        index: The suggested index.
        benefit: Ordinal benefit estimate.
        kind: Primary (minimal full-prefix index) or covering.
        reason: Human-readable explanation of the key order.
        notes: Caveats the caller should act on.
    """

    collection: str
    index: IndexSpec
    benefit: BenefitLevel
    kind: RecommendationKind = RecommendationKind.PRIMARY
    reason: str = ""
    notes: tuple[str, ...] = ()

    @property
    def command(self) -> str:
        """Ready-to-run shell command creating the index."""
        return f"db.{self.collection}.createIndex({self.index.shell_notation()})"
