"""Index matching, coverage analysis and recommendation."""

from queryshape.analyzer.coverage import analyze, can_be_covered, referenced_fields
from queryshape.analyzer.matcher import IndexEvaluation, evaluate_index, match
from queryshape.analyzer.models import (
    BenefitLevel,
    MatchResult,
    Recommendation,
    RecommendationKind,
)
from queryshape.analyzer.recommender import (
    build_covering,
    build_primary,
    estimate_benefit,
    recommend,
)

__all__ = [
    "BenefitLevel",
    "IndexEvaluation",
    "MatchResult",
    "Recommendation",
    "RecommendationKind",
    "analyze",
    "build_covering",
    "build_primary",
    "can_be_covered",
    "estimate_benefit",
    "evaluate_index",
    "match",
    "recommend",
    "referenced_fields",
]
