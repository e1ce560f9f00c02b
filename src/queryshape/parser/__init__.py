"""Query descriptor parsing module."""

from queryshape.parser.config import DEFAULT_CONFIG, STRICT_CONFIG, ParserConfig
from queryshape.parser.models import (
    Conjunction,
    Direction,
    Disjunction,
    Equality,
    FieldPath,
    ProjectionSpec,
    QueryDescriptor,
    Range,
    RangeOperator,
    SortKey,
)
from queryshape.parser.parser import (
    parse_filter,
    parse_limit,
    parse_projection,
    parse_query,
    parse_sort,
)
from queryshape.parser.pipeline import parse_pipeline

__all__ = [
    "Conjunction",
    "Direction",
    "Disjunction",
    "Equality",
    "FieldPath",
    "ProjectionSpec",
    "QueryDescriptor",
    "Range",
    "RangeOperator",
    "SortKey",
    "parse_query",
    "parse_filter",
    "parse_projection",
    "parse_sort",
    "parse_limit",
    "parse_pipeline",
    "ParserConfig",
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
]
