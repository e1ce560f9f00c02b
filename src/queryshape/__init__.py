"""queryshape - Static index and coverage advisor for document-store queries."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from queryshape.exceptions import (
    QueryShapeError,
    QueryValidationError,
    MalformedFilter,
    ConflictingProjection,
    MalformedIndex,
    RegistryError,
    UnknownCollection,
    DuplicateIndex,
    InputError,
    ConfigurationError,
)

# Query descriptors
from queryshape.parser import (
    Direction,
    FieldPath,
    ProjectionSpec,
    QueryDescriptor,
    SortKey,
    parse_pipeline,
    parse_query,
)

# Schema registry
from queryshape.registry import IndexKey, IndexSpec, SchemaRegistry

# Analysis
from queryshape.analyzer import (
    BenefitLevel,
    MatchResult,
    Recommendation,
    analyze,
    match,
    recommend,
)
from queryshape.config import Config, get_config
from queryshape.engine import AnalysisReport, QueryAdvisor

__all__ = [
    "__version__",
    # Exceptions
    "QueryShapeError",
    "QueryValidationError",
    "MalformedFilter",
    "ConflictingProjection",
    "MalformedIndex",
    "RegistryError",
    "UnknownCollection",
    "DuplicateIndex",
    "InputError",
    "ConfigurationError",
    # Parsing
    "Direction",
    "FieldPath",
    "ProjectionSpec",
    "QueryDescriptor",
    "SortKey",
    "parse_query",
    "parse_pipeline",
    # Registry
    "IndexKey",
    "IndexSpec",
    "SchemaRegistry",
    # Analysis
    "BenefitLevel",
    "MatchResult",
    "Recommendation",
    "analyze",
    "match",
    "recommend",
    # Orchestration
    "QueryAdvisor",
    "AnalysisReport",
    "Config",
    "get_config",
]
