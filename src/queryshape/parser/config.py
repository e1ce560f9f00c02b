"""
Parser configuration with resource limits.

These limits stop pathological filters (deeply nested $and/$or trees,
thousands of leaves) before any matching is attempted. The defaults are
generous for hand-written queries.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParserConfig(BaseModel):
    """
    Configuration for the query descriptor parser.

    Attributes:
        max_depth: Maximum nesting of logical operators in a filter.
        max_predicates: Maximum number of leaf predicates in a filter.
        id_field: Name of the default identifier field.

    Example:
        # Stricter limits for an API exposed to untrusted callers
        config = ParserConfig(max_depth=8, max_predicates=64)
    """

    model_config = ConfigDict(frozen=True)

    max_depth: int = Field(
        default=32,
        gt=0,
        description="Maximum nesting depth of $and/$or",
    )

    max_predicates: int = Field(
        default=256,
        gt=0,
        description="Maximum number of leaf predicates",
    )

    id_field: str = Field(
        default="_id",
        min_length=1,
        description="Default identifier field, implicitly projected",
    )


DEFAULT_CONFIG = ParserConfig()

STRICT_CONFIG = ParserConfig(max_depth=8, max_predicates=64)
