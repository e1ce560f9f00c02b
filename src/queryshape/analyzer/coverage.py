"""
Coverage analysis.

A query is covered when the chosen index alone can produce its results:
every field the filter, projection and sort reference is an index key,
and the identifier field is either excluded from the projection or is
itself an index key. Without a projection, or with an exclusion
projection, the whole document is returned and nothing is covered.
"""

from __future__ import annotations

from collections.abc import Collection

from queryshape.analyzer.models import MatchResult
from queryshape.parser.models import FieldPath, QueryDescriptor

DEFAULT_ID_FIELD = "_id"


def can_be_covered(query: QueryDescriptor) -> bool:
    """Only an inclusive projection limits output to a known field set."""
    return query.projection is not None and query.projection.is_inclusive


def referenced_fields(
    query: QueryDescriptor,
    id_field: str = DEFAULT_ID_FIELD,
) -> tuple[FieldPath, ...]:
    """
    Fields the query reads, in filter, sort, projection order.

    The identifier field is included when the projection returns it.
    """
    ordered: dict[str, FieldPath] = {}
    for path in query.filter_fields:
        ordered.setdefault(path, path)
    for path in query.sort_fields:
        ordered.setdefault(path, path)
    if query.projection is not None and query.projection.is_inclusive:
        for path in query.projection.fields:
            ordered.setdefault(path, path)
        if query.projection.include_id:
            ordered.setdefault(id_field, FieldPath(id_field))
    return tuple(ordered.values())


def missing_fields(
    query: QueryDescriptor,
    index_fields: Collection[str],
    id_field: str = DEFAULT_ID_FIELD,
) -> tuple[FieldPath, ...]:
    """Referenced fields that the index does not store."""
    return tuple(
        path
        for path in referenced_fields(query, id_field)
        if path not in index_fields
    )


def analyze(
    query: QueryDescriptor,
    result: MatchResult,
    *,
    id_field: str = DEFAULT_ID_FIELD,
) -> MatchResult:
    """
    Return a copy of ``result`` with ``is_covered`` set.

    Pure function: neither argument is modified.
    """
    if result.chosen is None or not can_be_covered(query):
        return result.with_coverage(False)

    covered = not missing_fields(query, result.chosen.field_set, id_field)
    return result.with_coverage(covered)
