"""
Aggregation pipeline prefix analysis.

Only the leading stages of a pipeline can be served by an index. This
module folds those stages into a QueryDescriptor so the same matcher,
coverage analyzer and recommender apply:

    [{"$match": {"status": "A"}},        -> filter
     {"$sort": {"created": -1}},         -> sort
     {"$project": {"_id": 0, ...}},      -> projection
     {"$limit": 10},                     -> limit
     {"$group": {...}}]                  -> unanalyzed_stages = ("$group",)

The first stage that is not index-eligible ends the prefix; it and every
later stage are reported as unanalyzed. Any stage after $limit ends the
prefix, and so does a $project that computes or renames fields.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from queryshape.exceptions import MalformedFilter
from queryshape.parser.config import DEFAULT_CONFIG, ParserConfig
from queryshape.parser.models import (
    MATCH_ALL,
    Conjunction,
    Predicate,
    ProjectionSpec,
    QueryDescriptor,
    SortKey,
)
from queryshape.parser.parser import (
    parse_filter,
    parse_limit,
    parse_projection,
    parse_sort,
)

logger = logging.getLogger(__name__)

ELIGIBLE_STAGES = frozenset({"$match", "$sort", "$project", "$limit"})


def parse_pipeline(
    collection: str,
    stages: Sequence[Mapping[str, Any]],
    *,
    config: ParserConfig | None = None,
) -> QueryDescriptor:
    """
    Build a QueryDescriptor from the index-eligible prefix of a pipeline.

    Args:
        collection: Target collection name.
        stages: Pipeline stages, each a single-key mapping like
            ``{"$match": {...}}``.
        config: Parser limits.

    Returns:
        QueryDescriptor describing the analysable prefix.

    Raises:
        MalformedFilter: A stage is not a single ``$``-prefixed key mapping,
            or the folded $match/$sort/$limit content is malformed.
        ConflictingProjection: A folded $project is conflicting.
    """
    config = config or DEFAULT_CONFIG

    if not isinstance(collection, str) or not collection:
        raise MalformedFilter(
            "Collection name must be a non-empty string",
            field_path="collection",
        )
    if isinstance(stages, (str, bytes, Mapping)) or not isinstance(stages, Sequence):
        raise MalformedFilter("Pipeline must be a list of stages", field_path="pipeline")

    matches: list[Predicate] = []
    sort: tuple[SortKey, ...] | None = None
    projection: ProjectionSpec | None = None
    projected = False
    limit: int | None = None
    stop_at = len(stages)

    for position, stage in enumerate(stages):
        name, body = _stage_parts(stage, position)

        if name not in ELIGIBLE_STAGES or limit is not None:
            stop_at = position
            break

        if name == "$match" and not projected:
            if not isinstance(body, Mapping):
                raise MalformedFilter(
                    "$match requires a filter document",
                    field_path=f"pipeline[{position}]",
                )
            matches.append(parse_filter(body, config=config))
        elif name == "$sort" and sort is None:
            sort = parse_sort(body)
        elif name == "$project" and not projected and _is_field_selection(body):
            projection = parse_projection(body, config=config)
            projected = True
        elif name == "$limit" and limit is None:
            limit = parse_limit(body)
        else:
            stop_at = position
            break

    unanalyzed = tuple(
        _stage_parts(stage, position)[0]
        for position, stage in enumerate(stages)
        if position >= stop_at
    )
    if unanalyzed:
        logger.debug(
            "Pipeline prefix ends at stage %d (%s); %d stage(s) unanalyzed",
            stop_at,
            unanalyzed[0],
            len(unanalyzed),
        )

    return QueryDescriptor(
        collection=collection,
        filter=_combine(matches),
        projection=projection,
        sort=sort or (),
        limit=limit,
        unanalyzed_stages=unanalyzed,
    )


def _stage_parts(stage: Any, position: int) -> tuple[str, Any]:
    if not isinstance(stage, Mapping) or len(stage) != 1:
        raise MalformedFilter(
            "Pipeline stage must be a mapping with exactly one key",
            field_path=f"pipeline[{position}]",
        )
    (name, body), = stage.items()
    if not isinstance(name, str) or not name.startswith("$") or len(name) < 2:
        raise MalformedFilter(
            f"Unknown pipeline stage {name!r}",
            field_path=f"pipeline[{position}]",
        )
    return name, body


def _combine(matches: list[Predicate]) -> Predicate:
    if not matches:
        return MATCH_ALL
    if len(matches) == 1:
        return matches[0]
    return Conjunction(tuple(matches))


def _is_field_selection(body: Any) -> bool:
    """True for a $project that only includes or excludes fields."""
    if not isinstance(body, Mapping):
        return False
    return all(
        isinstance(value, bool) or (isinstance(value, int) and value in (0, 1))
        for value in body.values()
    )
