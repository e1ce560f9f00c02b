"""
Query descriptor parser.

Normalizes a raw request (filter mapping, optional projection, sort and
limit) into a QueryDescriptor. The filter grammar is the familiar
document-database one:

    {"name": "John"}                          equality
    {"age": {"$gt": 20}}                      range ($gt, $gte, $lt, $lte)
    {"age": {"$eq": 30}}                      explicit equality
    {"$and": [{...}, {...}]}                  conjunction
    {"$or": [{...}, {...}]}                   disjunction

Several top-level keys are an implicit conjunction. Operator keys inside a
field's operator mapping may be written without the ``$``.

Error handling philosophy: fail fast with the offending field path. The
parser never returns a partially-parsed descriptor.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from queryshape.exceptions import ConflictingProjection, MalformedFilter
from queryshape.parser.config import DEFAULT_CONFIG, ParserConfig
from queryshape.parser.models import (
    MATCH_ALL,
    Conjunction,
    Direction,
    Disjunction,
    Equality,
    FieldPath,
    Predicate,
    ProjectionSpec,
    QueryDescriptor,
    Range,
    RangeOperator,
    SortKey,
)

LOGICAL_OPERATORS = frozenset({"$and", "$or"})

_RANGE_OPERATORS = {op.value: op for op in RangeOperator}


def parse_query(
    collection: str,
    raw_filter: Mapping[str, Any] | None = None,
    raw_projection: Mapping[str, Any] | None = None,
    raw_sort: Mapping[str, Any] | Sequence[Any] | None = None,
    raw_limit: int | None = None,
    *,
    config: ParserConfig | None = None,
) -> QueryDescriptor:
    """
    Parse a raw query request into a QueryDescriptor.

    Args:
        collection: Target collection name.
        raw_filter: Filter mapping. None or ``{}`` matches every document.
        raw_projection: Projection mapping of field -> 0/1.
        raw_sort: Sort as a mapping of field -> direction, or a sequence
            of ``(field, direction)`` pairs.
        raw_limit: Optional non-negative limit.
        config: Parser limits. Defaults to DEFAULT_CONFIG.

    Returns:
        QueryDescriptor: The canonical, immutable query.

    Raises:
        MalformedFilter: Unknown operator, empty logical clause list,
            empty field path, invalid sort direction or limit.
        ConflictingProjection: The projection mixes inclusion and exclusion.

    Example:
        >>> q = parse_query("users", {"name": "John"}, {"_id": 0, "name": 1})
        >>> q.equality_fields
        ('name',)
    """
    config = config or DEFAULT_CONFIG

    if not isinstance(collection, str) or not collection:
        raise MalformedFilter(
            "Collection name must be a non-empty string",
            field_path="collection",
        )

    return QueryDescriptor(
        collection=collection,
        filter=parse_filter(raw_filter, config=config),
        projection=parse_projection(raw_projection, config=config),
        sort=parse_sort(raw_sort),
        limit=parse_limit(raw_limit),
    )


# =============================================================================
# Filter
# =============================================================================


def parse_filter(
    raw_filter: Mapping[str, Any] | None,
    *,
    config: ParserConfig | None = None,
) -> Predicate:
    """Parse a filter mapping into a predicate tree."""
    config = config or DEFAULT_CONFIG

    if raw_filter is None:
        return MATCH_ALL
    if not isinstance(raw_filter, Mapping):
        raise MalformedFilter(
            f"Filter must be a mapping, got {type(raw_filter).__name__}"
        )

    counter = _LeafCounter(config.max_predicates)
    return _parse_document(raw_filter, depth=0, config=config, counter=counter)


class _LeafCounter:
    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.count = 0

    def add(self, path: str) -> None:
        self.count += 1
        if self.count > self.limit:
            raise MalformedFilter(
                f"Filter has more than {self.limit} predicates",
                field_path=path,
            )


def _parse_document(
    document: Mapping[str, Any],
    *,
    depth: int,
    config: ParserConfig,
    counter: _LeafCounter,
) -> Predicate:
    children: list[Predicate] = []

    for key, value in document.items():
        if not isinstance(key, str):
            raise MalformedFilter(f"Filter keys must be strings, got {key!r}")

        if key in LOGICAL_OPERATORS:
            children.append(
                _parse_logical(key, value, depth=depth, config=config, counter=counter)
            )
        elif key.startswith("$"):
            raise MalformedFilter(f"Unknown operator {key!r}", field_path=key)
        else:
            children.extend(_parse_field(FieldPath(key), value, counter))

    if len(children) == 1:
        return children[0]
    return Conjunction(tuple(children))


def _parse_logical(
    operator: str,
    clauses: Any,
    *,
    depth: int,
    config: ParserConfig,
    counter: _LeafCounter,
) -> Predicate:
    if depth + 1 > config.max_depth:
        raise MalformedFilter(
            f"Filter nested deeper than {config.max_depth} levels",
            field_path=operator,
        )
    if isinstance(clauses, (str, bytes, Mapping)) or not isinstance(clauses, Sequence):
        raise MalformedFilter(
            f"{operator} requires a list of filter documents",
            field_path=operator,
        )
    if len(clauses) == 0:
        raise MalformedFilter(
            f"{operator} requires at least one clause",
            field_path=operator,
        )

    parsed: list[Predicate] = []
    for clause in clauses:
        if not isinstance(clause, Mapping):
            raise MalformedFilter(
                f"{operator} clauses must be filter documents, "
                f"got {type(clause).__name__}",
                field_path=operator,
            )
        parsed.append(
            _parse_document(clause, depth=depth + 1, config=config, counter=counter)
        )

    if operator == "$or":
        return Disjunction(tuple(parsed))
    return Conjunction(tuple(parsed))


def _parse_field(
    path: FieldPath,
    value: Any,
    counter: _LeafCounter,
) -> list[Predicate]:
    """Parse ``path: value`` into one or more leaves."""
    if not isinstance(value, Mapping):
        counter.add(path)
        return [Equality(path, value)]

    if not value:
        raise MalformedFilter("Empty operator document", field_path=path)

    leaves: list[Predicate] = []
    for operator, operand in value.items():
        name = _operator_name(operator, path)
        counter.add(path)
        if name == "eq":
            leaves.append(Equality(path, operand))
        elif name in _RANGE_OPERATORS:
            leaves.append(Range(path, _RANGE_OPERATORS[name], operand))
        else:
            raise MalformedFilter(f"Unknown operator {operator!r}", field_path=path)
    return leaves


def _operator_name(operator: Any, path: str) -> str:
    if not isinstance(operator, str) or not operator:
        raise MalformedFilter(f"Unknown operator {operator!r}", field_path=path)
    return operator[1:] if operator.startswith("$") else operator


# =============================================================================
# Projection
# =============================================================================


def parse_projection(
    raw_projection: Mapping[str, Any] | None,
    *,
    config: ParserConfig | None = None,
) -> ProjectionSpec | None:
    """
    Parse a projection mapping.

    Returns None when no projection was given (the whole document is
    returned). The identifier field is included unless explicitly set to 0.
    """
    config = config or DEFAULT_CONFIG

    if raw_projection is None:
        return None
    if not isinstance(raw_projection, Mapping):
        raise ConflictingProjection(
            f"Projection must be a mapping, got {type(raw_projection).__name__}"
        )
    if not raw_projection:
        return None

    include_id = True
    included: list[FieldPath] = []
    excluded: list[FieldPath] = []

    for key, value in raw_projection.items():
        path = FieldPath(key)
        flag = _projection_flag(path, value)
        if path == config.id_field:
            include_id = flag
        elif flag:
            included.append(path)
        else:
            excluded.append(path)

    if included and excluded:
        raise ConflictingProjection(
            "Projection cannot mix inclusion and exclusion of non-identifier fields",
            field_path=excluded[0],
        )

    _check_path_collisions(included or excluded)

    if excluded:
        return ProjectionSpec(
            fields=tuple(excluded), include_id=include_id, exclusive=True
        )
    if included or include_id:
        return ProjectionSpec(fields=tuple(included), include_id=include_id)
    # {_id: 0} alone: every field except the identifier
    return ProjectionSpec(include_id=False, exclusive=True)


def _projection_flag(path: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    raise ConflictingProjection(
        f"Projection values must be 0/1 or true/false, got {value!r}",
        field_path=path,
    )


def _check_path_collisions(paths: list[FieldPath]) -> None:
    for i, first in enumerate(paths):
        for second in paths[i + 1:]:
            shorter, longer = sorted((first, second), key=len)
            if longer.startswith(shorter + "."):
                raise ConflictingProjection(
                    f"Path collision between {shorter!r} and {longer!r}",
                    field_path=longer,
                )


# =============================================================================
# Sort and limit
# =============================================================================


def parse_sort(
    raw_sort: Mapping[str, Any] | Sequence[Any] | None,
) -> tuple[SortKey, ...]:
    """
    Parse a sort document.

    Accepts ``{"age": 1, "name": -1}`` or ``[("age", 1), ("name", -1)]``.
    """
    if raw_sort is None:
        return ()

    if isinstance(raw_sort, Mapping):
        pairs = list(raw_sort.items())
    elif isinstance(raw_sort, Sequence) and not isinstance(raw_sort, (str, bytes)):
        pairs = []
        for item in raw_sort:
            if (
                isinstance(item, (str, bytes))
                or not isinstance(item, Sequence)
                or len(item) != 2
            ):
                raise MalformedFilter(
                    f"Sort entries must be (field, direction) pairs, got {item!r}",
                    field_path="sort",
                )
            pairs.append((item[0], item[1]))
    else:
        raise MalformedFilter(
            f"Sort must be a mapping or a list of pairs, got {type(raw_sort).__name__}",
            field_path="sort",
        )

    keys: list[SortKey] = []
    seen: set[str] = set()
    for raw_field, raw_direction in pairs:
        path = FieldPath(raw_field)
        if path in seen:
            raise MalformedFilter("Field appears twice in sort", field_path=path)
        seen.add(path)
        try:
            direction = Direction.parse(raw_direction)
        except ValueError as e:
            raise MalformedFilter(
                f"Invalid sort direction {raw_direction!r}",
                field_path=path,
            ) from e
        keys.append(SortKey(path, direction))

    return tuple(keys)


def parse_limit(raw_limit: Any) -> int | None:
    """Validate a limit: None or a non-negative integer."""
    if raw_limit is None:
        return None
    if isinstance(raw_limit, bool) or not isinstance(raw_limit, int):
        raise MalformedFilter(
            f"Limit must be an integer, got {type(raw_limit).__name__}",
            field_path="limit",
        )
    if raw_limit < 0:
        raise MalformedFilter(
            f"Limit must be non-negative, got {raw_limit}",
            field_path="limit",
        )
    return raw_limit
