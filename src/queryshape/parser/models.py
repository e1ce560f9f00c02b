"""
Canonical query model.

These types are the normalized form every raw request is parsed into:
- FieldPath: validated dot-separated field name
- Predicate tree: Equality | Range | Conjunction | Disjunction
- ProjectionSpec / SortKey: what to return and in which order
- QueryDescriptor: the complete, immutable request handed to the analyzer

All types are frozen. A QueryDescriptor is created per request and only
lives as long as the call that analyzes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterator, Union

from queryshape.exceptions import MalformedFilter


class FieldPath(str):
    """
    A dot-separated document field name, e.g. ``"address.city"``.

    Behaves as a plain string; construction rejects empty paths and
    empty segments (``"a..b"``, ``".a"``).
    """

    __slots__ = ()

    def __new__(cls, value: str) -> "FieldPath":
        if isinstance(value, FieldPath):
            return value
        if not isinstance(value, str):
            raise MalformedFilter(
                f"Field path must be a string, got {type(value).__name__}",
                field_path=repr(value),
            )
        if not value:
            raise MalformedFilter("Field path is empty", field_path=value)
        if any(segment == "" for segment in value.split(".")):
            raise MalformedFilter("Field path has an empty segment", field_path=value)
        return super().__new__(cls, value)

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.split("."))


class Direction(IntEnum):
    """Sort / index key direction."""

    ASCENDING = 1
    DESCENDING = -1

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """
        Parse a direction from ``1``, ``-1``, ``"asc"`` or ``"desc"``.

        Raises:
            ValueError: If the value is not a recognised direction.
        """
        # bool is an int subclass; True must not read as ascending
        if isinstance(value, bool):
            raise ValueError(f"invalid direction: {value!r}")
        if isinstance(value, (int, float)) and value in (1, -1):
            return cls(int(value))
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "asc", "ascending"):
                return cls.ASCENDING
            if lowered in ("-1", "desc", "descending"):
                return cls.DESCENDING
        raise ValueError(f"invalid direction: {value!r}")

    def reversed(self) -> "Direction":
        return Direction(-self.value)


class RangeOperator(str, Enum):
    """Comparison operators that bound a field from one side."""

    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


# =============================================================================
# Predicate tree
# =============================================================================


@dataclass(frozen=True)
class Equality:
    """``field == value``."""

    field: FieldPath
    value: Any = field(default=None, hash=False)

    def iter_fields(self) -> Iterator[FieldPath]:
        yield self.field


@dataclass(frozen=True)
class Range:
    """``field <op> value`` for op in gt/gte/lt/lte."""

    field: FieldPath
    operator: RangeOperator
    value: Any = field(default=None, hash=False)

    def iter_fields(self) -> Iterator[FieldPath]:
        yield self.field


@dataclass(frozen=True)
class Conjunction:
    """All children must hold. Zero children means match-all."""

    children: tuple["Predicate", ...] = ()

    def iter_fields(self) -> Iterator[FieldPath]:
        for child in self.children:
            yield from child.iter_fields()


@dataclass(frozen=True)
class Disjunction:
    """At least one child must hold."""

    children: tuple["Predicate", ...] = ()

    def iter_fields(self) -> Iterator[FieldPath]:
        for child in self.children:
            yield from child.iter_fields()


Leaf = Union[Equality, Range]
Predicate = Union[Equality, Range, Conjunction, Disjunction]

MATCH_ALL = Conjunction()


def contains_disjunction(predicate: Predicate) -> bool:
    """True if a Disjunction appears anywhere in the tree."""
    if isinstance(predicate, Disjunction):
        return True
    if isinstance(predicate, Conjunction):
        return any(contains_disjunction(child) for child in predicate.children)
    return False


def flatten_conjunction(predicate: Predicate) -> tuple[Leaf, ...]:
    """
    Flatten nested conjunctions into their leaves, in filter order.

    Must only be called on trees without a Disjunction.
    """
    if isinstance(predicate, (Equality, Range)):
        return (predicate,)
    if isinstance(predicate, Conjunction):
        leaves: list[Leaf] = []
        for child in predicate.children:
            leaves.extend(flatten_conjunction(child))
        return tuple(leaves)
    raise TypeError("cannot flatten a disjunction")


def _unique(paths: Iterator[FieldPath]) -> tuple[FieldPath, ...]:
    seen: dict[FieldPath, None] = {}
    for path in paths:
        seen.setdefault(path, None)
    return tuple(seen)


# =============================================================================
# Projection and sort
# =============================================================================


@dataclass(frozen=True)
class ProjectionSpec:
    """
    Which fields a query returns.

    Attributes:
        fields: Included fields (inclusive projection) or excluded fields
            (exclusive projection), in declaration order. Never contains
            the identifier field.
        include_id: Whether the identifier field is returned.
        exclusive: True when ``fields`` lists exclusions; the query then
            returns every other field of the document.
    """

    fields: tuple[FieldPath, ...] = ()
    include_id: bool = True
    exclusive: bool = False

    @property
    def is_inclusive(self) -> bool:
        return not self.exclusive

    @property
    def field_set(self) -> frozenset[FieldPath]:
        return frozenset(self.fields)


@dataclass(frozen=True)
class SortKey:
    field: FieldPath
    direction: Direction = Direction.ASCENDING


# =============================================================================
# Query descriptor
# =============================================================================


@dataclass(frozen=True)
class QueryDescriptor:
    """
    Canonical, immutable form of one query request.

    ``leaves`` holds the flattened conjunctive leaves in filter order when
    the filter has no disjunction; when it has one, ``is_disjunctive`` is
    true and ``leaves`` is empty.
    """

    collection: str
    filter: Predicate = MATCH_ALL
    projection: ProjectionSpec | None = None
    sort: tuple[SortKey, ...] = ()
    limit: int | None = None
    unanalyzed_stages: tuple[str, ...] = ()

    is_disjunctive: bool = field(init=False)
    leaves: tuple[Leaf, ...] = field(init=False)

    _equality: dict[str, Equality] = field(
        init=False, repr=False, compare=False, hash=False
    )
    _ranges: dict[str, tuple[Range, ...]] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        disjunctive = contains_disjunction(self.filter)
        leaves = () if disjunctive else flatten_conjunction(self.filter)

        equality: dict[str, Equality] = {}
        ranges: dict[str, list[Range]] = {}
        for leaf in leaves:
            if isinstance(leaf, Equality):
                equality.setdefault(leaf.field, leaf)
            else:
                ranges.setdefault(leaf.field, []).append(leaf)

        object.__setattr__(self, "is_disjunctive", disjunctive)
        object.__setattr__(self, "leaves", leaves)
        object.__setattr__(self, "_equality", equality)
        object.__setattr__(
            self, "_ranges", {k: tuple(v) for k, v in ranges.items()}
        )

    def equality_leaf(self, path: str) -> Equality | None:
        return self._equality.get(path)

    def range_leaves(self, path: str) -> tuple[Range, ...]:
        return self._ranges.get(path, ())

    def is_equality_bound(self, path: str) -> bool:
        return path in self._equality

    def is_range_bound(self, path: str) -> bool:
        return path in self._ranges

    @property
    def equality_fields(self) -> tuple[FieldPath, ...]:
        """Equality-bound fields in the order they appear in the filter."""
        return tuple(self._equality)

    @property
    def range_fields(self) -> tuple[FieldPath, ...]:
        """Range-bound fields that are not also equality-bound, in filter order."""
        return tuple(f for f in self._ranges if f not in self._equality)

    @property
    def filter_fields(self) -> tuple[FieldPath, ...]:
        """Every field the filter references, including inside disjunctions."""
        return _unique(self.filter.iter_fields())

    @property
    def sort_fields(self) -> tuple[FieldPath, ...]:
        return tuple(key.field for key in self.sort)

    @property
    def is_match_all(self) -> bool:
        return isinstance(self.filter, Conjunction) and not self.filter.children
