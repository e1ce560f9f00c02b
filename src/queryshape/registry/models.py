"""
Index declarations.

An IndexSpec is an ordered sequence of (field, direction) keys plus flags.
Identity is the key sequence alone: ``{a: 1, b: 1}`` and ``{b: 1, a: 1}``
are different indexes, while two declarations that differ only in flags
are the same index.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from queryshape.exceptions import MalformedFilter, MalformedIndex
from queryshape.parser.models import Direction, FieldPath


@dataclass(frozen=True)
class IndexKey:
    """One key of an index: a field and its direction."""

    field: FieldPath
    direction: Direction = Direction.ASCENDING

    def __str__(self) -> str:
        return f"{self.field}: {int(self.direction)}"


@dataclass(frozen=True)
class IndexSpec:
    """
    A declared (or synthesized) index.

    Attributes:
        keys: Ordered index keys.
        unique: Unique constraint flag.
        sparse: Sparse index flag (documents missing the field are not indexed).
        partial_filter: Partial filter expression, tracked but not evaluated.
        name: Optional index name; defaults to the conventional
            ``field_dir_field_dir`` form.
    """

    keys: tuple[IndexKey, ...]
    unique: bool = field(default=False, compare=False)
    sparse: bool = field(default=False, compare=False)
    partial_filter: Mapping[str, Any] | None = field(
        default=None, compare=False, hash=False
    )
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.keys:
            raise MalformedIndex("Index must have at least one key")

        seen: set[str] = set()
        for key in self.keys:
            if not isinstance(key, IndexKey):
                raise MalformedIndex(f"Index keys must be IndexKey, got {key!r}")
            if key.field in seen:
                raise MalformedIndex("Field appears twice in index", field_path=key.field)
            seen.add(key.field)

    @classmethod
    def from_keys(
        cls,
        keys: Mapping[str, Any] | Sequence[Any],
        *,
        unique: bool = False,
        sparse: bool = False,
        partial_filter: Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> "IndexSpec":
        """
        Build an index from ``{"age": 1, "name": -1}`` or ``[("age", 1), ...]``.

        Raises:
            MalformedIndex: Empty keys, repeated field, or invalid direction.
        """
        if isinstance(keys, Mapping):
            pairs = list(keys.items())
        elif isinstance(keys, Sequence) and not isinstance(keys, (str, bytes)):
            pairs = []
            for item in keys:
                if (
                    isinstance(item, (str, bytes))
                    or not isinstance(item, Sequence)
                    or len(item) != 2
                ):
                    raise MalformedIndex(
                        f"Index keys must be (field, direction) pairs, got {item!r}"
                    )
                pairs.append((item[0], item[1]))
        else:
            raise MalformedIndex(
                f"Index keys must be a mapping or list of pairs, got {type(keys).__name__}"
            )

        parsed: list[IndexKey] = []
        for raw_field, raw_direction in pairs:
            try:
                path = FieldPath(raw_field)
            except MalformedFilter as e:
                raise MalformedIndex(e.reason, field_path=e.field_path) from e
            try:
                direction = Direction.parse(raw_direction)
            except ValueError as e:
                raise MalformedIndex(
                    f"Invalid index direction {raw_direction!r}",
                    field_path=path,
                ) from e
            parsed.append(IndexKey(path, direction))

        return cls(
            keys=tuple(parsed),
            unique=unique,
            sparse=sparse,
            partial_filter=partial_filter,
            name=name,
        )

    @property
    def fields(self) -> tuple[FieldPath, ...]:
        return tuple(key.field for key in self.keys)

    @property
    def field_set(self) -> frozenset[FieldPath]:
        return frozenset(self.fields)

    @property
    def directions(self) -> tuple[Direction, ...]:
        return tuple(key.direction for key in self.keys)

    @property
    def is_partial(self) -> bool:
        return self.partial_filter is not None

    @property
    def index_name(self) -> str:
        """Declared name, or the conventional ``age_1_name_-1`` form."""
        if self.name:
            return self.name
        return "_".join(f"{k.field}_{int(k.direction)}" for k in self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    def key_document(self) -> dict[str, int]:
        """Keys as a plain ``{field: direction}`` dict."""
        return {key.field: int(key.direction) for key in self.keys}

    def shell_notation(self) -> str:
        """Render as ``{age: 1, name: -1}``."""
        return "{" + ", ".join(str(key) for key in self.keys) + "}"

    def __str__(self) -> str:
        return self.shell_notation()
