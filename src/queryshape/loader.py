"""
Load query and index documents from JSON or YAML files.

Query document:

    collection: users
    filter: {age: {$gt: 20}}
    projection: {name: 1, age: 1}
    sort: {age: 1}
    limit: 10

or, for an aggregation:

    collection: orders
    pipeline:
      - $match: {status: A}
      - $group: {_id: $customer}

Index document (collection -> declared indexes, in order):

    users:
      - keys: {age: 1}
      - keys: [[status, 1], [created, -1]]
        sparse: true
    sessions: []

The documents are validated with pydantic, then handed to the parser and
the registry, which apply their own validation and raise their own errors.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, model_validator

from queryshape.exceptions import InputError
from queryshape.parser.config import ParserConfig
from queryshape.parser.models import QueryDescriptor
from queryshape.parser.parser import parse_query
from queryshape.parser.pipeline import parse_pipeline
from queryshape.registry.models import IndexSpec
from queryshape.registry.registry import SchemaRegistry

logger = logging.getLogger(__name__)


class QueryDocument(BaseModel):
    """A find-style query or an aggregation pipeline on one collection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    collection: str = Field(min_length=1, description="Target collection")
    filter: dict[str, Any] | None = Field(default=None, description="Filter document")
    projection: dict[str, Any] | None = Field(
        default=None, description="Projection document"
    )
    sort: dict[str, Any] | list[Any] | None = Field(
        default=None, description="Sort document or list of (field, direction) pairs"
    )
    limit: Any = Field(default=None, description="Result limit")
    pipeline: list[Any] | None = Field(
        default=None, description="Aggregation pipeline stages"
    )

    @model_validator(mode="after")
    def _pipeline_is_exclusive(self) -> "QueryDocument":
        if self.pipeline is not None and any(
            value is not None
            for value in (self.filter, self.projection, self.sort, self.limit)
        ):
            raise ValueError(
                "'pipeline' cannot be combined with filter, projection, sort or limit"
            )
        return self

    def to_descriptor(self, config: ParserConfig | None = None) -> QueryDescriptor:
        if self.pipeline is not None:
            return parse_pipeline(self.collection, self.pipeline, config=config)
        return parse_query(
            self.collection,
            self.filter,
            self.projection,
            self.sort,
            self.limit,
            config=config,
        )


class IndexEntry(BaseModel):
    """One declared index."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    keys: dict[str, Any] | list[Any] = Field(
        description="{field: direction} or [[field, direction], ...]"
    )
    unique: bool = False
    sparse: bool = False
    partial_filter: dict[str, Any] | None = None
    name: str | None = None

    def to_spec(self) -> IndexSpec:
        return IndexSpec.from_keys(
            self.keys,
            unique=self.unique,
            sparse=self.sparse,
            partial_filter=self.partial_filter,
            name=self.name,
        )


class IndexDocument(RootModel[dict[str, list[IndexEntry]]]):
    """Collection name -> indexes in declaration order."""


def read_document(path: str | Path) -> Any:
    """
    Read a JSON or YAML file.

    YAML is selected by the ``.yaml``/``.yml`` suffix; anything else is
    parsed as JSON.

    Raises:
        InputError: The file is missing, unreadable or not well-formed.
    """
    filepath = Path(path)
    source = str(filepath)

    if not filepath.is_file():
        raise InputError(f"File not found: {filepath}", source=source)

    try:
        content = filepath.read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Cannot read file: {filepath}", source=source, detail=str(e)) from e

    try:
        if filepath.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content)
        return json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InputError(f"Invalid document in {filepath}", source=source, detail=str(e)) from e


def _validation_detail(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        loc = " -> ".join(str(x) for x in item["loc"]) or "document"
        lines.append(f"  {loc}: {item['msg']}")
    return "\n".join(lines)


def load_query(
    path: str | Path,
    *,
    config: ParserConfig | None = None,
) -> QueryDescriptor:
    """
    Load and parse a query document.

    Raises:
        InputError: The file cannot be read or has the wrong shape.
        MalformedFilter, ConflictingProjection: Its content is invalid.
    """
    data = read_document(path)
    try:
        document = QueryDocument.model_validate(data)
    except ValidationError as e:
        raise InputError(
            "Query document validation failed",
            source=str(path),
            detail=_validation_detail(e),
        ) from e
    return document.to_descriptor(config)


def load_registry(
    path: str | Path,
    registry: SchemaRegistry | None = None,
) -> SchemaRegistry:
    """
    Declare every collection and index of an index document.

    Args:
        path: Index document file.
        registry: Registry to populate; a new one when omitted.

    Raises:
        InputError: The file cannot be read or has the wrong shape.
        MalformedIndex: An index declaration is invalid.
        DuplicateIndex: An index is declared twice.
    """
    data = read_document(path)
    if data is None:
        data = {}
    try:
        document = IndexDocument.model_validate(data)
    except ValidationError as e:
        raise InputError(
            "Index document validation failed",
            source=str(path),
            detail=_validation_detail(e),
        ) from e

    registry = registry if registry is not None else SchemaRegistry()
    for collection, entries in document.root.items():
        registry.declare_collection(collection)
        for entry in entries:
            registry.declare_index(collection, entry.to_spec())

    logger.debug(
        "Loaded %d collection(s) from %s (registry version %d)",
        len(document.root),
        path,
        registry.version,
    )
    return registry
