"""
Package-level exception hierarchy for queryshape.

All exceptions inherit from QueryShapeError, enabling:
- Catching all advisor errors with a single except clause
- Context fields for correcting the request (field_path, collection, ...)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    QueryShapeError
    ├── QueryValidationError       – The request itself is invalid
    │   ├── MalformedFilter        – Unknown operator, empty path, bad shape
    │   ├── ConflictingProjection  – Mixed inclusion/exclusion projection
    │   └── MalformedIndex         – Invalid index declaration
    ├── RegistryError              – Schema registry lookups and mutations
    │   ├── UnknownCollection      – No registry entry for the collection
    │   └── DuplicateIndex         – Field-identical index already declared
    ├── InputError                 – A query/index document could not be loaded
    └── ConfigurationError         – Invalid configuration

None of these are transient: the advisor performs no I/O during analysis,
so callers should treat them as input errors and never retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from queryshape.registry.models import IndexSpec


class QueryShapeError(Exception):
    """
    Base exception for all queryshape errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Request validation ───────────────────────────────────────────────────


class QueryValidationError(QueryShapeError):
    """
    A query or index description failed validation.

    Attributes:
        field_path: The offending field path, operator or key (if known).
        reason: Short description of what is wrong.
    """

    def __init__(self, reason: str, field_path: str | None = None) -> None:
        self.field_path = field_path
        self.reason = reason

        if field_path is not None:
            message = f"{reason} (at {field_path!r})"
        else:
            message = reason
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field_path"] = self.field_path
        result["reason"] = self.reason
        return result


class MalformedFilter(QueryValidationError):
    """
    The filter (or another part of the query descriptor) is malformed.

    Raised for unknown operator keys, empty conjunctions/disjunctions,
    empty field paths, and structurally invalid sort, limit or pipeline input.
    """


class ConflictingProjection(QueryValidationError):
    """
    The projection mixes inclusion and exclusion of non-identifier fields.

    A projection is either strictly inclusive or strictly exclusive; only
    the identifier field may be excluded from an inclusive projection.
    """


class MalformedIndex(QueryValidationError):
    """An index declaration is invalid (no keys, repeated field, bad direction)."""


# ── Registry ─────────────────────────────────────────────────────────────


class RegistryError(QueryShapeError):
    """Errors raised by the schema registry."""
    pass


class UnknownCollection(RegistryError):
    """
    The schema registry has no entry for the requested collection.

    Attributes:
        collection: The collection name that was looked up.
    """

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"Unknown collection: {collection!r}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["collection"] = self.collection
        return result


class DuplicateIndex(RegistryError):
    """
    An index with the same field and direction sequence is already declared.

    Attributes:
        collection: Target collection.
        index: The rejected index declaration.
    """

    def __init__(self, collection: str, index: "IndexSpec") -> None:
        self.collection = collection
        self.index = index
        super().__init__(
            f"Index {index.shell_notation()} already declared on {collection!r}"
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["collection"] = self.collection
        result["index"] = self.index.key_document()
        return result


# ── Input loading ────────────────────────────────────────────────────────


class InputError(QueryShapeError):
    """
    A query or index document could not be read or validated.

    Attributes:
        source: Where the input came from (file path, "stdin", ...).
        detail: Technical details for debugging (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.source = source
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        result["detail"] = self.detail
        return result


# ── Configuration ────────────────────────────────────────────────────────


class ConfigurationError(QueryShapeError):
    """
    Error in advisor configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
