"""
Schema registry: the declared indexes of every collection.

The registry is the only shared mutable state in the advisor. It is
modeled as a versioned reader-writer resource:

- Analyses read a collection's index tuple under the read lock. Any
  number of them may proceed together.
- ``declare_index`` takes the write lock, so it waits for in-flight
  analyses to finish, then atomically publishes a new tuple and bumps
  the version. Later analyses observe the new index.

Index tuples are immutable, so a snapshot taken under the read lock stays
valid after the lock is released.

Example:
    registry = SchemaRegistry()
    registry.declare_index("users", IndexSpec.from_keys({"name": 1}))

    with registry.reading("users") as snapshot:
        result = match(query, snapshot.indexes)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from queryshape.exceptions import DuplicateIndex, MalformedIndex, UnknownCollection
from queryshape.registry.locks import ReadWriteLock
from queryshape.registry.models import IndexSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """A collection's indexes as of one registry version."""

    collection: str
    version: int
    indexes: tuple[IndexSpec, ...]


class SchemaRegistry:
    """
    Per-collection index declarations, in declaration order.

    Thread-safe: reads share a reader-writer lock, declarations are
    exclusive.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._collections: dict[str, tuple[IndexSpec, ...]] = {}
        self._version = 0

    # ── Administrative mutations ─────────────────────────────────────────

    def declare_collection(self, collection: str) -> None:
        """Register a collection with no indexes. No-op if it already exists."""
        _check_collection_name(collection)
        with self._lock.write_locked():
            if collection in self._collections:
                return
            self._collections[collection] = ()
            self._version += 1
            logger.debug("Declared collection %r (version %d)", collection, self._version)

    def declare_index(self, collection: str, spec: IndexSpec) -> None:
        """
        Declare an index on a collection, creating the collection if needed.

        Raises:
            DuplicateIndex: A field-identical index is already declared.
            MalformedIndex: The collection name is empty.
        """
        _check_collection_name(collection)
        with self._lock.write_locked():
            current = self._collections.get(collection, ())
            if spec in current:
                raise DuplicateIndex(collection, spec)
            self._collections[collection] = current + (spec,)
            self._version += 1
            logger.debug(
                "Declared index %s on %r (version %d)",
                spec.shell_notation(),
                collection,
                self._version,
            )

    # ── Reads ────────────────────────────────────────────────────────────

    @contextmanager
    def reading(self, collection: str) -> Iterator[RegistrySnapshot]:
        """
        Hold the read lock for the duration of an analysis.

        Raises:
            UnknownCollection: The collection was never declared.
        """
        with self._lock.read_locked():
            yield self._snapshot_unlocked(collection)

    def snapshot(self, collection: str) -> RegistrySnapshot:
        """Current indexes of a collection."""
        with self._lock.read_locked():
            return self._snapshot_unlocked(collection)

    def indexes(self, collection: str) -> tuple[IndexSpec, ...]:
        """Declared indexes of a collection, in declaration order."""
        return self.snapshot(collection).indexes

    def has_collection(self, collection: str) -> bool:
        with self._lock.read_locked():
            return collection in self._collections

    def collections(self) -> list[str]:
        """Declared collection names, in declaration order."""
        with self._lock.read_locked():
            return list(self._collections)

    @property
    def version(self) -> int:
        """Incremented on every successful mutation."""
        with self._lock.read_locked():
            return self._version

    def _snapshot_unlocked(self, collection: str) -> RegistrySnapshot:
        try:
            indexes = self._collections[collection]
        except KeyError:
            raise UnknownCollection(collection) from None
        return RegistrySnapshot(collection, self._version, indexes)


def _check_collection_name(collection: str) -> None:
    if not isinstance(collection, str) or not collection:
        raise MalformedIndex(
            "Collection name must be a non-empty string",
            field_path="collection",
        )
