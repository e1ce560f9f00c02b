"""Schema registry: declared indexes per collection."""

from queryshape.registry.locks import ReadWriteLock
from queryshape.registry.models import IndexKey, IndexSpec
from queryshape.registry.registry import RegistrySnapshot, SchemaRegistry

__all__ = [
    "IndexKey",
    "IndexSpec",
    "ReadWriteLock",
    "RegistrySnapshot",
    "SchemaRegistry",
]
