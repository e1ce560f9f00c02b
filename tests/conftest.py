"""Shared fixtures for queryshape tests."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from queryshape.config import Config, reset_config
from queryshape.engine import QueryAdvisor
from queryshape.registry import IndexSpec, SchemaRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep QUERYSHAPE_* variables of the host out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith("QUERYSHAPE_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def registry() -> SchemaRegistry:
    """Registry with a users collection indexed on name and on age."""
    registry = SchemaRegistry()
    registry.declare_index("users", IndexSpec.from_keys({"name": 1}))
    registry.declare_index("users", IndexSpec.from_keys({"age": 1}))
    registry.declare_collection("events")
    return registry


@pytest.fixture
def advisor(registry: SchemaRegistry, config: Config) -> QueryAdvisor:
    return QueryAdvisor(registry=registry, config=config)
