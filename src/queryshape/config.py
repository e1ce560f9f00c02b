"""
Configuration system for queryshape.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON/YAML config file for local development
- Per-environment profiles

Usage:
    from queryshape.config import get_config

    config = get_config()
    if config.recommendations_enabled:
        ...

Environment variables:
- QUERYSHAPE_CONFIG_FILE=path/to/queryshape.yaml
- QUERYSHAPE_ENVIRONMENT=production
- QUERYSHAPE_RECOMMENDATIONS_ENABLED=false
- QUERYSHAPE_ID_FIELD=_id
- QUERYSHAPE_MAX_FILTER_DEPTH=16
- QUERYSHAPE_MAX_PREDICATES=128
- QUERYSHAPE_LOG_LEVEL=DEBUG (default: WARNING, ERROR in production)
"""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from queryshape.exceptions import ConfigurationError
from queryshape.parser.config import ParserConfig

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Environment profiles."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Parse environment from string, defaulting to development."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.DEVELOPMENT


DEFAULT_LOG_LEVELS = {
    Environment.DEVELOPMENT: "WARNING",
    Environment.STAGING: "WARNING",
    Environment.PRODUCTION: "ERROR",
}


class Config(BaseModel):
    """
    queryshape configuration.

    Loaded from environment variables and an optional config file.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current environment (development/staging/production)",
    )

    recommendations_enabled: bool = Field(
        default=True,
        description="Synthesize index recommendations when the match is not optimal",
    )

    id_field: str = Field(
        default="_id",
        min_length=1,
        description="Default identifier field, implicitly projected",
    )

    max_filter_depth: int = Field(
        default=32,
        gt=0,
        description="Maximum nesting depth of $and/$or in a filter",
    )

    max_predicates: int = Field(
        default=256,
        gt=0,
        description="Maximum number of leaf predicates in a filter",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level applied by the CLI; defaults per environment",
    )

    @model_validator(mode="before")
    @classmethod
    def _environment_log_level(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("log_level") is not None:
            return data
        environment = data.get("environment", Environment.DEVELOPMENT)
        if not isinstance(environment, Environment):
            environment = Environment.from_string(str(environment))
        return {**data, "log_level": DEFAULT_LOG_LEVELS[environment]}

    def parser_config(self) -> ParserConfig:
        """Parser limits derived from this configuration."""
        return ParserConfig(
            max_depth=self.max_filter_depth,
            max_predicates=self.max_predicates,
            id_field=self.id_field,
        )


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer setting %r, using %d", value, default)
        return default


def load_config_from_env() -> Config:
    """Load configuration from QUERYSHAPE_* environment variables."""
    env = os.environ
    config_kwargs: dict[str, Any] = {
        "environment": Environment.from_string(
            env.get("QUERYSHAPE_ENVIRONMENT", "development")
        ),
        "recommendations_enabled": _parse_env_bool(
            env.get("QUERYSHAPE_RECOMMENDATIONS_ENABLED"), True
        ),
        "id_field": env.get("QUERYSHAPE_ID_FIELD") or "_id",
        "max_filter_depth": _parse_env_int(env.get("QUERYSHAPE_MAX_FILTER_DEPTH"), 32),
        "max_predicates": _parse_env_int(env.get("QUERYSHAPE_MAX_PREDICATES"), 256),
    }

    log_level = env.get("QUERYSHAPE_LOG_LEVEL")
    if log_level:
        config_kwargs["log_level"] = log_level.upper()

    try:
        return Config(**config_kwargs)
    except ValidationError as e:
        key = str(e.errors()[0]["loc"][0]) if e.errors() else None
        raise ConfigurationError(f"Invalid configuration: {e}", config_key=key) from e


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file does not exist.

    Raises:
        ConfigurationError: The file exists but is unreadable or invalid.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )

    try:
        return Config(**data)
    except ValidationError as e:
        key = str(e.errors()[0]["loc"][0]) if e.errors() else None
        raise ConfigurationError(
            f"Invalid configuration in {path}: {e}", config_key=key
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. QUERYSHAPE_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get("QUERYSHAPE_CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
