"""
Archivist Configuration — Load and validate archivist.yaml at startup.

Usage:
    from archivist.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from archivist.engine.errors import ConfigError

CONFIG_FILE_NAME = "archivist.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for archivist.yaml
# ---------------------------------------------------------------------------

class CacheConfig(BaseModel):
    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    prefix: str = "archivist:"
    db: int = 3
    default_ttl_ms: int = 5 * 60 * 1000

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("memory", "redis"):
            raise ValueError(f"cache backend must be memory/redis, got '{v}'")
        return v


class CollectionsConfig(BaseModel):
    documents: str = "otk_documents"
    resources: str = "academic_resources"
    anchor: str = "main"


class RemoteConfig(BaseModel):
    base_url: str = "http://localhost:8080/api"
    timeout: float = 10.0


class NavigationConfig(BaseModel):
    max_depth: int = Field(default=64, ge=1)


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    directory: str = ".archivist/logs"
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError(f"log format must be json/text, got '{v}'")
        return v


class ArchivistConfig(BaseModel):
    """Root model for archivist.yaml."""
    name: str = "Archivist"
    environment: str = "dev"

    cache: CacheConfig = CacheConfig()
    collections: CollectionsConfig = CollectionsConfig()
    remote: RemoteConfig = RemoteConfig()
    navigation: NavigationConfig = NavigationConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[ArchivistConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for archivist.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILE_NAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> ArchivistConfig:
    """
    Load and validate archivist.yaml.

    Args:
        config_path: Explicit path to archivist.yaml. If None, auto-discovers.

    Returns:
        Validated ArchivistConfig instance.

    Raises:
        ConfigError: The file exists but is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILE_NAME)

    path = Path(config_path)
    if not path.exists():
        _config = ArchivistConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping", path=str(path))

    # Accept an optional top-level "archivist:" wrapper
    data = raw.get("archivist", raw)
    try:
        _config = ArchivistConfig(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}", path=str(path)) from e
    return _config


def get_config() -> ArchivistConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
