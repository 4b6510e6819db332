"""Configuration management for poolreview."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from poolreview.exceptions import ConfigError

POOLREVIEW_DIR = ".poolreview"
CONFIG_FILE = "config.json"
INDEX_DB_FILE = "pool.db"


class ReviewConfig(BaseModel):
    """Settings for generating a review."""

    base_ref: str = "master"
    forbidden_datasheet_domains: list[str] = Field(
        default_factory=lambda: [
            "rs-online.com",
            "digikey.com",
            "mouser.com",
            "farnell.com",
            "octopart.com",
        ]
    )
    closure_workers: int = 1
    git_timeout: int = 30


class IndexerConfig(BaseModel):
    """Pool indexer configuration."""

    exclude_patterns: list[str] = Field(
        default_factory=lambda: [
            ".git",
            ".poolreview",
            "__pycache__",
            "node_modules",
            "*.pyc",
        ]
    )
    max_file_size_kb: int = 2048


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .poolreview directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / POOLREVIEW_DIR).is_dir():
            return current
        current = current.parent
    if (current / POOLREVIEW_DIR).is_dir():
        return current
    return None


def get_poolreview_dir(root: Path) -> Path:
    """Get the .poolreview directory for a pool root."""
    return root / POOLREVIEW_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .poolreview/config.json."""
    config_path = get_poolreview_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return ProjectConfig(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .poolreview/config.json."""
    pr_dir = get_poolreview_dir(root)
    pr_dir.mkdir(parents=True, exist_ok=True)
    config_path = pr_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'review.base_ref')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    return ProjectConfig(**data)
