"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from poolreview.config import (
    ProjectConfig,
    find_project_root,
    load_config,
    save_config,
    set_config_value,
)
from poolreview.exceptions import ConfigError


class TestConfig:
    def test_default_config(self):
        config = ProjectConfig()
        assert config.review.base_ref == "master"
        assert "mouser.com" in config.review.forbidden_datasheet_domains
        assert config.review.closure_workers == 1
        assert ".git" in config.indexer.exclude_patterns

    def test_save_and_load(self, tmp_path: Path):
        config = ProjectConfig(name="test-pool")
        config.review.base_ref = "main"
        config.review.closure_workers = 4

        save_config(tmp_path, config)
        loaded = load_config(tmp_path)

        assert loaded.name == "test-pool"
        assert loaded.review.base_ref == "main"
        assert loaded.review.closure_workers == 4

    def test_load_without_file(self, tmp_path: Path):
        config = load_config(tmp_path)
        assert config.name == tmp_path.name
        assert config.root_path == str(tmp_path)

    def test_load_invalid_file(self, tmp_path: Path):
        (tmp_path / ".poolreview").mkdir()
        (tmp_path / ".poolreview" / "config.json").write_text("{broken")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_load_invalid_value(self, tmp_path: Path):
        (tmp_path / ".poolreview").mkdir()
        (tmp_path / ".poolreview" / "config.json").write_text(
            '{"review": {"closure_workers": "many"}}'
        )
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_find_project_root(self, tmp_path: Path):
        # No .poolreview dir - should return None
        assert find_project_root(tmp_path) is None

        (tmp_path / ".poolreview").mkdir()
        assert find_project_root(tmp_path) == tmp_path

        # Should find from subdirectory
        sub = tmp_path / "parts" / "passive"
        sub.mkdir(parents=True)
        assert find_project_root(sub) == tmp_path

    def test_set_config_value(self):
        config = ProjectConfig()
        updated = set_config_value(config, "name", "my-pool")
        assert updated.name == "my-pool"

    def test_set_config_nested(self):
        config = ProjectConfig()
        updated = set_config_value(config, "indexer.max_file_size_kb", 64)
        assert updated.indexer.max_file_size_kb == 64

    def test_set_config_invalid_key(self):
        config = ProjectConfig()
        with pytest.raises(KeyError):
            set_config_value(config, "review.nonexistent", "value")
        with pytest.raises(KeyError):
            set_config_value(config, "nope.base_ref", "value")
