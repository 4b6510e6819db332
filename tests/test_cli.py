"""Tests for the CLI interface."""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

import pytest
from click.testing import CliRunner

from poolreview.cli import main
from poolreview.graph.store import IndexStore

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def indexed_pool(tmp_pool: Path) -> Path:
    """Create a tmp_pool that has been indexed."""
    runner = CliRunner()
    result = runner.invoke(main, ["init", "--path", str(tmp_pool)])
    assert result.exit_code == 0, f"Init failed: {result.output}"
    return tmp_pool


@pytest.fixture
def git_pool(indexed_pool: Path) -> Path:
    """An indexed pool under git with the derived part modified."""

    def git(*args: str) -> None:
        subprocess.run(
            ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
            cwd=indexed_pool,
            check=True,
            capture_output=True,
        )

    (indexed_pool / ".gitignore").write_text(".poolreview/\n")
    git("init", "-q")
    git("add", ".")
    git("commit", "-q", "-m", "initial")

    part = indexed_pool / "parts" / "opa1-t.json"
    part.write_text(part.read_text().replace("OPA1-T", "OPA1-TR"))
    return indexed_pool


class TestCLIInit:
    def test_init_basic(self, runner: CliRunner, tmp_pool: Path):
        result = runner.invoke(main, ["init", "--path", str(tmp_pool)])
        assert result.exit_code == 0
        assert "Initializing" in result.output
        assert "Indexed 8 items" in result.output

    def test_init_creates_poolreview_dir(self, runner: CliRunner, tmp_pool: Path):
        runner.invoke(main, ["init", "--path", str(tmp_pool), "--base", "main"])
        assert (tmp_pool / ".poolreview" / "config.json").exists()
        assert (tmp_pool / ".poolreview" / "pool.db").exists()
        config = json.loads((tmp_pool / ".poolreview" / "config.json").read_text())
        assert config["review"]["base_ref"] == "main"

        index = IndexStore(tmp_pool / ".poolreview" / "pool.db")
        assert index.get_metadata("built_at") is not None
        assert index.get_metadata("stats")["total_items"] == 8
        index.close()

    def test_init_nonexistent_path(self, runner: CliRunner):
        result = runner.invoke(main, ["init", "--path", "/nonexistent/path"])
        assert result.exit_code != 0


class TestCLIIndex:
    def test_index(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(main, ["index", "--path", str(indexed_pool)])
        assert result.exit_code == 0
        assert "Indexed" in result.output

    def test_index_with_broken_file(self, runner: CliRunner, indexed_pool: Path):
        (indexed_pool / "parts" / "broken.json").write_text("{")
        result = runner.invoke(main, ["index", "--path", str(indexed_pool)])
        assert result.exit_code == 1
        assert "parts/broken.json" in result.output


class TestCLIStatus:
    def test_status(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(main, ["status", "--path", str(indexed_pool)])
        assert result.exit_code == 0
        assert "Total Items" in result.output

    def test_status_no_index(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(main, ["status", "--path", str(tmp_path)])
        assert result.exit_code != 0


class TestCLIConfig:
    def test_config_show(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(main, ["config", "show", "--path", str(indexed_pool)])
        assert result.exit_code == 0
        assert "base_ref" in result.output

    def test_config_set_and_get(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(
            main, ["config", "set", "review.closure_workers", "3", "--path", str(indexed_pool)]
        )
        assert result.exit_code == 0
        result = runner.invoke(
            main, ["config", "get", "review.closure_workers", "--path", str(indexed_pool)]
        )
        assert "review.closure_workers = 3" in result.output

    def test_config_set_wrong_type(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(
            main, ["config", "set", "review.closure_workers", "abc", "--path", str(indexed_pool)]
        )
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid value" in result.output

    def test_config_set_unknown_key(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(
            main, ["config", "set", "review.nope", "1", "--path", str(indexed_pool)]
        )
        assert result.exit_code == 1


class TestCLIReview:
    def test_review_without_git(self, runner: CliRunner, indexed_pool: Path):
        result = runner.invoke(
            main, ["review", "--path", str(indexed_pool), "--base", "HEAD"]
        )
        assert result.exit_code == 1

    @requires_git
    def test_review_markdown(self, runner: CliRunner, git_pool: Path):
        result = runner.invoke(
            main, ["review", "--path", str(git_pool), "--base", "HEAD", "--pool-update"]
        )
        assert result.exit_code == 0, result.output
        assert "# Items in this PR" in result.output
        assert "|Modified | Part | OPA1-TR | parts/opa1-t.json" in result.output
        assert "Inherits from OPA1" in result.output

    @requires_git
    def test_review_to_file(self, runner: CliRunner, git_pool: Path, tmp_path: Path):
        out = tmp_path / "review.md"
        result = runner.invoke(
            main, ["review", "--path", str(git_pool), "--base", "HEAD", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert out.read_text().startswith("# Items in this PR")

    @requires_git
    def test_review_json_with_pool_update(self, runner: CliRunner, git_pool: Path):
        result = runner.invoke(
            main,
            ["review", "--path", str(git_pool), "--base", "HEAD", "-u", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["roots"] == ["P2"]
        assert data["changed_items"][0]["uuid"] == "P2"

    @requires_git
    def test_pool_update_errors(self, runner: CliRunner, git_pool: Path):
        (git_pool / "units" / "broken.json").write_text("{")
        result = runner.invoke(
            main, ["review", "--path", str(git_pool), "--base", "HEAD", "--pool-update"]
        )
        assert result.exit_code == 1
        assert "# Pool update encountered errors" in result.output
        assert "units/broken.json" in result.output
