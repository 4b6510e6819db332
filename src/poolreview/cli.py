"""Command-line interface for poolreview."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path

import click
from pydantic import ValidationError

from poolreview import __version__
from poolreview.config import (
    ProjectConfig,
    find_project_root,
    load_config,
    save_config,
    set_config_value,
)
from poolreview.exceptions import PoolReviewError
from poolreview.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None) -> Path:
    """Find the pool root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No poolreview project found. Run 'poolreview init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


@click.group()
@click.version_option(version=__version__, prog_name="poolreview")
@click.option("--verbose", "-v", is_flag=True, help="Log data-quality notes to stderr.")
def main(verbose: bool):
    """poolreview - see everything a pool PR touches."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the pool root.")
@click.option("--base", "-b", default=None, help="Reference revision to review against.")
def init(path: str | None, base: str | None):
    """Initialize poolreview for a pool. Writes the config and builds the index."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing poolreview for: {root}")

    try:
        config = load_config(root)
    except PoolReviewError as e:
        console.error(str(e))
        sys.exit(1)
    config.name = root.name
    config.root_path = str(root)
    if base:
        config.review.base_ref = base

    save_config(root, config)
    console.success("Configuration saved")

    _do_index(root, config)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the pool root.")
def index(path: str | None):
    """Rebuild the pool index from the item files."""
    root = _get_project_root(path)
    try:
        config = load_config(root)
    except PoolReviewError as e:
        console.error(str(e))
        sys.exit(1)
    if _do_index(root, config):
        sys.exit(1)


def _do_index(root: Path, config: ProjectConfig) -> int:
    """Index the pool; returns the number of files that failed to load."""
    from poolreview.review.runner import load_store

    console.info("Scanning and parsing pool files...")
    start_time = time.time()

    with console.indexing_progress() as progress:
        task = progress.add_task("Indexing...", total=None)

        def on_progress(file_path: str, current: int, total: int):
            progress.update(
                task, total=total, completed=current,
                description=f"Parsing {file_path}",
            )

        store, errors = load_store(root, config, rebuild=True, progress_callback=on_progress)

    elapsed = time.time() - start_time
    stats = store.get_stats()
    stats["file_errors"] = len(errors)

    console.success(f"Indexed {stats.get('total_items', 0)} items in {elapsed:.1f}s")
    console.show_stats(stats)
    if errors:
        console.warning(f"{len(errors)} file(s) could not be loaded:")
        console.show_file_errors(errors)
    return len(errors)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the pool root.")
def status(path: str | None):
    """Show the current index status and statistics."""
    from poolreview.review.runner import index_stats

    root = _get_project_root(path)
    try:
        stats = index_stats(root)
    except PoolReviewError as e:
        console.error(str(e))
        sys.exit(1)

    console.banner()
    console.info(f"Pool: {root.name}")
    console.show_stats(stats)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the pool root.")
@click.option("--base", "-b", default=None, help="Reference revision to diff against.")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Write the report to this file instead of stdout.")
@click.option("--pool-update", "-u", is_flag=True, help="Reindex the pool before reviewing.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    help="Output format.",
)
@click.option("--tree", is_flag=True, help="Also print the closure trees to the terminal.")
def review(
    path: str | None,
    base: str | None,
    output: str | None,
    pool_update: bool,
    output_format: str,
    tree: bool,
):
    """Review the changes of the working tree against a base revision.

    Lists the changed items, every part and item they affect, changed
    files that are not pool items, and per-item details with hints.

    Usage in CI:

        poolreview review --base origin/master --pool-update -o review.md
    """
    from poolreview.review.runner import run_review

    root = _get_project_root(path)
    try:
        config = load_config(root)
        result = run_review(root, config, base=base, update_index=pool_update)
    except PoolReviewError as e:
        console.error(str(e))
        sys.exit(1)

    if output_format == "json":
        text = json.dumps(result.to_dict(), indent=2)
    else:
        text = result.report

    if output:
        Path(output).write_text(text + "\n")
        console.success(f"Wrote review to {output}")
    else:
        click.echo(text)

    if tree and result.closure:
        console.show_closure(result.closure)

    if pool_update and result.file_errors:
        sys.exit(1)


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the pool root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage poolreview configuration."""
    root = _get_project_root(path)
    try:
        config = load_config(root)
    except PoolReviewError as e:
        console.error(str(e))
        sys.exit(1)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: poolreview config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: poolreview config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except ValidationError as e:
            console.error(f"Invalid value for {key}: {e.errors()[0]['msg']}")
            sys.exit(1)


if __name__ == "__main__":
    main()
