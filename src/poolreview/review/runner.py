"""Pool review pipeline.

Ties the pieces together:
1. Load the pool index (building or rebuilding it if needed)
2. Collect the files changed against the reference revision
3. Join them to items and pick the top-level parts
4. Compute both closures and the unassociated items
5. Render the markdown report

Usage:
    poolreview review --base master --output review.md
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from poolreview.config import INDEX_DB_FILE, ProjectConfig, get_poolreview_dir
from poolreview.exceptions import CyclicDerivationError, IndexNotFoundError, LoaderError
from poolreview.graph.builder import PoolGraphBuilder
from poolreview.graph.query import ItemStore
from poolreview.graph.store import IndexStore
from poolreview.pool.models import ItemRef
from poolreview.review.attributes import derivation_chain
from poolreview.review.changes import ChangedFile, ChangeSet, get_changed_files
from poolreview.review.closure import (
    ClosureRecord,
    DerivationRecord,
    compute_closure,
    compute_derivation_closure,
    find_unassociated,
    select_roots,
)
from poolreview.review.renderer import render_review

logger = logging.getLogger("poolreview.review")


@dataclass
class ReviewResult:
    """Everything a review produced."""

    change_set: ChangeSet
    roots: list[str] = field(default_factory=list)
    closure: list[ClosureRecord] = field(default_factory=list)
    derivation: list[DerivationRecord] = field(default_factory=list)
    unassociated: list[ItemRef] = field(default_factory=list)
    file_errors: list[LoaderError] = field(default_factory=list)
    report: str = ""

    def to_dict(self) -> dict:
        return {
            "changed_items": [
                {"type": ci.ref.type.value, "uuid": ci.ref.id, "path": ci.path, "status": ci.label}
                for ci in self.change_set.items
            ],
            "non_items": list(self.change_set.non_items),
            "roots": list(self.roots),
            "closure": [
                {
                    "type": r.type.value,
                    "uuid": r.id,
                    "name": r.name,
                    "level": r.level,
                    "in_pr": r.in_pr,
                    "root": r.root,
                }
                for r in self.closure
            ],
            "derived_parts": [
                {"uuid": r.id, "name": r.name, "level": r.level, "in_pr": r.in_pr, "root": r.root}
                for r in self.derivation
            ],
            "unassociated": [{"type": ref.type.value, "uuid": ref.id} for ref in self.unassociated],
            "file_errors": [{"filename": e.filename, "detail": e.detail} for e in self.file_errors],
        }


def load_store(
    root: Path,
    config: ProjectConfig,
    rebuild: bool = False,
    progress_callback: callable | None = None,
) -> tuple[ItemStore, list[LoaderError]]:
    """Load the pool index, building it first if missing or `rebuild` is set."""
    index = IndexStore(get_poolreview_dir(root) / INDEX_DB_FILE)
    try:
        store = None if rebuild else index.load()
        if store is not None:
            return store, []

        logger.info(f"Indexing pool at {root}")
        builder = PoolGraphBuilder()
        store = builder.build_from_directory(root, config, progress_callback)
        index.save(store, metadata={"stats": builder.get_stats()})
        index.set_metadata("built_at", time.time())
        return store, builder.errors
    finally:
        index.close()


def index_stats(root: Path) -> dict:
    """Statistics of the saved index, without rebuilding it."""
    db_path = get_poolreview_dir(root) / INDEX_DB_FILE
    if not db_path.exists():
        raise IndexNotFoundError(
            "No index found. Run 'poolreview init' or 'poolreview index' first."
        )
    index = IndexStore(db_path)
    try:
        stats = index.get_metadata("stats")
        if stats is None:
            store = index.load()
            if store is None:
                raise IndexNotFoundError("Index is empty. Run 'poolreview index' first.")
            stats = store.get_stats()
        return stats
    finally:
        index.close()


def review_changes(
    store: ItemStore,
    changed_files: list[ChangedFile],
    config: ProjectConfig | None = None,
) -> ReviewResult:
    """Run the resolver over an already collected change set."""
    config = config or ProjectConfig()
    change_set = ChangeSet.resolve(store, changed_files)
    changed = change_set.refs

    for src, tgt in store.dangling_edges():
        logger.warning(f"{src} references missing {tgt}")

    roots = select_roots(store, changed)
    closure = compute_closure(store, roots, changed, workers=config.review.closure_workers)
    derivation = compute_derivation_closure(store, roots, changed)
    unassociated = find_unassociated(changed, closure, derivation)

    for part_id in dict.fromkeys(r.id for r in derivation):
        try:
            derivation_chain(store, part_id)
        except CyclicDerivationError as e:
            logger.warning(str(e))

    result = ReviewResult(
        change_set=change_set,
        roots=roots,
        closure=closure,
        derivation=derivation,
        unassociated=unassociated,
    )
    result.report = render_review(
        store,
        change_set,
        closure,
        derivation,
        unassociated,
        forbidden_domains=config.review.forbidden_datasheet_domains,
    )
    logger.info(
        f"Reviewed {len(changed_files)} changed files: {len(change_set.items)} items, "
        f"{len(roots)} top-level parts, {len(unassociated)} unassociated"
    )
    return result


def run_review(
    root: Path,
    config: ProjectConfig,
    base: str | None = None,
    update_index: bool = False,
) -> ReviewResult:
    """Run the full review pipeline for the pool at `root`.

    With `update_index`, the pool is reindexed first; file errors found
    while doing so replace the report.
    """
    store, errors = load_store(root, config, rebuild=update_index)
    if update_index and errors:
        lines = ["# Pool update encountered errors"]
        lines.extend(f" - {e.filename} {e.detail}" for e in errors)
        return ReviewResult(change_set=ChangeSet(), file_errors=errors, report="\n".join(lines))

    changed_files = get_changed_files(
        root, base or config.review.base_ref, timeout=config.review.git_timeout
    )
    result = review_changes(store, changed_files, config)
    result.file_errors = errors
    return result
