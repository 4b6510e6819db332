"""Build the pool dependency graph from parsed item records."""

from __future__ import annotations

from pathlib import Path

import networkx as nx

from poolreview.config import IndexerConfig, ProjectConfig
from poolreview.exceptions import LoaderError
from poolreview.graph.query import DERIVES, USES, ItemStore
from poolreview.pool.loader import load_pool
from poolreview.pool.models import (
    Entity,
    ItemRef,
    ItemType,
    ModelItem,
    Package,
    Part,
    PartAttribute,
    PoolItem,
    Symbol,
)


def dependencies_of(item: PoolItem) -> list[ItemRef]:
    """Structural references of an item, in declaration order."""
    deps: list[ItemRef] = []
    if isinstance(item, Part):
        if item.entity:
            deps.append(ItemRef(ItemType.ENTITY, item.entity))
        if item.package:
            deps.append(ItemRef(ItemType.PACKAGE, item.package))
    elif isinstance(item, Entity):
        deps.extend(ItemRef(ItemType.UNIT, gate.unit) for gate in item.gates.values())
    elif isinstance(item, Package):
        deps.extend(
            ItemRef(ItemType.PADSTACK, pad.padstack)
            for pad in item.pads.values()
            if pad.padstack
        )
    elif isinstance(item, Symbol):
        if item.unit:
            deps.append(ItemRef(ItemType.UNIT, item.unit))
    return list(dict.fromkeys(deps))


class PoolGraphBuilder:
    """Builds the item store for a pool.

    The graph has one node per item, keyed by ItemRef. 3-D models get
    their own model_3d nodes so that model files can be joined to a
    change set, but no package -> model edge: models are attached to
    their package only when a closure is computed.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self.errors: list[LoaderError] = []

    def build_from_directory(
        self,
        root: str | Path,
        config: ProjectConfig | None = None,
        progress_callback: callable | None = None,
    ) -> ItemStore:
        """Load every item below `root` and build the store.

        Args:
            root: Pool root directory.
            config: Project configuration.
            progress_callback: Optional callback(file_path, current, total).
        """
        indexer_config = config.indexer if config else IndexerConfig()
        result = load_pool(root, indexer_config, progress_callback)
        store = self.build_from_items(result.items)
        self.errors = result.errors + self.errors
        return store

    def build_from_items(self, items: list[PoolItem]) -> ItemStore:
        """Build the store from already parsed records."""
        # Reset state between builds
        self.graph = nx.DiGraph()
        self.errors = []

        added = [item for item in items if self._add_item(item)]
        for item in added:
            if isinstance(item, Part) and item.base:
                item = self._complete_derived(item)
            self._add_dependencies(item)

        return ItemStore(self.graph)

    def _add_item(self, item: PoolItem) -> bool:
        existing = self.graph.nodes[item.ref].get("item") if item.ref in self.graph else None
        if existing is not None:
            self.errors.append(
                LoaderError(
                    item.filename,
                    f"duplicate {item.type.value} uuid {item.uuid}, also in {existing.filename}",
                )
            )
            return False
        self.graph.add_node(item.ref, item=item)

        if isinstance(item, Package):
            for model in item.models.values():
                model_item = ModelItem(
                    uuid=model.uuid,
                    name=model.filename,
                    filename=model.filename,
                    package=item.uuid,
                )
                self.graph.add_node(model_item.ref, item=model_item)
        return True

    def _complete_derived(self, part: Part) -> Part:
        """Fill what a derived part takes from its bases.

        The stored record gets the inherited MPN as its name when it has
        none of its own. The returned copy also carries the inherited
        entity and package, so the part's edges point at what it uses.
        """
        if not part.name:
            name = self._inherited(part, lambda p: p.get_attribute(PartAttribute.MPN))
            if name:
                part = part.model_copy(update={"name": name})
                self.graph.nodes[part.ref]["item"] = part
        return part.model_copy(
            update={
                "entity": self._inherited(part, lambda p: p.entity),
                "package": self._inherited(part, lambda p: p.package),
            }
        )

    def _inherited(self, part: Part, value_of) -> str:
        """First non-empty value along the base chain of `part`, nearest first."""
        seen: set[str] = set()
        current = part
        while current is not None and current.uuid not in seen:
            value = value_of(current)
            if value:
                return value
            seen.add(current.uuid)
            if current.base is None:
                break
            base_ref = ItemRef(ItemType.PART, current.base)
            current = self.graph.nodes[base_ref].get("item") if base_ref in self.graph else None
        return ""

    def _add_dependencies(self, item: PoolItem) -> None:
        for dep in dependencies_of(item):
            self.graph.add_edge(item.ref, dep, kind=USES)
        if isinstance(item, Part) and item.base:
            self.graph.add_edge(item.ref, ItemRef(ItemType.PART, item.base), kind=DERIVES)

    def get_stats(self) -> dict:
        """Get graph statistics."""
        stats = ItemStore(self.graph).get_stats()
        stats["file_errors"] = len(self.errors)
        return stats
