"""Read-only query interface over a snapshot of pool items."""

from __future__ import annotations

import networkx as nx

from poolreview.exceptions import NotFoundError
from poolreview.pool.models import ItemRef, ItemType, Part, PoolItem, Symbol

# Edge kinds
USES = "uses"
DERIVES = "derives"


class ItemStore:
    """Query engine for the pool dependency graph.

    Nodes are ItemRef keys carrying the item record under the "item"
    attribute. A node without a record is the target of a dangling
    reference: something points at an item the pool does not contain.
    Edges are either structural ("uses") or part -> base ("derives").
    """

    def __init__(self, graph: nx.DiGraph | None = None) -> None:
        self.graph = graph if graph is not None else nx.DiGraph()
        self._path_index: dict[str, list[ItemRef]] = {}
        self._symbols_by_unit: dict[str, list[str]] = {}
        self._build_index()

    def _build_index(self) -> None:
        """Build filename -> refs and unit -> symbols lookup indexes."""
        for ref, data in self.graph.nodes(data=True):
            item = data.get("item")
            if item is None:
                continue
            if item.filename:
                owners = self._path_index.setdefault(item.filename, [])
                if ref not in owners:
                    owners.append(ref)
            if isinstance(item, Symbol) and item.unit:
                self._symbols_by_unit.setdefault(item.unit, []).append(item.uuid)

    def lookup(self, item_type: ItemType | str, uuid: str) -> PoolItem:
        """Get the item for (type, uuid), or raise NotFoundError."""
        ref = ItemRef.of(item_type, uuid)
        item = self.graph.nodes[ref].get("item") if ref in self.graph else None
        if item is None:
            raise NotFoundError(ref.type.value, uuid)
        return item

    def get(self, ref: ItemRef) -> PoolItem | None:
        if ref not in self.graph:
            return None
        return self.graph.nodes[ref].get("item")

    def has_item(self, ref: ItemRef) -> bool:
        return self.get(ref) is not None

    def edges_from(self, item_type: ItemType | str, uuid: str) -> set[ItemRef]:
        """Structural references from an item, including dangling ones."""
        ref = ItemRef.of(item_type, uuid)
        if ref not in self.graph:
            return set()
        return {
            succ
            for succ in self.graph.successors(ref)
            if self.graph.edges[ref, succ].get("kind") == USES
        }

    def base_of(self, part_id: str) -> str | None:
        part = self.lookup(ItemType.PART, part_id)
        return part.base

    def derived_from(self, part_id: str) -> list[str]:
        """Parts whose base is `part_id`."""
        ref = ItemRef(ItemType.PART, part_id)
        if ref not in self.graph:
            return []
        return [
            pred.id
            for pred in self.graph.predecessors(ref)
            if self.graph.edges[pred, ref].get("kind") == DERIVES
        ]

    def items_of_type(self, item_type: ItemType | str) -> list[str]:
        item_type = ItemType(item_type)
        return [
            ref.id
            for ref, data in self.graph.nodes(data=True)
            if ref.type == item_type and data.get("item") is not None
        ]

    def items(self, item_type: ItemType | str | None = None) -> list[PoolItem]:
        """All item records, optionally of one type."""
        wanted = ItemType(item_type) if item_type is not None else None
        return [
            data["item"]
            for ref, data in self.graph.nodes(data=True)
            if data.get("item") is not None and (wanted is None or ref.type == wanted)
        ]

    def parts(self) -> list[Part]:
        return self.items(ItemType.PART)

    def owners_of_path(self, path: str) -> list[ItemRef]:
        """Items whose source file is `path` (relative to the pool root)."""
        return list(self._path_index.get(path, []))

    def symbols_of_unit(self, unit_id: str) -> list[str]:
        return list(self._symbols_by_unit.get(unit_id, []))

    def dangling_edges(self) -> list[tuple[ItemRef, ItemRef]]:
        """References whose target item does not exist."""
        return [
            (src, tgt)
            for src, tgt in self.graph.edges()
            if self.graph.nodes[tgt].get("item") is None
        ]

    def get_stats(self) -> dict:
        """Get store statistics."""
        item_types: dict[str, int] = {}
        edge_types: dict[str, int] = {}
        for ref, data in self.graph.nodes(data=True):
            if data.get("item") is not None:
                item_types[ref.type.value] = item_types.get(ref.type.value, 0) + 1
        for _, _, data in self.graph.edges(data=True):
            kind = data.get("kind", "unknown")
            edge_types[kind] = edge_types.get(kind, 0) + 1

        return {
            "total_items": sum(item_types.values()),
            "total_edges": self.graph.number_of_edges(),
            "item_types": item_types,
            "edge_types": edge_types,
            "dangling_refs": len(self.dangling_edges()),
        }
