"""Closure engine - everything a set of changed parts transitively touches.

Each root part is expanded breadth-first over the structural edges of the
store with its own visited set, so a root's subtree never depends on any
other root and a structural cycle cannot keep the traversal going. Items
that the structural edges do not reach directly (3-D models hanging off
packages, symbols drawing units) are appended afterwards, one level below
their owner.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Collection, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from poolreview.exceptions import InvalidRootError, NotFoundError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import ItemRef, ItemType, Package

# Display grouping priority; anything not listed sorts first
TYPE_ORDER: dict[ItemType, int] = {
    ItemType.PART: 0,
    ItemType.ENTITY: 1,
    ItemType.UNIT: 2,
    ItemType.SYMBOL: 3,
    ItemType.PACKAGE: 4,
    ItemType.MODEL_3D: 5,
    ItemType.PADSTACK: 6,
}


def type_order(item_type: ItemType) -> int:
    return TYPE_ORDER.get(item_type, -1)


@dataclass(frozen=True)
class ClosureRecord:
    """One item reached from a root part."""

    type: ItemType
    id: str
    name: str
    level: int
    type_order: int
    in_pr: bool
    root: str

    @property
    def ref(self) -> ItemRef:
        return ItemRef(self.type, self.id)


@dataclass(frozen=True)
class DerivationRecord:
    """One part reached from a root part along derived-from edges."""

    id: str
    name: str
    level: int
    in_pr: bool
    root: str

    @property
    def ref(self) -> ItemRef:
        return ItemRef(ItemType.PART, self.id)


def select_roots(store: ItemStore, changed_refs: Iterable[ItemRef]) -> list[str]:
    """Changed parts at the top of their visible derivation chain.

    A changed part is a root if it has no base, or if its base is not
    itself part of the change set. Order follows `changed_refs`.
    """
    changed = list(dict.fromkeys(changed_refs))
    changed_set = set(changed)
    roots = []
    for ref in changed:
        if ref.type != ItemType.PART:
            continue
        part = store.get(ref)
        if part is None:
            continue
        if part.base is None or ItemRef(ItemType.PART, part.base) not in changed_set:
            roots.append(ref.id)
    return roots


def _check_root(store: ItemStore, root: str) -> None:
    if store.has_item(ItemRef(ItemType.PART, root)):
        return
    for item_type in TYPE_ORDER:
        if item_type != ItemType.PART and store.has_item(ItemRef(item_type, root)):
            raise InvalidRootError(root, item_type.value)
    raise NotFoundError(ItemType.PART.value, root)


def _closure_of_root(
    store: ItemStore, root: str, changed: Collection[ItemRef]
) -> list[ClosureRecord]:
    _check_root(store, root)

    start = ItemRef(ItemType.PART, root)
    levels: dict[ItemRef, int] = {start: 0}
    order: list[ItemRef] = [start]
    queue = deque([start])
    while queue:
        ref = queue.popleft()
        for child in sorted(store.edges_from(ref.type, ref.id)):
            if child in levels:
                continue
            # dangling references are left out of the closure
            if not store.has_item(child):
                continue
            levels[child] = levels[ref] + 1
            order.append(child)
            queue.append(child)

    records = []
    for ref in order:
        item = store.get(ref)
        records.append(
            ClosureRecord(
                type=ref.type,
                id=ref.id,
                name=item.name,
                level=levels[ref],
                type_order=type_order(ref.type),
                in_pr=ref in changed,
                root=root,
            )
        )

    derived: list[ClosureRecord] = []
    for record in records:
        if record.type == ItemType.PACKAGE:
            package = store.get(record.ref)
            if isinstance(package, Package):
                for model in package.models.values():
                    derived.append(
                        ClosureRecord(
                            type=ItemType.MODEL_3D,
                            id=model.uuid,
                            name=model.filename,
                            level=record.level + 1,
                            type_order=type_order(ItemType.MODEL_3D),
                            in_pr=record.in_pr,
                            root=root,
                        )
                    )
        elif record.type == ItemType.UNIT:
            for symbol_id in store.symbols_of_unit(record.id):
                symbol_ref = ItemRef(ItemType.SYMBOL, symbol_id)
                derived.append(
                    ClosureRecord(
                        type=ItemType.SYMBOL,
                        id=symbol_id,
                        name=store.get(symbol_ref).name,
                        level=record.level + 1,
                        type_order=type_order(ItemType.SYMBOL),
                        in_pr=symbol_ref in changed,
                        root=root,
                    )
                )

    return records + derived


def compute_closure(
    store: ItemStore,
    roots: Iterable[str],
    changed_refs: Iterable[ItemRef] = (),
    workers: int = 1,
) -> list[ClosureRecord]:
    """Transitive closure of structural dependencies below each root part.

    Args:
        store: Snapshot of the pool.
        roots: Part uuids; their iteration order is the group order of
            the result.
        changed_refs: Items of the change set, used for `in_pr`.
        workers: Number of threads to shard roots over.

    Returns:
        Records sorted by (root, type_order, level). Ties keep discovery
        order.

    Raises:
        NotFoundError: a root has no item at all.
        InvalidRootError: a root exists, but not as a part.
    """
    roots = list(dict.fromkeys(roots))
    changed = frozenset(changed_refs)

    if workers > 1 and len(roots) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            per_root = list(pool.map(lambda r: _closure_of_root(store, r, changed), roots))
    else:
        per_root = [_closure_of_root(store, r, changed) for r in roots]

    root_position = {root: i for i, root in enumerate(roots)}
    records = [record for chunk in per_root for record in chunk]
    records.sort(key=lambda r: (root_position[r.root], r.type_order, r.level))
    return records


def compute_derivation_closure(
    store: ItemStore,
    roots: Iterable[str],
    changed_refs: Iterable[ItemRef] = (),
) -> list[DerivationRecord]:
    """Parts derived (directly or not) from each root, breadth-first."""
    changed = frozenset(changed_refs)
    records: list[DerivationRecord] = []
    for root in dict.fromkeys(roots):
        _check_root(store, root)
        levels = {root: 0}
        queue = deque([root])
        while queue:
            part_id = queue.popleft()
            ref = ItemRef(ItemType.PART, part_id)
            records.append(
                DerivationRecord(
                    id=part_id,
                    name=store.get(ref).name,
                    level=levels[part_id],
                    in_pr=ref in changed,
                    root=root,
                )
            )
            for child in store.derived_from(part_id):
                if child in levels or not store.has_item(ItemRef(ItemType.PART, child)):
                    continue
                levels[child] = levels[part_id] + 1
                queue.append(child)
    return records


def find_unassociated(
    changed_refs: Iterable[ItemRef],
    closure_records: Iterable[ClosureRecord],
    derivation_records: Iterable[DerivationRecord] = (),
) -> list[ItemRef]:
    """Changed items not reached from any root by either closure."""
    reached = {record.ref for record in closure_records}
    reached.update(record.ref for record in derivation_records)
    return [ref for ref in dict.fromkeys(changed_refs) if ref not in reached]
