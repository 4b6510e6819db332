"""Attribute resolution along part derivation chains.

A derived part leaves a slot empty to inherit it. The value then comes
from the nearest ancestor that fills the slot, not from the top of the
chain.
"""

from __future__ import annotations

from dataclasses import dataclass

from poolreview.exceptions import CyclicDerivationError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import ItemRef, ItemType, Part, PartAttribute


@dataclass(frozen=True)
class ResolvedAttribute:
    name: PartAttribute
    value: str
    inherited: bool


@dataclass(frozen=True)
class ResolvedTags:
    tags: tuple[str, ...]
    inherited: bool


def derivation_chain(store: ItemStore, part_id: str) -> list[Part]:
    """The part followed by its bases, nearest first.

    A base uuid without a part ends the chain.

    Raises:
        NotFoundError: `part_id` itself is not a part.
        CyclicDerivationError: a part occurs twice in the chain.
    """
    chain = [store.lookup(ItemType.PART, part_id)]
    seen = [part_id]
    while chain[-1].base is not None:
        base_id = chain[-1].base
        if base_id in seen:
            raise CyclicDerivationError(part_id, seen + [base_id])
        base = store.get(ItemRef(ItemType.PART, base_id))
        if base is None:
            break
        chain.append(base)
        seen.append(base_id)
    return chain


def resolve_attributes(store: ItemStore, part_id: str) -> dict[PartAttribute, ResolvedAttribute]:
    """Resolve every attribute slot of a part.

    The part's own non-empty value wins; otherwise the nearest ancestor
    with a non-empty value supplies it and the result is marked
    inherited. A slot empty along the whole chain resolves to an empty,
    non-inherited value.
    """
    chain = derivation_chain(store, part_id)
    resolved = {}
    for attr in PartAttribute:
        resolved[attr] = ResolvedAttribute(attr, "", False)
        for depth, part in enumerate(chain):
            value = part.get_attribute(attr)
            if value:
                resolved[attr] = ResolvedAttribute(attr, value, depth > 0)
                break
    return resolved


def resolve_tags(store: ItemStore, part_id: str) -> ResolvedTags:
    """Resolve a part's tags; an own assignment, even an empty one, wins."""
    chain = derivation_chain(store, part_id)
    for depth, part in enumerate(chain):
        if part.tags is not None:
            return ResolvedTags(tuple(part.tags), depth > 0)
    return ResolvedTags((), False)


def resolve_entity(store: ItemStore, part_id: str) -> str:
    """Entity uuid of a part, taken from its base chain if not declared."""
    for part in derivation_chain(store, part_id):
        if part.entity:
            return part.entity
    return ""


def resolve_package(store: ItemStore, part_id: str) -> str:
    """Package uuid of a part, taken from its base chain if not declared."""
    for part in derivation_chain(store, part_id):
        if part.package:
            return part.package
    return ""
