"""Pad/pin mapping validation for base parts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from poolreview.graph.query import ItemStore
from poolreview.pool.models import Entity, ItemRef, ItemType, Package, Unit


@dataclass
class PadMappingResult:
    """Outcome of checking a part's pad map against its entity.

    `checked` is False for derived parts, which take the pad map of
    their base and are validated through it.
    """

    part: str
    checked: bool = True
    unmapped_gate_pins: set[tuple[str, str]] = field(default_factory=set)
    unassigned_pads: list[str] = field(default_factory=list)
    assignments: dict[str, tuple[str, str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.unmapped_gate_pins


def validate_pad_mapping(store: ItemStore, part_id: str) -> PadMappingResult:
    """Find entity pins that no pad of the part is mapped to.

    Raises:
        NotFoundError: the part, its entity or its package is missing.
    """
    part = store.lookup(ItemType.PART, part_id)
    if part.base is not None:
        return PadMappingResult(part=part_id, checked=False)

    entity: Entity = store.lookup(ItemType.ENTITY, part.entity)
    package: Package = store.lookup(ItemType.PACKAGE, part.package)

    all_pins: set[tuple[str, str]] = set()
    for gate_id, gate in entity.gates.items():
        unit = store.get(ItemRef(ItemType.UNIT, gate.unit))
        if not isinstance(unit, Unit):
            continue
        all_pins.update((gate_id, pin_id) for pin_id in unit.pins)

    result = PadMappingResult(part=part_id)
    for pad_id in package.pads:
        entry = part.pad_map.get(pad_id)
        if entry is None:
            result.unassigned_pads.append(pad_id)
            continue
        result.assignments[pad_id] = (entry.gate, entry.pin)
        all_pins.discard((entry.gate, entry.pin))

    result.unmapped_gate_pins = all_pins
    return result


def natural_sort_key(text: str) -> tuple:
    """Sort key that orders "2" before "10" (pad and pin names)."""
    return tuple(
        (0, int(chunk), "") if chunk.isdecimal() else (1, 0, chunk.lower())
        for chunk in re.split(r"(\d+)", text)
        if chunk
    )
