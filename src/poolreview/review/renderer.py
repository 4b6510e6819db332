"""Markdown renderer for pool reviews.

Generates a GitHub-flavoured markdown report with:
  - Items in the PR and changed files that are no items
  - Parts overview (closure tree below each top-level part)
  - Items not associated with any part
  - Derived parts and their resolved attributes
  - Per-item details with reviewer hints
"""

from __future__ import annotations

from collections import Counter

from poolreview.exceptions import CyclicDerivationError, NotFoundError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import (
    ITEM_TYPE_NAMES,
    PIN_DIRECTION_NAMES,
    Entity,
    ItemRef,
    ItemType,
    Package,
    PartAttribute,
    Unit,
)
from poolreview.review.attributes import (
    resolve_attributes,
    resolve_entity,
    resolve_package,
    resolve_tags,
)
from poolreview.review.changes import ChangeSet
from poolreview.review.checks import (
    WHITESPACE_WARNING,
    check_datasheet,
    manufacturer_counts,
    needs_trim,
    value_duplicates_mpn,
)
from poolreview.review.closure import ClosureRecord, DerivationRecord
from poolreview.review.pads import natural_sort_key, validate_pad_mapping


def render_review(
    store: ItemStore,
    change_set: ChangeSet,
    closure: list[ClosureRecord],
    derivation: list[DerivationRecord],
    unassociated: list[ItemRef],
    forbidden_domains: list[str] | None = None,
) -> str:
    """Render the full review as a markdown document."""
    forbidden_domains = forbidden_domains or []
    mfr_counts = manufacturer_counts(store)
    sections: list[str] = []

    # Items in this PR
    sections.append("# Items in this PR")
    sections.append("| State | Type | Name | Filename |")
    sections.append("| --- | --- | --- | --- |")
    for changed in change_set.items:
        item = store.get(changed.ref)
        name = item.name if item else ""
        if needs_trim(name):
            name += " " + WHITESPACE_WARNING
        sections.append(
            f"|{changed.label} | {ITEM_TYPE_NAMES[changed.ref.type]} | {name} | {changed.path}"
        )
    sections.append("")

    if change_set.non_items:
        sections.append("# Non-items")
        for path in change_set.non_items:
            sections.append(f" - {path}")
        sections.append("")

    sections.append("# Parts overview (excluding derived)")
    sections.append("Bold items are from this PR")
    for record in closure:
        label = f"{ITEM_TYPE_NAMES[record.type]} {record.name}"
        sections.append("  " * record.level + "- " + surround_if("**", "**", label, record.in_pr))
    sections.append("")

    if unassociated:
        sections.append("# Items not associated with any part")
        for ref in unassociated:
            item = store.get(ref)
            sections.append(f" - {ITEM_TYPE_NAMES[ref.type]} {item.name if item else ref.id}")
        sections.append("")

    if _has_changed_derived_parts(store, change_set):
        sections.extend(_render_derived(store, derivation))

    sections.append("# Details")
    sections.append("## Parts")
    for part_id in dict.fromkeys(record.id for record in derivation):
        sections.extend(_render_part(store, part_id, forbidden_domains, mfr_counts))

    changed_refs = change_set.refs
    sections.append("## Entities")
    for ref in changed_refs:
        if ref.type == ItemType.ENTITY:
            sections.extend(_render_entity(store, store.get(ref), mfr_counts))
    sections.append("## Units")
    for ref in changed_refs:
        if ref.type == ItemType.UNIT:
            sections.extend(_render_unit(store, store.get(ref), mfr_counts))
    sections.append("## Packages")
    for ref in changed_refs:
        if ref.type == ItemType.PACKAGE:
            sections.extend(_render_package(store.get(ref), mfr_counts))

    sections.append(_footer())
    return "\n".join(sections)


def surround_if(prefix: str, suffix: str, text: str, cond: bool = True) -> str:
    if text and cond:
        return prefix + text + suffix
    return text


def _has_changed_derived_parts(store: ItemStore, change_set: ChangeSet) -> bool:
    for ref in change_set.refs:
        if ref.type != ItemType.PART:
            continue
        part = store.get(ref)
        if part is not None and part.base is not None:
            return True
    return False


def _mpn_or_id(store: ItemStore, part_id: str) -> str:
    try:
        return resolve_attributes(store, part_id)[PartAttribute.MPN].value or part_id
    except CyclicDerivationError:
        return part_id


def _render_derived(store: ItemStore, derivation: list[DerivationRecord]) -> list[str]:
    lines = ["# Derived parts", "Bold items are from this PR"]
    for record in derivation:
        name = _mpn_or_id(store, record.id)
        lines.append("  " * record.level + "- " + surround_if("**", "**", name, record.in_pr))
    lines.append("")

    lines.append("# Parts table")
    lines.append("Values in italic are inherited")
    lines.append("| MPN | Value | Manufacturer | Datasheet | Description | Tags |")
    lines.append("| --- | ----- | ------------ | --------- | ----------- | ---- |")
    for part_id in dict.fromkeys(record.id for record in derivation):
        try:
            attrs = resolve_attributes(store, part_id)
            tags = resolve_tags(store, part_id)
        except CyclicDerivationError as e:
            lines.append(f"| {part_id} | :x: {e} |  |  |  |  |")
            continue
        cells = [
            surround_if("*", "*", attrs[attr].value, attrs[attr].inherited)
            for attr in PartAttribute
        ]
        cells.append(surround_if("*", "*", ", ".join(tags.tags), tags.inherited))
        lines.append("| " + " | ".join(cells) + " |")
    lines.append("")
    return lines


def _render_part(
    store: ItemStore,
    part_id: str,
    forbidden_domains: list[str],
    mfr_counts: Counter,
) -> list[str]:
    part = store.get(ItemRef(ItemType.PART, part_id))
    try:
        attrs = resolve_attributes(store, part_id)
        tags = resolve_tags(store, part_id)
        entity_id = resolve_entity(store, part_id)
        package_id = resolve_package(store, part_id)
    except CyclicDerivationError as e:
        return [f"### {part_id}", f":x: {e}", ""]

    mpn = attrs[PartAttribute.MPN].value
    lines = [f"### {mpn}"]
    if part.base is not None:
        lines.append(f"Inherits from {_mpn_or_id(store, part.base)}")
    lines.append("| Attribute | Value |")
    lines.append("| --- | --- |")
    for attr in PartAttribute:
        resolved = attrs[attr]
        line = f"|{attr.value} | {resolved.value}"
        if needs_trim(resolved.value):
            line += " " + WHITESPACE_WARNING
        if attr == PartAttribute.MANUFACTURER:
            line += f" ({mfr_counts[resolved.value] - 1} other parts)"
        elif attr == PartAttribute.DATASHEET:
            domain = check_datasheet(resolved.value, forbidden_domains)
            if domain:
                line += f" (:warning: forbidden domain {domain}, use primary source)"
        elif attr == PartAttribute.VALUE:
            if value_duplicates_mpn(resolved.value, mpn):
                line += " (:warning: leave value blank if it's identical to MPN)"
        if resolved.inherited:
            line += " (inherited)"
        lines.append(line)
    tag_line = f"|Tags | {', '.join(tags.tags)}"
    if tags.inherited:
        tag_line += " (inherited)"
    lines.append(tag_line)
    lines.append(_link_row("Entity", store, ItemRef(ItemType.ENTITY, entity_id)))
    lines.append(_link_row("Package", store, ItemRef(ItemType.PACKAGE, package_id)))
    lines.append("")

    if part.base is None:
        lines.extend(_render_pad_map(store, part_id))
    lines.append("")
    return lines


def _link_row(label: str, store: ItemStore, ref: ItemRef) -> str:
    item = store.get(ref)
    if item is None:
        return f"|{label} | :x: missing {ref.id or '(none)'}"
    return f"|{label} | {item.name}"


def _render_pad_map(store: ItemStore, part_id: str) -> list[str]:
    try:
        result = validate_pad_mapping(store, part_id)
    except NotFoundError as e:
        return [f":x: Cannot check pad map: {e}"]

    part = store.get(ItemRef(ItemType.PART, part_id))
    entity: Entity = store.get(ItemRef(ItemType.ENTITY, part.entity))
    package: Package = store.get(ItemRef(ItemType.PACKAGE, part.package))

    lines = ["| Pad | Gate | Pin |", "| --- | --- | --- |"]
    for pad in sorted(package.pads.values(), key=lambda p: natural_sort_key(p.name)):
        if pad.uuid in result.assignments:
            gate_id, pin_id = result.assignments[pad.uuid]
            gate_name, pin_name = _gate_pin_names(store, entity, gate_id, pin_id)
            lines.append(f"| {pad.name} | {gate_name} | {pin_name} |")
        else:
            lines.append(f"| {pad.name} | - | - |")
    lines.append("")

    if result.unmapped_gate_pins:
        lines.append(":x: unmapped pins:")
        names = [
            _gate_pin_names(store, entity, gate_id, pin_id)
            for gate_id, pin_id in result.unmapped_gate_pins
        ]
        for gate_name, pin_name in sorted(
            names, key=lambda n: (natural_sort_key(n[0]), natural_sort_key(n[1]))
        ):
            lines.append(f" - {gate_name}.{pin_name}")
    return lines


def _gate_pin_names(store: ItemStore, entity: Entity, gate_id: str, pin_id: str) -> tuple[str, str]:
    gate = entity.gates.get(gate_id)
    if gate is None:
        return gate_id, pin_id
    unit = store.get(ItemRef(ItemType.UNIT, gate.unit))
    pin = unit.pins.get(pin_id) if isinstance(unit, Unit) else None
    return gate.name, pin.primary_name if pin else pin_id


def _tags_row(tags: list[str] | None) -> str:
    return f"|Tags | {', '.join(tags or [])}"


def _render_entity(store: ItemStore, entity: Entity, mfr_counts: Counter) -> list[str]:
    lines = [
        f"### {entity.name}",
        "| Attribute | Value |",
        "| --- | --- |",
        f"|Manufacturer | {entity.manufacturer} ({mfr_counts[entity.manufacturer]} other parts)",
        f"|Prefix | {entity.prefix}",
        _tags_row(entity.tags),
        "",
    ]
    if entity.gates:
        lines.append("| Gate | Suffix | Swap group | Unit |")
        lines.append("| --- | --- | --- | --- |")
        for gate in sorted(entity.gates.values(), key=lambda g: natural_sort_key(g.name)):
            unit = store.get(ItemRef(ItemType.UNIT, gate.unit))
            unit_name = unit.name if unit else f":x: missing unit {gate.unit}"
            lines.append(f"|{gate.name} | {gate.suffix} | {gate.swap_group} | {unit_name}")
    else:
        lines.append(":warning: Entity has no gates!")
    lines.append("")
    return lines


def _render_unit(store: ItemStore, unit: Unit, mfr_counts: Counter) -> list[str]:
    lines = [
        f"### {unit.name}",
        "| Attribute | Value |",
        "| --- | --- |",
        f"|Manufacturer | {unit.manufacturer} ({mfr_counts[unit.manufacturer]} other parts)",
        "",
    ]
    if unit.pins:
        lines.append("| Pin | Direction | Alternate names |")
        lines.append("| --- | --- | --- |")
        for pin in sorted(unit.pins.values(), key=lambda p: natural_sort_key(p.primary_name)):
            lines.append(
                f"|{pin.primary_name} | {PIN_DIRECTION_NAMES[pin.direction]} | {', '.join(pin.names)}"
            )
    else:
        lines.append(":x: Unit has no pins!")

    symbols = store.symbols_of_unit(unit.uuid)
    for symbol_id in symbols:
        symbol = store.get(ItemRef(ItemType.SYMBOL, symbol_id))
        lines.append(f"#### Symbol: {symbol.name}")
        lines.append(f"`{symbol.filename}`")
    if not symbols:
        lines.append(":x: Unit has no symbols!")
    lines.append("")
    return lines


def _render_package(package: Package, mfr_counts: Counter) -> list[str]:
    lines = [
        f"### {package.name}",
        "| Attribute | Value |",
        "| --- | --- |",
        f"|Manufacturer | {package.manufacturer} ({mfr_counts[package.manufacturer]} other parts)",
        _tags_row(package.tags),
        f"|Pads | {len(package.pads)}",
    ]
    if package.models:
        models = []
        for model in package.models.values():
            label = model.filename
            if model.uuid == package.default_model:
                label += " (default)"
            models.append(label)
        lines.append(f"|3D models | {', '.join(models)}")
    else:
        lines.append("|3D models | :warning: none")
    lines.append("")
    return lines


def _footer() -> str:
    return "---\n*Generated by poolreview*"
