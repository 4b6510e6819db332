"""Pool loader - turns the JSON files of a pool into item records."""

from __future__ import annotations

import fnmatch
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from poolreview.config import IndexerConfig
from poolreview.exceptions import LoaderError
from poolreview.pool.models import (
    NULL_UUID,
    Entity,
    Gate,
    ItemType,
    Model3D,
    Package,
    Pad,
    Padstack,
    PadMapEntry,
    Part,
    PartAttribute,
    Pin,
    PoolItem,
    Symbol,
    Unit,
)

logger = logging.getLogger("poolreview.loader")

# JSON keys of the part attribute slots
_PART_ATTRIBUTE_KEYS: dict[PartAttribute, str] = {
    PartAttribute.MPN: "MPN",
    PartAttribute.VALUE: "value",
    PartAttribute.MANUFACTURER: "manufacturer",
    PartAttribute.DATASHEET: "datasheet",
    PartAttribute.DESCRIPTION: "description",
}


@dataclass
class LoadResult:
    """Items parsed from a pool plus the files that failed."""

    items: list[PoolItem] = field(default_factory=list)
    errors: list[LoaderError] = field(default_factory=list)


def load_pool(
    root: str | Path,
    config: IndexerConfig | None = None,
    progress_callback: callable | None = None,
) -> LoadResult:
    """Parse every item file below `root`.

    Args:
        root: Pool root directory.
        config: Indexer configuration for exclusion patterns.
        progress_callback: Optional callback(file_path, current, total).

    Returns:
        A LoadResult; unreadable files end up in `errors` rather than
        aborting the load.
    """
    root = Path(root).resolve()
    if config is None:
        config = IndexerConfig()

    files = collect_files(root, config)
    result = LoadResult()
    total = len(files)
    for i, full_path in enumerate(files):
        rel_path = full_path.relative_to(root).as_posix()
        if progress_callback:
            progress_callback(rel_path, i + 1, total)
        try:
            data = json.loads(full_path.read_text(encoding="utf-8"))
            item = item_from_json(data, rel_path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            result.errors.append(LoaderError(rel_path, f"unreadable: {e}"))
            continue
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            result.errors.append(LoaderError(rel_path, f"invalid item: {e}"))
            continue
        if item is not None:
            result.items.append(item)

    for error in result.errors:
        logger.warning(f"Skipped pool file {error}")
    return result


def collect_files(root: str | Path, config: IndexerConfig | None = None) -> list[Path]:
    """Collect candidate item files, respecting exclusion patterns."""
    root = Path(root).resolve()
    if config is None:
        config = IndexerConfig()
    max_size = config.max_file_size_kb * 1024
    files = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        dirnames[:] = [
            d
            for d in dirnames
            if not _should_exclude(
                os.path.join(rel_dir, d) if rel_dir != "." else d, config.exclude_patterns
            )
        ]
        for filename in filenames:
            if not filename.endswith(".json"):
                continue
            rel_path = os.path.join(rel_dir, filename) if rel_dir != "." else filename
            if _should_exclude(rel_path, config.exclude_patterns):
                continue
            full_path = Path(dirpath) / filename
            try:
                if full_path.stat().st_size > max_size:
                    continue
            except OSError:
                continue
            files.append(full_path)

    return sorted(files)


def _should_exclude(path: str, patterns: list[str]) -> bool:
    """Check if a path matches any exclusion pattern."""
    path_parts = Path(path).parts
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        for part in path_parts:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def item_from_json(data: dict, filename: str) -> PoolItem | None:
    """Convert one decoded item file into its record.

    Returns None for JSON files that are not pool items (pool.json,
    rule files and the like).
    """
    if not isinstance(data, dict):
        return None
    try:
        item_type = ItemType(data.get("type", ""))
    except ValueError:
        return None
    converter = _CONVERTERS.get(item_type)
    if converter is None:
        return None
    return converter(data, filename)


def _common(data: dict, filename: str) -> dict:
    return {
        "uuid": data["uuid"],
        "name": data.get("name", ""),
        "filename": filename,
        "manufacturer": data.get("manufacturer", ""),
        "tags": list(data.get("tags", [])),
    }


def _unit(data: dict, filename: str) -> Unit:
    pins = {
        uu: Pin(
            uuid=uu,
            primary_name=pin.get("primary_name", ""),
            direction=pin.get("direction", "input"),
            names=list(pin.get("names", [])),
        )
        for uu, pin in data.get("pins", {}).items()
    }
    return Unit(**_common(data, filename), pins=pins)


def _entity(data: dict, filename: str) -> Entity:
    gates = {
        uu: Gate(
            uuid=uu,
            name=gate.get("name", ""),
            unit=gate["unit"],
            suffix=gate.get("suffix", ""),
            swap_group=gate.get("swap_group", 0),
        )
        for uu, gate in data.get("gates", {}).items()
    }
    return Entity(**_common(data, filename), prefix=data.get("prefix", ""), gates=gates)


def _symbol(data: dict, filename: str) -> Symbol:
    return Symbol(**_common(data, filename), unit=data.get("unit", ""))


def _package(data: dict, filename: str) -> Package:
    pads = {
        uu: Pad(uuid=uu, name=pad.get("name", ""), padstack=pad.get("padstack", ""))
        for uu, pad in data.get("pads", {}).items()
    }
    models = {
        uu: Model3D(uuid=uu, filename=model["filename"])
        for uu, model in data.get("models", {}).items()
    }
    return Package(
        **_common(data, filename),
        pads=pads,
        models=models,
        default_model=data.get("default_model", ""),
    )


def _padstack(data: dict, filename: str) -> Padstack:
    return Padstack(**_common(data, filename))


def _part(data: dict, filename: str) -> Part:
    base = data.get("base") or None
    if base == NULL_UUID:
        base = None

    attributes: dict[PartAttribute, str] = {}
    for attr, key in _PART_ATTRIBUTE_KEYS.items():
        raw = data.get(key, "")
        # stored as [inherit, value]; an inherited slot has no own value
        if isinstance(raw, list):
            inherit, value = raw
            if inherit and base:
                value = ""
        else:
            value = raw
        attributes[attr] = str(value)

    tags: list[str] | None = list(data.get("tags", []))
    if base and data.get("inherit_tags", False):
        tags = None

    pad_map = {
        pad_uu: PadMapEntry(gate=entry["gate"], pin=entry["pin"])
        for pad_uu, entry in data.get("pad_map", {}).items()
    }
    fields = _common(data, filename)
    fields["name"] = attributes[PartAttribute.MPN]
    fields["manufacturer"] = attributes[PartAttribute.MANUFACTURER]
    fields["tags"] = tags
    return Part(
        **fields,
        entity=data.get("entity", ""),
        package=data.get("package", ""),
        base=base,
        attributes=attributes,
        pad_map=pad_map,
    )


_CONVERTERS = {
    ItemType.UNIT: _unit,
    ItemType.ENTITY: _entity,
    ItemType.SYMBOL: _symbol,
    ItemType.PACKAGE: _package,
    ItemType.PADSTACK: _padstack,
    ItemType.PART: _part,
}
