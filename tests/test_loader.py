"""Tests for loading pool item files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from poolreview.config import IndexerConfig
from poolreview.pool.loader import collect_files, item_from_json, load_pool
from poolreview.pool.models import (
    ItemType,
    Package,
    Part,
    PartAttribute,
    PinDirection,
    Unit,
)


class TestLoadPool:
    def test_loads_all_items(self, tmp_pool: Path):
        result = load_pool(tmp_pool)
        assert result.errors == []
        types = sorted(item.type.value for item in result.items)
        assert types == ["entity", "package", "padstack", "part", "part", "symbol", "unit"]

    def test_part_files_load(self, tmp_pool: Path):
        result = load_pool(tmp_pool)
        parts = {item.uuid: item for item in result.items if item.type == ItemType.PART}
        assert sorted(parts) == ["P1", "P2"]
        assert parts["P1"].manufacturer == "Acme"
        assert parts["P2"].base == "P1"

    def test_filenames_are_relative(self, tmp_pool: Path):
        result = load_pool(tmp_pool)
        filenames = {item.uuid: item.filename for item in result.items}
        assert filenames["K1"] == "packages/sot23/package.json"
        assert filenames["P1"] == "parts/opa1.json"

    def test_unreadable_file_collected(self, tmp_pool: Path):
        (tmp_pool / "parts" / "broken.json").write_text("{ not json")
        result = load_pool(tmp_pool)
        assert len(result.errors) == 1
        assert result.errors[0].filename == "parts/broken.json"
        assert "unreadable" in result.errors[0].detail
        assert len(result.items) == 7

    def test_invalid_item_collected(self, tmp_pool: Path):
        (tmp_pool / "units" / "nouuid.json").write_text(json.dumps({"type": "unit"}))
        result = load_pool(tmp_pool)
        assert [e.filename for e in result.errors] == ["units/nouuid.json"]
        assert "invalid item" in result.errors[0].detail

    def test_progress_callback(self, tmp_pool: Path):
        calls = []
        load_pool(tmp_pool, progress_callback=lambda path, i, total: calls.append((i, total)))
        assert calls[-1][0] == calls[-1][1]

    def test_excluded_directories(self, tmp_pool: Path):
        hidden = tmp_pool / ".poolreview"
        hidden.mkdir()
        (hidden / "config.json").write_text("{}")
        files = collect_files(tmp_pool, IndexerConfig())
        assert not any(".poolreview" in f.parts for f in files)

    def test_size_limit(self, tmp_pool: Path):
        (tmp_pool / "big.json").write_text(json.dumps({"pad": "x" * 4096}))
        files = collect_files(tmp_pool, IndexerConfig(max_file_size_kb=1))
        assert tmp_pool / "big.json" not in files


class TestItemFromJson:
    def test_non_item(self):
        assert item_from_json({"name": "pool"}, "pool.json") is None
        assert item_from_json({"type": "frame", "uuid": "x"}, "frames/a.json") is None
        assert item_from_json([1, 2], "list.json") is None

    def test_unit_pins(self):
        unit = item_from_json(
            {
                "type": "unit",
                "uuid": "U",
                "name": "u",
                "pins": {"a": {"primary_name": "VCC", "direction": "power_input"}},
            },
            "units/u.json",
        )
        assert isinstance(unit, Unit)
        assert unit.pins["a"].direction == PinDirection.POWER_INPUT

    def test_package_models(self):
        package = item_from_json(
            {
                "type": "package",
                "uuid": "K",
                "models": {"m": {"filename": "3d/k.step"}},
                "default_model": "m",
            },
            "packages/k/package.json",
        )
        assert isinstance(package, Package)
        assert package.models["m"].filename == "3d/k.step"

    def test_part_own_values(self):
        part = item_from_json(
            {
                "type": "part",
                "uuid": "P",
                "MPN": [False, "ABC"],
                "value": [False, "10k"],
                "manufacturer": [False, "Acme"],
                "entity": "E",
                "package": "K",
                "tags": ["r"],
            },
            "parts/p.json",
        )
        assert isinstance(part, Part)
        assert part.name == "ABC"
        assert part.base is None
        assert part.get_attribute(PartAttribute.VALUE) == "10k"
        assert part.manufacturer == "Acme"
        assert part.tags == ["r"]

    def test_derived_part_inherits(self):
        part = item_from_json(
            {
                "type": "part",
                "uuid": "P",
                "base": "B",
                "MPN": [False, "ABC-T"],
                "manufacturer": [True, "stale"],
                "inherit_tags": True,
                "tags": ["stale"],
            },
            "parts/p.json",
        )
        assert part.base == "B"
        assert part.get_attribute(PartAttribute.MANUFACTURER) == ""
        assert part.manufacturer == ""
        assert part.tags is None

    def test_null_base(self):
        part = item_from_json(
            {"type": "part", "uuid": "P", "base": "00000000-0000-0000-0000-000000000000"},
            "parts/p.json",
        )
        assert part.base is None

    def test_inherit_flag_without_base_keeps_value(self):
        part = item_from_json(
            {"type": "part", "uuid": "P", "MPN": [True, "ABC"]}, "parts/p.json"
        )
        assert part.get_attribute(PartAttribute.MPN) == "ABC"

    @pytest.mark.parametrize("item_type", ["entity", "symbol", "padstack"])
    def test_minimal_items(self, item_type: str):
        item = item_from_json({"type": item_type, "uuid": "X", "name": "x"}, "x.json")
        assert item.type == ItemType(item_type)
        assert item.name == "x"
