"""Shared test fixtures for poolreview."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from poolreview.graph.builder import PoolGraphBuilder
from poolreview.graph.query import ItemStore
from poolreview.pool.models import (
    Entity,
    Gate,
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


def _sample_items() -> list[PoolItem]:
    """A small pool: base part P1, derived part P2, and everything P1 uses.

    P1 -> E1 (gate G1 on U1) and K1 (pads 1, 2, 10 on padstack PS1, model M1).
    U1 has pins IN and OUT and is drawn by S1. P2 derives from P1.
    """
    unit = Unit(
        uuid="U1",
        name="Opamp",
        filename="units/opamp.json",
        manufacturer="Acme",
        pins={
            "pin-in": Pin(uuid="pin-in", primary_name="IN", direction="input"),
            "pin-out": Pin(uuid="pin-out", primary_name="OUT", direction="output", names=["Q"]),
        },
    )
    symbol = Symbol(uuid="S1", name="Opamp", filename="symbols/opamp.json", unit="U1")
    entity = Entity(
        uuid="E1",
        name="Opamp",
        filename="entities/opamp.json",
        manufacturer="Acme",
        prefix="U",
        tags=["analog"],
        gates={"G1": Gate(uuid="G1", name="Main", unit="U1")},
    )
    padstack = Padstack(uuid="PS1", name="SMD rect", filename="padstacks/smd.json")
    package = Package(
        uuid="K1",
        name="SOT-23",
        filename="packages/sot23/package.json",
        pads={
            "pad-1": Pad(uuid="pad-1", name="1", padstack="PS1"),
            "pad-2": Pad(uuid="pad-2", name="2", padstack="PS1"),
            "pad-10": Pad(uuid="pad-10", name="10", padstack="PS1"),
        },
        models={"M1": Model3D(uuid="M1", filename="packages/sot23/sot23.step")},
        default_model="M1",
    )
    base_part = Part(
        uuid="P1",
        name="OPA1",
        filename="parts/opa1.json",
        entity="E1",
        package="K1",
        attributes={
            PartAttribute.MPN: "OPA1",
            PartAttribute.MANUFACTURER: "Acme",
            PartAttribute.DATASHEET: "https://acme.example/opa1.pdf",
            PartAttribute.DESCRIPTION: "Single opamp",
        },
        tags=["opamp"],
        pad_map={
            "pad-1": PadMapEntry(gate="G1", pin="pin-in"),
            "pad-2": PadMapEntry(gate="G1", pin="pin-out"),
        },
    )
    derived_part = Part(
        uuid="P2",
        name="OPA1-T",
        filename="parts/opa1-t.json",
        base="P1",
        attributes={PartAttribute.MPN: "OPA1-T"},
    )
    return [unit, symbol, entity, padstack, package, base_part, derived_part]


@pytest.fixture
def sample_items() -> list[PoolItem]:
    return _sample_items()


@pytest.fixture
def sample_store(sample_items: list[PoolItem]) -> ItemStore:
    return PoolGraphBuilder().build_from_items(sample_items)


@pytest.fixture
def make_store():
    """Build a store from item records."""

    def _make(items: list[PoolItem]) -> ItemStore:
        return PoolGraphBuilder().build_from_items(items)

    return _make


def _attr(value: str, inherit: bool = False) -> list:
    return [inherit, value]


@pytest.fixture
def tmp_pool(tmp_path: Path) -> Path:
    """Create a temporary pool directory with item files as the editor writes them."""
    files = {
        "pool.json": {"name": "Test pool", "uuid": "pool-uuid", "version": 1},
        "units/opamp.json": {
            "type": "unit",
            "uuid": "U1",
            "name": "Opamp",
            "manufacturer": "Acme",
            "pins": {
                "pin-in": {"primary_name": "IN", "direction": "input", "names": []},
                "pin-out": {"primary_name": "OUT", "direction": "output", "names": ["Q"]},
            },
        },
        "symbols/opamp.json": {"type": "symbol", "uuid": "S1", "name": "Opamp", "unit": "U1"},
        "entities/opamp.json": {
            "type": "entity",
            "uuid": "E1",
            "name": "Opamp",
            "manufacturer": "Acme",
            "prefix": "U",
            "tags": ["analog"],
            "gates": {"G1": {"name": "Main", "suffix": "", "swap_group": 0, "unit": "U1"}},
        },
        "padstacks/smd.json": {"type": "padstack", "uuid": "PS1", "name": "SMD rect"},
        "packages/sot23/package.json": {
            "type": "package",
            "uuid": "K1",
            "name": "SOT-23",
            "manufacturer": "",
            "tags": ["sot"],
            "pads": {
                "pad-1": {"name": "1", "padstack": "PS1"},
                "pad-2": {"name": "2", "padstack": "PS1"},
                "pad-10": {"name": "10", "padstack": "PS1"},
            },
            "models": {"M1": {"filename": "packages/sot23/sot23.step"}},
            "default_model": "M1",
        },
        "parts/opa1.json": {
            "type": "part",
            "uuid": "P1",
            "MPN": _attr("OPA1"),
            "value": _attr(""),
            "manufacturer": _attr("Acme"),
            "datasheet": _attr("https://acme.example/opa1.pdf"),
            "description": _attr("Single opamp"),
            "entity": "E1",
            "package": "K1",
            "tags": ["opamp"],
            "pad_map": {
                "pad-1": {"gate": "G1", "pin": "pin-in"},
                "pad-2": {"gate": "G1", "pin": "pin-out"},
            },
        },
        "parts/opa1-t.json": {
            "type": "part",
            "uuid": "P2",
            "base": "P1",
            "MPN": _attr("OPA1-T"),
            "value": _attr("", inherit=True),
            "manufacturer": _attr("", inherit=True),
            "datasheet": _attr("", inherit=True),
            "description": _attr("", inherit=True),
            "inherit_tags": True,
            "tags": [],
        },
    }
    for rel_path, data in files.items():
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=4))
    (tmp_path / "packages" / "sot23" / "sot23.step").write_text("ISO-10303-21;\n")
    return tmp_path
