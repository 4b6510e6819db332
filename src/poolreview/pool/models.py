"""Data models for pool items and the references between them."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field

NULL_UUID = "00000000-0000-0000-0000-000000000000"


class ItemType(str, Enum):
    """Types of pool items.

    Gates, pins and pads are embedded in entities, units and packages and
    never live in the store on their own.
    """

    PART = "part"
    ENTITY = "entity"
    UNIT = "unit"
    PACKAGE = "package"
    PADSTACK = "padstack"
    SYMBOL = "symbol"
    MODEL_3D = "model_3d"
    GATE = "gate"
    PIN = "pin"
    PAD = "pad"


ITEM_TYPE_NAMES: dict[ItemType, str] = {
    ItemType.PART: "Part",
    ItemType.ENTITY: "Entity",
    ItemType.UNIT: "Unit",
    ItemType.PACKAGE: "Package",
    ItemType.PADSTACK: "Padstack",
    ItemType.SYMBOL: "Symbol",
    ItemType.MODEL_3D: "3D Model",
    ItemType.GATE: "Gate",
    ItemType.PIN: "Pin",
    ItemType.PAD: "Pad",
}


class ItemRef(NamedTuple):
    """Identifies an item by (type, uuid)."""

    type: ItemType
    id: str

    @classmethod
    def of(cls, item_type: ItemType | str, uuid: str) -> ItemRef:
        return cls(ItemType(item_type), uuid)

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"


class PinDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    BIDIRECTIONAL = "bidirectional"
    OPEN_COLLECTOR = "open_collector"
    POWER_INPUT = "power_input"
    POWER_OUTPUT = "power_output"
    PASSIVE = "passive"
    NOT_CONNECTED = "not_connected"


PIN_DIRECTION_NAMES: dict[PinDirection, str] = {
    PinDirection.INPUT: "Input",
    PinDirection.OUTPUT: "Output",
    PinDirection.BIDIRECTIONAL: "Bidirectional",
    PinDirection.OPEN_COLLECTOR: "Open Collector",
    PinDirection.POWER_INPUT: "Power Input",
    PinDirection.POWER_OUTPUT: "Power Output",
    PinDirection.PASSIVE: "Passive",
    PinDirection.NOT_CONNECTED: "Not connected",
}


class PartAttribute(str, Enum):
    """The attribute slots every part carries."""

    MPN = "MPN"
    VALUE = "Value"
    MANUFACTURER = "Manufacturer"
    DATASHEET = "Datasheet"
    DESCRIPTION = "Description"


class PoolItem(BaseModel):
    """Fields shared by every pool item."""

    type: ItemType
    uuid: str
    name: str = ""
    filename: str = ""  # relative to the pool root, POSIX separators
    manufacturer: str = ""
    tags: list[str] = Field(default_factory=list)

    @property
    def ref(self) -> ItemRef:
        return ItemRef(self.type, self.uuid)


class Pin(BaseModel):
    uuid: str
    primary_name: str
    direction: PinDirection = PinDirection.INPUT
    names: list[str] = Field(default_factory=list)


class Unit(PoolItem):
    type: ItemType = ItemType.UNIT
    pins: dict[str, Pin] = Field(default_factory=dict)


class Gate(BaseModel):
    uuid: str
    name: str
    unit: str
    suffix: str = ""
    swap_group: int = 0


class Entity(PoolItem):
    type: ItemType = ItemType.ENTITY
    prefix: str = ""
    gates: dict[str, Gate] = Field(default_factory=dict)


class Symbol(PoolItem):
    type: ItemType = ItemType.SYMBOL
    unit: str = ""


class Pad(BaseModel):
    uuid: str
    name: str
    padstack: str = ""


class Model3D(BaseModel):
    uuid: str
    filename: str


class Package(PoolItem):
    type: ItemType = ItemType.PACKAGE
    pads: dict[str, Pad] = Field(default_factory=dict)
    models: dict[str, Model3D] = Field(default_factory=dict)
    default_model: str = ""


class Padstack(PoolItem):
    type: ItemType = ItemType.PADSTACK


class PadMapEntry(BaseModel):
    gate: str
    pin: str


class Part(PoolItem):
    """A buildable part, possibly derived from a base part.

    `attributes` only holds values the part declares itself; a slot left
    empty is looked up along the base chain. `tags` is None when the part
    has no tag assignment of its own.
    """

    type: ItemType = ItemType.PART
    entity: str = ""
    package: str = ""
    base: str | None = None
    attributes: dict[PartAttribute, str] = Field(default_factory=dict)
    tags: list[str] | None = None
    pad_map: dict[str, PadMapEntry] = Field(default_factory=dict)

    def get_attribute(self, attr: PartAttribute) -> str:
        return self.attributes.get(attr, "")


class ModelItem(PoolItem):
    """A 3-D model file, addressable through the package that links it."""

    type: ItemType = ItemType.MODEL_3D
    package: str = ""


ITEM_MODELS: dict[ItemType, type[PoolItem]] = {
    ItemType.PART: Part,
    ItemType.ENTITY: Entity,
    ItemType.UNIT: Unit,
    ItemType.PACKAGE: Package,
    ItemType.PADSTACK: Padstack,
    ItemType.SYMBOL: Symbol,
    ItemType.MODEL_3D: ModelItem,
}
