from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional

from lorequest.domain.models.enemy import AttackType


class ItemType(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    POTION = "potion"
    ELIXIR = "elixir"
    RUNE = "rune"
    MAP = "map"
    COMPASS = "compass"
    GOLD = "gold"
    ENERGY = "energy"
    OTHER = "other"

    @classmethod
    def normalize(cls, value: str | None) -> "ItemType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return cls.OTHER


class UseEffect(str, Enum):
    HEALTH = "health"
    MANA = "mana"
    STAMINA = "stamina"
    ENERGY = "energy"
    REVIVAL = "revival"
    NONE = "none"

    @classmethod
    def normalize(cls, value: str | None) -> "UseEffect":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return cls.NONE


class EquipmentSlot(str, Enum):
    MAIN_WEAPON = "main_weapon"
    SECONDARY_WEAPON = "secondary_weapon"
    HEAD = "head"
    BODY = "body"
    LEGS = "legs"
    HANDS = "hands"
    FEET = "feet"

    @classmethod
    def normalize(cls, value: str | None) -> Optional["EquipmentSlot"]:
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "mainweapon": cls.MAIN_WEAPON.value,
            "weapon": cls.MAIN_WEAPON.value,
            "secondaryweapon": cls.SECONDARY_WEAPON.value,
            "offhand": cls.SECONDARY_WEAPON.value,
            "chest": cls.BODY.value,
        }
        resolved = aliases.get(raw, raw)
        for item in cls:
            if item.value == resolved:
                return item
        return None


CORE_ATTRIBUTES: tuple[str, ...] = ("strength", "intelligence", "dexterity")


@dataclass(frozen=True)
class StatBonus:
    attribute: str
    value: int


@dataclass(frozen=True)
class EquipmentStats:
    slot: EquipmentSlot
    armor: int = 0
    stat_bonuses: tuple[StatBonus, ...] = ()
    required_class: Optional[str] = None
    required_level: Optional[int] = None
    attack_type: Optional[AttackType] = None


@dataclass
class InventoryItem:
    id: str
    item_type: ItemType
    name: str
    quantity: int = 1
    description: str = ""
    use_effect: UseEffect = UseEffect.NONE
    value: float = 0
    is_equippable: bool = False
    equipment_stats: Optional[EquipmentStats] = None

    def __post_init__(self) -> None:
        if int(self.quantity) < 1:
            raise ValueError("Inventory items must hold at least one unit")
        # equippable flag and equipment stats travel together
        if self.is_equippable and self.equipment_stats is None:
            self.is_equippable = False
        if self.equipment_stats is not None and not self.is_equippable:
            self.equipment_stats = None

    @property
    def equippable(self) -> bool:
        return bool(self.is_equippable and self.equipment_stats is not None)


@dataclass(frozen=True)
class ItemSpec:
    """Blueprint used when granting items; the store assigns ids."""

    name: str
    item_type: ItemType = ItemType.OTHER
    description: str = ""
    use_effect: UseEffect = UseEffect.NONE
    value: float = 0
    equipment_stats: Optional[EquipmentStats] = None

    @property
    def equippable(self) -> bool:
        return self.equipment_stats is not None

    def build(self, item_id: str, quantity: int = 1) -> InventoryItem:
        return InventoryItem(
            id=item_id,
            item_type=self.item_type,
            name=self.name,
            quantity=quantity,
            description=self.description,
            use_effect=self.use_effect,
            value=self.value,
            is_equippable=self.equippable,
            equipment_stats=self.equipment_stats,
        )


def single_unit(item: InventoryItem, item_id: str | None = None) -> InventoryItem:
    return replace(item, id=item_id or item.id, quantity=1)


def sum_stat_bonuses(items: List[InventoryItem]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for item in items:
        stats = item.equipment_stats
        if stats is None:
            continue
        for bonus in stats.stat_bonuses:
            key = str(bonus.attribute).strip().lower()
            totals[key] = totals.get(key, 0) + int(bonus.value)
    return totals


@dataclass
class StoreOffer:
    offer_id: str
    spec: ItemSpec
    gold_cost: int
