from __future__ import annotations

import logging
import math
import uuid
from typing import List, Optional

from lorequest.application.services.balance_tables import store_offer
from lorequest.application.services.base_service import BaseService
from lorequest.domain.models.item import (
    EquipmentSlot,
    InventoryItem,
    ItemSpec,
    UseEffect,
    single_unit,
    sum_stat_bonuses,
)
from lorequest.domain.models.player import PlayerRecord


logger = logging.getLogger(__name__)

RESTORING_EFFECTS = (UseEffect.HEALTH, UseEffect.MANA, UseEffect.STAMINA)

_RESOURCE_FIELDS = {
    UseEffect.HEALTH: ("health", "max_health"),
    UseEffect.MANA: ("mana", "max_mana"),
    UseEffect.STAMINA: ("stamina", "max_stamina"),
    UseEffect.ENERGY: ("energy", "max_energy"),
}


def new_item_id() -> str:
    return uuid.uuid4().hex


def add_units(record: PlayerRecord, spec: ItemSpec, quantity: int = 1) -> InventoryItem:
    """Stack a non-equippable spec onto a matching entry or append fresh entries.

    Equippable specs never stack: every unit becomes its own entry.
    """
    quantity = int(quantity)
    if not spec.equippable:
        for item in record.inventory:
            if not item.equippable and item.name == spec.name and item.item_type == spec.item_type:
                item.quantity += quantity
                return item
        created = spec.build(new_item_id(), quantity)
        record.inventory.append(created)
        return created
    created = None
    for _ in range(quantity):
        created = spec.build(new_item_id(), 1)
        record.inventory.append(created)
    return created


def restock(record: PlayerRecord, item: InventoryItem) -> None:
    """Return a previously equipped unit to the inventory under its own id."""
    if any(existing.id == item.id for existing in record.inventory):
        record.inventory.append(single_unit(item, new_item_id()))
        return
    record.inventory.append(single_unit(item))


def remove_units(record: PlayerRecord, item_id: str, quantity: int = 1) -> bool:
    for index, item in enumerate(record.inventory):
        if item.id != item_id:
            continue
        if quantity < 1 or item.quantity < quantity:
            return False
        if item.quantity == quantity:
            del record.inventory[index]
        else:
            item.quantity -= quantity
        return True
    return False


def recompute_equipment_totals(record: PlayerRecord) -> None:
    equipped = list(record.equipment.values())
    record.armor = sum(int(item.equipment_stats.armor or 0) for item in equipped if item.equipment_stats)
    record.stat_bonuses = sum_stat_bonuses(equipped)


def restore_amount(value: float, cap: int) -> int:
    """Fractions below 1 scale with the cap; anything else is an absolute amount."""
    value = float(value or 0)
    if value <= 0:
        return 0
    if value < 1:
        return int(math.floor(cap * value))
    return int(value)


def combat_usable_items(record: Optional[PlayerRecord]) -> List[InventoryItem]:
    if record is None:
        return []
    return [item for item in record.inventory if item.use_effect in RESTORING_EFFECTS]


def _class_allows(required_class: Optional[str], record: PlayerRecord) -> bool:
    required = str(required_class or "").strip().lower()
    if not required or required == "any":
        return True
    if record.player_class is None:
        return False
    return required == record.player_class.value


class InventoryService(BaseService):
    def add_item(self, record: Optional[PlayerRecord], spec: ItemSpec, quantity: int = 1) -> Optional[PlayerRecord]:
        if record is None:
            return None
        if int(quantity) < 1:
            self._error("Nothing to add", f"Cannot add {quantity} x {spec.name}.")
            return record
        updated = self._working_copy(record)
        add_units(updated, spec, quantity)
        self._success("Item added", f"{quantity} x {spec.name} added to your inventory.")
        return updated

    def remove_item(self, record: Optional[PlayerRecord], item_id: str, quantity: int = 1) -> Optional[PlayerRecord]:
        if record is None:
            return None
        item = record.find_item(item_id)
        if item is None:
            self._error("Item not found", f"No item with id {item_id} in your inventory.")
            return record
        if quantity < 1 or item.quantity < quantity:
            self._error("Not enough items", f"You hold {item.quantity} x {item.name}.")
            return record
        updated = self._working_copy(record)
        remove_units(updated, item_id, quantity)
        return updated

    def apply_use_item(self, record: PlayerRecord, item_id: str) -> bool:
        """Use an item on ``record`` in place; returns True when a unit was consumed."""
        item = record.find_item(item_id)
        if item is None:
            self._error("Item not found", f"No item with id {item_id} in your inventory.")
            return False
        if item.use_effect == UseEffect.REVIVAL:
            self._warning("Cannot use directly", f"{item.name} is used automatically when you fall in battle.")
            return False
        fields = _RESOURCE_FIELDS.get(item.use_effect)
        if fields is None:
            self._warning("Nothing happens", f"{item.name} has no usable effect.")
            return False
        if record.is_dead:
            self._warning("You are defeated", "Items cannot be used until you are revived.")
            return False
        current_field, cap_field = fields
        cap = int(getattr(record, cap_field))
        before = int(getattr(record, current_field))
        after = min(cap, before + restore_amount(item.value, cap))
        setattr(record, current_field, max(0, after))
        remove_units(record, item.id, 1)
        self._success(f"Used {item.name}", f"Restored {after - before} {item.use_effect.value}.")
        return True

    def use_item(self, record: Optional[PlayerRecord], item_id: str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        updated = self._working_copy(record)
        if not self.apply_use_item(updated, item_id):
            return record
        return updated

    def apply_equip(self, record: PlayerRecord, item_id: str) -> bool:
        item = record.find_item(item_id)
        if item is None:
            self._error("Item not found", f"No item with id {item_id} in your inventory.")
            return False
        stats = item.equipment_stats
        if not item.equippable or stats is None:
            self._error("Cannot equip", f"{item.name} is not equipment.")
            return False
        if not _class_allows(stats.required_class, record):
            self._error("Cannot equip", f"{item.name} requires the {stats.required_class} class.")
            return False
        if stats.required_level is not None and int(stats.required_level) > record.level:
            self._error("Cannot equip", f"{item.name} requires level {stats.required_level}.")
            return False

        displaced = record.equipment.get(stats.slot)
        if item.quantity > 1:
            placed = single_unit(item, new_item_id())
        else:
            placed = single_unit(item)
        remove_units(record, item.id, 1)
        if displaced is not None:
            restock(record, displaced)
        record.equipment[stats.slot] = placed
        recompute_equipment_totals(record)
        logger.debug("Equipped %s into %s for player %s", item.name, stats.slot.value, record.player_id)
        self._success("Item equipped", f"{item.name} equipped.")
        return True

    def equip(self, record: Optional[PlayerRecord], item_id: str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        updated = self._working_copy(record)
        if not self.apply_equip(updated, item_id):
            return record
        return updated

    def unequip(self, record: Optional[PlayerRecord], slot: EquipmentSlot | str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        resolved = slot if isinstance(slot, EquipmentSlot) else EquipmentSlot.normalize(slot)
        if resolved is None or resolved not in record.equipment:
            return record
        updated = self._working_copy(record)
        item = updated.equipment.pop(resolved)
        restock(updated, item)
        recompute_equipment_totals(updated)
        self._success("Item unequipped", f"{item.name} returned to your inventory.")
        return updated

    def purchase(self, record: Optional[PlayerRecord], offer_id: str, quantity: int = 1) -> Optional[PlayerRecord]:
        if record is None:
            return None
        offer = store_offer(offer_id)
        if offer is None:
            self._error("Unknown item", f"The merchant does not sell {offer_id}.")
            return record
        if int(quantity) < 1:
            self._error("Nothing to buy", f"Cannot buy {quantity} x {offer.spec.name}.")
            return record
        total = int(offer.gold_cost) * int(quantity)
        if record.gold < total:
            self._error("Insufficient gold", f"{offer.spec.name} x {quantity} costs {total} gold; you have {record.gold}.")
            return record
        updated = self._working_copy(record)
        updated.gold -= total
        add_units(updated, offer.spec, quantity)
        self._success("Purchase complete", f"Bought {quantity} x {offer.spec.name} for {total} gold.")
        return updated
