from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from lorequest.application.services.balance_tables import (
    COMBAT_ENERGY_COST,
    DEFAULT_REVIVE_FRACTION,
    ENERGY_REGEN_MINUTES,
    REGEN_FRACTION_PER_INTERVAL,
    REGEN_INTERVAL_MINUTES,
    resource_cap,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.inventory_service import remove_units
from lorequest.domain.models.item import CORE_ATTRIBUTES, InventoryItem, ItemType, UseEffect
from lorequest.domain.models.player import CoreStats, LifeState, PlayerRecord


logger = logging.getLogger(__name__)

RESOURCES = (
    ("health", "max_health"),
    ("mana", "max_mana"),
    ("stamina", "max_stamina"),
)


@dataclass(frozen=True)
class ResourceCaps:
    max_health: int
    max_mana: int
    max_stamina: int


def derive_caps(stats: CoreStats) -> ResourceCaps:
    return ResourceCaps(
        max_health=resource_cap(stats.strength),
        max_mana=resource_cap(stats.intelligence),
        max_stamina=resource_cap(stats.dexterity),
    )


def clamp_resources(record: PlayerRecord) -> None:
    for current_field, cap_field in RESOURCES:
        cap = max(0, int(getattr(record, cap_field)))
        setattr(record, cap_field, cap)
        setattr(record, current_field, max(0, min(cap, int(getattr(record, current_field)))))


def apply_caps(record: PlayerRecord) -> None:
    """Raise resource ceilings to match core stats; current values are kept."""
    caps = derive_caps(record.stats)
    record.max_health = max(record.max_health, caps.max_health)
    record.max_mana = max(record.max_mana, caps.max_mana)
    record.max_stamina = max(record.max_stamina, caps.max_stamina)
    clamp_resources(record)


def revive_fraction(item: InventoryItem) -> float:
    value = float(item.value or 0)
    if 0 < value <= 1:
        return value
    return DEFAULT_REVIVE_FRACTION


def find_revival_item(record: PlayerRecord) -> Optional[InventoryItem]:
    for item in record.inventory:
        if item.use_effect == UseEffect.REVIVAL:
            return item
    return None


def mark_dead(record: PlayerRecord) -> None:
    record.health = 0
    record.life_state = LifeState.DEAD


def revive(record: PlayerRecord, fraction: float) -> None:
    for current_field, cap_field in RESOURCES:
        cap = int(getattr(record, cap_field))
        target = int(math.floor(cap * fraction))
        setattr(record, current_field, max(int(getattr(record, current_field)), target))
    record.health = max(1, record.health)
    record.life_state = LifeState.ALIVE
    clamp_resources(record)


class ResourceService(BaseService):
    def regenerate(self, record: Optional[PlayerRecord], now: datetime) -> Optional[PlayerRecord]:
        if record is None:
            return None
        if record.is_dead:
            return record
        if record.last_regeneration_at is None:
            updated = self._working_copy(record)
            updated.last_regeneration_at = now
            return updated
        elapsed_minutes = (now - record.last_regeneration_at).total_seconds() / 60.0
        if elapsed_minutes < REGEN_INTERVAL_MINUTES:
            return record

        updated = self._working_copy(record)
        intervals = elapsed_minutes / REGEN_INTERVAL_MINUTES
        restored = {}
        for current_field, cap_field in RESOURCES:
            cap = int(getattr(updated, cap_field))
            before = int(getattr(updated, current_field))
            gain = int(math.floor(cap * REGEN_FRACTION_PER_INTERVAL * intervals))
            after = min(cap, before + gain)
            setattr(updated, current_field, after)
            if after != before:
                restored[current_field] = after - before
        updated.last_regeneration_at = now
        if restored:
            logger.debug("Regenerated %s for player %s", restored, record.player_id)
        return updated

    def regenerate_energy(self, record: Optional[PlayerRecord], now: datetime) -> Optional[PlayerRecord]:
        """Grant one energy point per elapsed interval, keeping the unused remainder."""
        if record is None:
            return None
        if record.last_energy_regen_at is None:
            updated = self._working_copy(record)
            updated.last_energy_regen_at = now
            return updated
        interval = timedelta(minutes=ENERGY_REGEN_MINUTES)
        points = int((now - record.last_energy_regen_at) // interval)
        if points <= 0:
            return record

        updated = self._working_copy(record)
        updated.energy = min(updated.max_energy, updated.energy + points)
        updated.last_energy_regen_at = record.last_energy_regen_at + interval * points
        gained = updated.energy - record.energy
        if gained == 1:
            self._success("Energy restored", "1 energy point has been regenerated.")
        elif gained > 1:
            self._success("Energy restored", f"{gained} energy points have been regenerated.")
        return updated

    def spend_energy(
        self,
        record: Optional[PlayerRecord],
        amount: int = COMBAT_ENERGY_COST,
    ) -> Tuple[Optional[PlayerRecord], bool]:
        if record is None:
            return None, False
        if record.energy < amount:
            self._error("Not enough energy", "Wait for regeneration or drink an energy potion.")
            return record, False
        updated = self._working_copy(record)
        updated.energy -= amount
        return updated, True

    def apply_stat_upgrade(self, record: PlayerRecord, attribute: str) -> bool:
        key = str(attribute or "").strip().lower()
        if key not in CORE_ATTRIBUTES:
            self._error("Unknown attribute", f"{attribute} cannot be upgraded.")
            return False
        rune = next((item for item in record.inventory if item.item_type == ItemType.RUNE), None)
        if rune is None:
            self._error("No rune available", "You need a rune to upgrade an attribute.")
            return False
        remove_units(record, rune.id, 1)
        setattr(record.stats, key, record.stats.get(key) + 1)
        apply_caps(record)
        self._success("Attribute upgraded", f"{key.capitalize()} is now {record.stats.get(key)}.")
        return True

    def upgrade_stat_with_rune(self, record: Optional[PlayerRecord], attribute: str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        updated = self._working_copy(record)
        if not self.apply_stat_upgrade(updated, attribute):
            return record
        return updated
