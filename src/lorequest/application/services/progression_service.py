from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from lorequest.application.services.balance_tables import (
    ACHIEVEMENT_CHEST,
    LEVEL_CAP,
    LEVEL_UP_GOLD_PER_LEVEL,
    MAX_ENERGY,
    STARTER_KITS,
    STARTING_GOLD,
    STARTING_RESOURCE,
    level_for_experience,
    xp_required_for_level,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.inventory_service import InventoryService, add_units
from lorequest.application.services.resource_service import derive_caps
from lorequest.domain.events import LevelUpAppliedEvent
from lorequest.domain.models.player import CoreStats, PlayerClass, PlayerRecord


logger = logging.getLogger(__name__)


def level_threshold(level: int) -> int:
    return xp_required_for_level(level)


def level_progress_percent(record: PlayerRecord) -> int:
    if record.level >= LEVEL_CAP:
        return 100
    floor_xp = level_threshold(record.level)
    span = level_threshold(record.level + 1) - floor_xp
    if span <= 0:
        return 100
    percent = (100 * (record.experience - floor_xp)) // span
    return max(0, min(100, int(percent)))


def new_player_record(player_id: str, name: str, now: Optional[datetime] = None) -> PlayerRecord:
    stats = CoreStats(strength=1, intelligence=1, dexterity=1)
    caps = derive_caps(stats)
    return PlayerRecord(
        player_id=player_id,
        name=name,
        stats=stats,
        health=STARTING_RESOURCE,
        max_health=caps.max_health,
        mana=STARTING_RESOURCE,
        max_mana=caps.max_mana,
        stamina=STARTING_RESOURCE,
        max_stamina=caps.max_stamina,
        energy=MAX_ENERGY,
        max_energy=MAX_ENERGY,
        gold=STARTING_GOLD,
        last_regeneration_at=now,
        last_energy_regen_at=now,
    )


class ProgressionService(BaseService):
    def __init__(self, notifier=None, event_publisher=None, inventory_service: InventoryService | None = None) -> None:
        super().__init__(notifier=notifier, event_publisher=event_publisher)
        self._inventory = inventory_service or InventoryService(notifier=notifier, event_publisher=event_publisher)

    def apply_experience(self, record: PlayerRecord, amount: int, reason: str = "") -> int:
        """Add XP in place and settle every level crossed; returns levels gained."""
        amount = int(amount)
        if amount <= 0:
            return 0
        record.experience += amount
        record.ledger.total_xp_earned += amount

        gained = 0
        target = level_for_experience(record.experience)
        while record.level < target:
            from_level = record.level
            record.level += 1
            gold = record.level * LEVEL_UP_GOLD_PER_LEVEL
            self.apply_gold(record, gold, "level up", announce=False)
            add_units(record, ACHIEVEMENT_CHEST, 1)
            gained += 1
            logger.debug("Player %s reached level %s", record.player_id, record.level)
            self._success(
                f"Level up! You are now level {record.level}",
                f"You received {gold} gold and an {ACHIEVEMENT_CHEST.name}.",
            )
            self._publish(
                LevelUpAppliedEvent(
                    player_id=record.player_id,
                    from_level=from_level,
                    to_level=record.level,
                    gold_granted=gold,
                )
            )
        suffix = f" for {reason}" if reason else ""
        self._success(f"+{amount} XP", f"You earned {amount} experience{suffix}.")
        return gained

    def add_experience(self, record: Optional[PlayerRecord], amount: int, reason: str = "") -> Optional[PlayerRecord]:
        if record is None:
            return None
        if int(amount) <= 0:
            return record
        updated = self._working_copy(record)
        self.apply_experience(updated, amount, reason)
        return updated

    def apply_gold(self, record: PlayerRecord, amount: int, source: str = "", *, announce: bool = True) -> bool:
        amount = int(amount)
        if amount <= 0:
            return False
        record.gold += amount
        record.ledger.total_gold_earned += amount
        if announce:
            suffix = f" from {source}" if source else ""
            self._success(f"+{amount} gold", f"You received {amount} gold{suffix}.")
        return True

    def add_gold(self, record: Optional[PlayerRecord], amount: int, source: str = "") -> Optional[PlayerRecord]:
        if record is None:
            return None
        if int(amount) <= 0:
            return record
        updated = self._working_copy(record)
        self.apply_gold(updated, amount, source)
        return updated

    def spend_gold(self, record: Optional[PlayerRecord], amount: int, reason: str = "") -> tuple[Optional[PlayerRecord], bool]:
        if record is None:
            return None, False
        amount = int(amount)
        if amount < 0:
            self._error("Invalid amount", f"Cannot spend {amount} gold.")
            return record, False
        if record.gold < amount:
            self._error("Insufficient gold", f"You need {amount} gold but only have {record.gold}.")
            return record, False
        if amount == 0:
            return record, True
        updated = self._working_copy(record)
        updated.gold -= amount
        suffix = f" on {reason}" if reason else ""
        self._success(f"-{amount} gold", f"You spent {amount} gold{suffix}.")
        return updated, True

    def apply_class_choice(self, record: PlayerRecord, player_class: PlayerClass | str) -> bool:
        resolved = player_class if isinstance(player_class, PlayerClass) else PlayerClass.normalize(player_class)
        if resolved is None:
            self._error("Unknown class", f"{player_class} is not a playable class.")
            return False
        if record.player_class is not None:
            self._warning("Class already chosen", f"You are already a {record.player_class.value.capitalize()}.")
            return False
        record.player_class = resolved
        for spec in STARTER_KITS.get(resolved.value, ()):
            created = add_units(record, spec, 1)
            self._inventory.apply_equip(record, created.id)
        self._success(f"You are now a {resolved.value.capitalize()}", "Your starter equipment has been equipped.")
        return True

    def choose_class(self, record: Optional[PlayerRecord], player_class: PlayerClass | str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        updated = self._working_copy(record)
        if not self.apply_class_choice(updated, player_class):
            return record
        return updated
