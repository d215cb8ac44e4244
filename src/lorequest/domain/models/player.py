from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from lorequest.domain.models.achievement import AchievementProgress
from lorequest.domain.models.enemy import AttackType
from lorequest.domain.models.item import EquipmentSlot, InventoryItem


class PlayerClass(str, Enum):
    KNIGHT = "knight"
    WIZARD = "wizard"
    RANGER = "ranger"

    @classmethod
    def normalize(cls, value: str | None) -> Optional["PlayerClass"]:
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return None

    @property
    def primary_attribute(self) -> str:
        return {
            PlayerClass.KNIGHT: "strength",
            PlayerClass.WIZARD: "intelligence",
            PlayerClass.RANGER: "dexterity",
        }[self]

    @property
    def attack_type(self) -> AttackType:
        return {
            PlayerClass.KNIGHT: AttackType.MELEE,
            PlayerClass.WIZARD: AttackType.MAGIC,
            PlayerClass.RANGER: AttackType.RANGED,
        }[self]


class LifeState(str, Enum):
    ALIVE = "alive"
    DEAD = "dead"


@dataclass
class CoreStats:
    strength: int = 1
    intelligence: int = 1
    dexterity: int = 1

    def get(self, attribute: str) -> int:
        return int(getattr(self, attribute, 0) or 0)


@dataclass
class StatsLedger:
    distance_travelled_km: float = 0.0
    locations_discovered: int = 0
    total_xp_earned: int = 0
    quest_xp_earned: int = 0
    walking_xp_earned: int = 0
    total_gold_earned: int = 0
    quest_gold_earned: int = 0
    quests_completed: int = 0
    achievements_unlocked: int = 0
    battles_won: int = 0
    battles_lost: int = 0


@dataclass
class WalkingLedger:
    pending_km: float = 0.0
    earned_xp: int = 0
    last_award_date: Optional[date] = None


@dataclass
class PlayerRecord:
    player_id: str
    name: str
    stats: CoreStats = field(default_factory=CoreStats)
    health: int = 100
    max_health: int = 100
    mana: int = 100
    max_mana: int = 100
    stamina: int = 100
    max_stamina: int = 100
    energy: int = 5
    max_energy: int = 5
    level: int = 1
    experience: int = 0
    gold: int = 0
    player_class: Optional[PlayerClass] = None
    inventory: List[InventoryItem] = field(default_factory=list)
    equipment: Dict[EquipmentSlot, InventoryItem] = field(default_factory=dict)
    armor: int = 0
    stat_bonuses: Dict[str, int] = field(default_factory=dict)
    achievements: Dict[str, AchievementProgress] = field(default_factory=dict)
    active_quest_ids: Set[str] = field(default_factory=set)
    completed_quest_ids: Set[str] = field(default_factory=set)
    discovered_location_ids: List[str] = field(default_factory=list)
    life_state: LifeState = LifeState.ALIVE
    last_regeneration_at: Optional[datetime] = None
    last_energy_regen_at: Optional[datetime] = None
    ledger: StatsLedger = field(default_factory=StatsLedger)
    walking: WalkingLedger = field(default_factory=WalkingLedger)

    @property
    def is_dead(self) -> bool:
        return self.life_state == LifeState.DEAD

    def find_item(self, item_id: str) -> Optional[InventoryItem]:
        for item in self.inventory:
            if item.id == item_id:
                return item
        return None
