from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AttackType(str, Enum):
    MELEE = "melee"
    MAGIC = "magic"
    RANGED = "ranged"

    @classmethod
    def normalize(cls, value: str | None) -> "AttackType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return cls.MELEE


@dataclass
class Enemy:
    name: str
    level: int
    max_health: int
    current_health: int
    attack: int
    defense: int
    attack_type: AttackType = AttackType.MELEE
    xp_reward: int = 0
    gold_reward: int = 0
    description: str = ""

    def __post_init__(self) -> None:
        self.max_health = max(1, int(self.max_health))
        self.current_health = max(0, min(int(self.current_health), self.max_health))

    @property
    def defeated(self) -> bool:
        return self.current_health <= 0
