from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from lorequest.domain.models.enemy import Enemy
from lorequest.domain.models.player import PlayerRecord


class CombatPhase(str, Enum):
    IDLE = "idle"
    PLAYER_TURN = "player_turn"
    ENEMY_TURN = "enemy_turn"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"

    @property
    def in_combat(self) -> bool:
        return self in (CombatPhase.PLAYER_TURN, CombatPhase.ENEMY_TURN)

    @property
    def resolved(self) -> bool:
        return self in (CombatPhase.VICTORY, CombatPhase.DEFEAT, CombatPhase.FLED)


class CombatActionKind(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    USE_ITEM = "use_item"
    FLEE = "flee"


@dataclass(frozen=True)
class CombatAction:
    kind: CombatActionKind
    item_id: Optional[str] = None

    @classmethod
    def attack(cls) -> "CombatAction":
        return cls(CombatActionKind.ATTACK)

    @classmethod
    def defend(cls) -> "CombatAction":
        return cls(CombatActionKind.DEFEND)

    @classmethod
    def use_item(cls, item_id: str) -> "CombatAction":
        return cls(CombatActionKind.USE_ITEM, item_id=item_id)

    @classmethod
    def flee(cls) -> "CombatAction":
        return cls(CombatActionKind.FLEE)


@dataclass(frozen=True)
class CombatLogEntry:
    actor: str
    message: str
    damage: int = 0
    critical: bool = False


@dataclass
class Encounter:
    """Transient state of one fight; the record inside it is the live copy."""

    record: PlayerRecord
    enemy: Enemy
    phase: CombatPhase = CombatPhase.IDLE
    defending: bool = False
    round_number: int = 0
    log: List[CombatLogEntry] = field(default_factory=list)
    pending_turn: Any = None

    @property
    def in_combat(self) -> bool:
        return self.phase.in_combat

    @property
    def resolved(self) -> bool:
        return self.phase.resolved

    def add_log(self, actor: str, message: str, *, damage: int = 0, critical: bool = False) -> CombatLogEntry:
        entry = CombatLogEntry(actor=actor, message=message, damage=damage, critical=critical)
        self.log.append(entry)
        return entry
