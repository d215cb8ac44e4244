from __future__ import annotations

import copy
import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional

from lorequest.application.services.balance_tables import (
    CLASS_DAMAGE_MULTIPLIER,
    CRITICAL_HIT_MULTIPLIER,
    DEFEND_DAMAGE_MULTIPLIER,
    EFFECTIVENESS_CYCLE,
    ENEMY_CRITICAL_CHANCE,
    ENEMY_MITIGATION_PER_DEFENSE,
    ENEMY_TURN_DELAY_S,
    MINIMUM_DAMAGE,
    PLAYER_MITIGATION_PER_ARMOR,
    STRONG_MATCHUP_MULTIPLIER,
    WEAK_MATCHUP_MULTIPLIER,
    flee_chance,
    player_critical_chance,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.inventory_service import InventoryService, remove_units
from lorequest.application.services.progression_service import ProgressionService
from lorequest.application.services.resource_service import find_revival_item, mark_dead, revive, revive_fraction
from lorequest.application.services.turn_scheduler import ImmediateTurnScheduler, TurnScheduler
from lorequest.domain.events import CombatResolvedEvent
from lorequest.domain.models.combat import CombatAction, CombatActionKind, CombatPhase, Encounter
from lorequest.domain.models.enemy import AttackType, Enemy
from lorequest.domain.models.item import CORE_ATTRIBUTES, EquipmentSlot
from lorequest.domain.models.player import PlayerRecord


logger = logging.getLogger(__name__)

WEAPON_SLOTS = (EquipmentSlot.MAIN_WEAPON, EquipmentSlot.SECONDARY_WEAPON)


@dataclass(frozen=True)
class DamageRoll:
    amount: int
    critical: bool
    effectiveness: float


def effectiveness_multiplier(attack_type: Optional[AttackType], defender_type: Optional[AttackType]) -> float:
    if attack_type is None or defender_type is None or attack_type == defender_type:
        return 1.0
    if EFFECTIVENESS_CYCLE.get(attack_type) == defender_type:
        return STRONG_MATCHUP_MULTIPLIER
    if EFFECTIVENESS_CYCLE.get(defender_type) == attack_type:
        return WEAK_MATCHUP_MULTIPLIER
    return 1.0


def effective_attribute(record: PlayerRecord, attribute: str) -> int:
    return record.stats.get(attribute) + int(record.stat_bonuses.get(attribute, 0))


def best_attack_type(record: PlayerRecord) -> Optional[AttackType]:
    """The class default, overridden by a main weapon that declares its own type."""
    weapon = record.equipment.get(EquipmentSlot.MAIN_WEAPON)
    if weapon is not None and weapon.equipment_stats is not None and weapon.equipment_stats.attack_type is not None:
        return weapon.equipment_stats.attack_type
    if record.player_class is not None:
        return record.player_class.attack_type
    return None


def player_base_damage(record: PlayerRecord) -> float:
    if record.player_class is not None:
        attribute_value = record.stats.get(record.player_class.primary_attribute)
    else:
        attribute_value = max(record.stats.get(name) for name in CORE_ATTRIBUTES)
    damage = attribute_value * CLASS_DAMAGE_MULTIPLIER
    for slot in WEAPON_SLOTS:
        weapon = record.equipment.get(slot)
        if weapon is None or weapon.equipment_stats is None:
            continue
        for bonus in weapon.equipment_stats.stat_bonuses:
            if bonus.attribute in CORE_ATTRIBUTES:
                damage += int(bonus.value)
    return damage


def compute_damage(
    base: float,
    attack_type: Optional[AttackType],
    defender_type: Optional[AttackType],
    mitigation: float,
    *,
    critical: bool = False,
    defending: bool = False,
) -> DamageRoll:
    multiplier = effectiveness_multiplier(attack_type, defender_type)
    damage = float(base) * multiplier
    if critical:
        damage *= CRITICAL_HIT_MULTIPLIER
    if defending:
        damage = math.floor(damage * DEFEND_DAMAGE_MULTIPLIER)
    damage -= mitigation
    amount = max(MINIMUM_DAMAGE, int(math.floor(damage)))
    return DamageRoll(amount=amount, critical=critical, effectiveness=multiplier)


class CombatService(BaseService):
    def __init__(
        self,
        notifier=None,
        event_publisher=None,
        progression_service: Optional[ProgressionService] = None,
        inventory_service: Optional[InventoryService] = None,
        scheduler: Optional[TurnScheduler] = None,
        enemy_turn_delay_s: float = ENEMY_TURN_DELAY_S,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[Encounter], None]] = None,
    ) -> None:
        super().__init__(notifier=notifier, event_publisher=event_publisher)
        self.inventory_service = inventory_service or InventoryService(notifier=notifier, event_publisher=event_publisher)
        self.progression_service = progression_service or ProgressionService(
            notifier=notifier,
            event_publisher=event_publisher,
            inventory_service=self.inventory_service,
        )
        self.scheduler = scheduler or ImmediateTurnScheduler()
        self.enemy_turn_delay_s = max(0.0, float(enemy_turn_delay_s))
        self.rng = rng or random.Random()
        self.on_change = on_change

    def set_seed(self, seed: int) -> None:
        self.rng.seed(seed)

    def roll_player_attack(self, record: PlayerRecord, enemy: Enemy) -> DamageRoll:
        critical = self.rng.random() < player_critical_chance(effective_attribute(record, "dexterity"))
        return compute_damage(
            player_base_damage(record),
            best_attack_type(record),
            enemy.attack_type,
            enemy.defense * ENEMY_MITIGATION_PER_DEFENSE,
            critical=critical,
        )

    def roll_enemy_attack(self, enemy: Enemy, record: PlayerRecord, *, defending: bool = False) -> DamageRoll:
        critical = self.rng.random() < ENEMY_CRITICAL_CHANCE
        return compute_damage(
            enemy.attack,
            enemy.attack_type,
            best_attack_type(record),
            record.armor * PLAYER_MITIGATION_PER_ARMOR,
            critical=critical,
            defending=defending,
        )

    def start_combat(self, record: Optional[PlayerRecord], enemy: Enemy) -> Optional[Encounter]:
        if record is None:
            return None
        if record.is_dead:
            self._error("You cannot fight", "You have been defeated. Use a revival elixir first.")
            return Encounter(record=record, enemy=copy.deepcopy(enemy), phase=CombatPhase.IDLE)
        encounter = Encounter(
            record=self._working_copy(record),
            enemy=copy.deepcopy(enemy),
            phase=CombatPhase.PLAYER_TURN,
        )
        encounter.add_log("system", f"Combat started against {enemy.name} (level {enemy.level}).")
        logger.debug("Combat started: player=%s enemy=%s", record.player_id, enemy.name)
        return encounter

    def perform_action(self, encounter: Optional[Encounter], action: CombatAction) -> Optional[Encounter]:
        if encounter is None:
            return None
        if encounter.phase != CombatPhase.PLAYER_TURN:
            self._warning("Not your turn", f"Actions are not accepted while combat is {encounter.phase.value}.")
            return encounter

        if action.kind == CombatActionKind.ATTACK:
            self._player_attack(encounter)
        elif action.kind == CombatActionKind.DEFEND:
            encounter.round_number += 1
            encounter.defending = True
            encounter.add_log("player", "You brace yourself for the next attack.")
            self._begin_enemy_turn(encounter)
        elif action.kind == CombatActionKind.USE_ITEM:
            item = encounter.record.find_item(action.item_id or "")
            if not self.inventory_service.apply_use_item(encounter.record, action.item_id or ""):
                return encounter
            encounter.round_number += 1
            encounter.add_log("player", f"You used {item.name}.")
            self._begin_enemy_turn(encounter)
        elif action.kind == CombatActionKind.FLEE:
            self._attempt_flee(encounter)
        self._changed(encounter)
        return encounter

    def abandon(self, encounter: Optional[Encounter]) -> Optional[Encounter]:
        """Force-end a fight; a pending enemy turn is cancelled and never fires."""
        if encounter is None:
            return None
        if encounter.pending_turn is not None:
            encounter.pending_turn.cancel()
            encounter.pending_turn = None
        if encounter.in_combat:
            encounter.phase = CombatPhase.IDLE
            encounter.defending = False
            encounter.add_log("system", "Combat was abandoned.")
            logger.debug("Combat abandoned: player=%s", encounter.record.player_id)
        return encounter

    def _changed(self, encounter: Encounter) -> None:
        if callable(self.on_change):
            self.on_change(encounter)

    def _player_attack(self, encounter: Encounter) -> None:
        encounter.round_number += 1
        roll = self.roll_player_attack(encounter.record, encounter.enemy)
        enemy = encounter.enemy
        enemy.current_health = max(0, enemy.current_health - roll.amount)
        prefix = "Critical hit! " if roll.critical else ""
        encounter.add_log(
            "player",
            f"{prefix}You hit {enemy.name} for {roll.amount} damage.",
            damage=roll.amount,
            critical=roll.critical,
        )
        if enemy.defeated:
            self._resolve_victory(encounter)
            return
        self._begin_enemy_turn(encounter)

    def _attempt_flee(self, encounter: Encounter) -> None:
        encounter.round_number += 1
        chance = flee_chance(effective_attribute(encounter.record, "dexterity"), encounter.enemy.level)
        if self.rng.random() < chance:
            encounter.add_log("player", f"You escaped from {encounter.enemy.name}.")
            self._resolve(encounter, CombatPhase.FLED)
            self._warning("You fled", f"You escaped from {encounter.enemy.name}.")
            return
        encounter.add_log("player", "You failed to escape!")
        self._strike_player(encounter, defending=False)
        if encounter.phase != CombatPhase.DEFEAT:
            encounter.phase = CombatPhase.PLAYER_TURN

    def _begin_enemy_turn(self, encounter: Encounter) -> None:
        encounter.phase = CombatPhase.ENEMY_TURN
        handle = self.scheduler.schedule(self.enemy_turn_delay_s, lambda: self._enemy_turn(encounter))
        encounter.pending_turn = handle if handle.pending else None

    def _enemy_turn(self, encounter: Encounter) -> None:
        if encounter.phase != CombatPhase.ENEMY_TURN:
            return
        encounter.pending_turn = None
        defending = encounter.defending
        encounter.defending = False
        self._strike_player(encounter, defending=defending)
        if encounter.phase == CombatPhase.ENEMY_TURN:
            encounter.phase = CombatPhase.PLAYER_TURN
        self._changed(encounter)

    def _strike_player(self, encounter: Encounter, *, defending: bool) -> None:
        record = encounter.record
        enemy = encounter.enemy
        roll = self.roll_enemy_attack(enemy, record, defending=defending)
        record.health = max(0, record.health - roll.amount)
        prefix = "Critical hit! " if roll.critical else ""
        suffix = " (defended)" if defending else ""
        encounter.add_log(
            "enemy",
            f"{prefix}{enemy.name} hits you for {roll.amount} damage{suffix}.",
            damage=roll.amount,
            critical=roll.critical,
        )
        if record.health <= 0:
            self._resolve_defeat(encounter)

    def _resolve_victory(self, encounter: Encounter) -> None:
        record = encounter.record
        enemy = encounter.enemy
        record.ledger.battles_won += 1
        encounter.add_log("system", f"You defeated {enemy.name}!")
        self._success("Victory!", f"You defeated {enemy.name}.")
        self.progression_service.apply_experience(record, enemy.xp_reward, f"defeating {enemy.name}")
        self.progression_service.apply_gold(record, enemy.gold_reward, f"defeating {enemy.name}")
        self._resolve(encounter, CombatPhase.VICTORY)

    def _resolve_defeat(self, encounter: Encounter) -> None:
        record = encounter.record
        record.ledger.battles_lost += 1
        elixir = find_revival_item(record)
        if elixir is not None:
            fraction = revive_fraction(elixir)
            remove_units(record, elixir.id, 1)
            revive(record, fraction)
            encounter.add_log("system", f"{elixir.name} revived you.")
            self._warning("Defeated, but revived", f"{elixir.name} restored you to {int(fraction * 100)}%.")
        else:
            mark_dead(record)
            encounter.add_log("system", f"You were defeated by {encounter.enemy.name}.")
            self._error("Defeated", f"{encounter.enemy.name} has bested you.")
        self._resolve(encounter, CombatPhase.DEFEAT)

    def _resolve(self, encounter: Encounter, phase: CombatPhase) -> None:
        encounter.phase = phase
        encounter.defending = False
        if encounter.pending_turn is not None:
            encounter.pending_turn.cancel()
            encounter.pending_turn = None
        logger.debug("Combat resolved: player=%s outcome=%s", encounter.record.player_id, phase.value)
        self._publish(
            CombatResolvedEvent(
                player_id=encounter.record.player_id,
                enemy_name=encounter.enemy.name,
                outcome=phase.value,
                rounds=encounter.round_number,
            )
        )
