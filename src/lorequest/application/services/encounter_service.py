from __future__ import annotations

import math
import random
from typing import Optional

from lorequest.application.services.balance_tables import (
    BASE_ENEMIES,
    ENEMY_GOLD_PER_LEVEL,
    ENEMY_HEALTH_PER_SCALE,
    ENEMY_LEVEL_SCALE,
    ENEMY_XP_PER_LEVEL,
    encounter_chance,
)
from lorequest.domain.models.enemy import AttackType, Enemy


def generate_enemy(player_level: int, rng: Optional[random.Random] = None) -> Enemy:
    """Pick a base enemy and scale it gently with the player's level."""
    rng = rng or random.Random()
    level = max(1, int(player_level))
    base = rng.choice(BASE_ENEMIES)
    scaling = max(1, level - 1) * ENEMY_LEVEL_SCALE
    health = int(math.floor(base["base_health"] + scaling * ENEMY_HEALTH_PER_SCALE))
    return Enemy(
        name=base["name"],
        level=level,
        max_health=health,
        current_health=health,
        attack=int(math.floor(base["base_attack"] + scaling)),
        defense=int(base["base_defense"]),
        attack_type=AttackType.normalize(base["attack_type"]),
        xp_reward=int(base["base_xp"] + level * ENEMY_XP_PER_LEVEL),
        gold_reward=int(base["base_gold"] + level * ENEMY_GOLD_PER_LEVEL),
        description=base.get("description", ""),
    )


def should_trigger_encounter(distance_m: float, rng: Optional[random.Random] = None) -> bool:
    rng = rng or random.Random()
    chance = encounter_chance(distance_m)
    if chance <= 0:
        return False
    return rng.random() < chance
