from __future__ import annotations

from lorequest.domain.models.achievement import AchievementKind, Location
from lorequest.domain.models.enemy import AttackType
from lorequest.domain.models.item import (
    EquipmentSlot,
    EquipmentStats,
    ItemSpec,
    ItemType,
    StatBonus,
    StoreOffer,
    UseEffect,
)
from lorequest.domain.models.quest import QuestObjectiveKind, QuestScope, QuestTemplate


STARTING_GOLD = 50
STARTING_RESOURCE = 100

RESOURCE_CAP_BASE = 100
RESOURCE_CAP_PER_POINT = 10

REGEN_INTERVAL_MINUTES = 5
REGEN_FRACTION_PER_INTERVAL = 0.01

MAX_ENERGY = 5
ENERGY_REGEN_MINUTES = 30
COMBAT_ENERGY_COST = 1

LEVEL_CAP = 100
LEVEL_UP_GOLD_PER_LEVEL = 50

CLASS_DAMAGE_MULTIPLIER = 1.5
STRONG_MATCHUP_MULTIPLIER = 1.5
WEAK_MATCHUP_MULTIPLIER = 0.75
CRITICAL_HIT_MULTIPLIER = 1.5
DEFEND_DAMAGE_MULTIPLIER = 0.5
MINIMUM_DAMAGE = 1

ENEMY_CRITICAL_CHANCE = 0.05
PLAYER_CRITICAL_BASE = 0.10
PLAYER_CRITICAL_PER_DEXTERITY = 0.005
PLAYER_CRITICAL_CAP = 0.25

ENEMY_MITIGATION_PER_DEFENSE = 0.5
PLAYER_MITIGATION_PER_ARMOR = 0.7

FLEE_BASE_CHANCE = 0.7
FLEE_PER_DEXTERITY = 0.01
FLEE_PER_ENEMY_LEVEL = 0.02
FLEE_MIN_CHANCE = 0.3
FLEE_MAX_CHANCE = 0.9

DEFAULT_REVIVE_FRACTION = 0.5
# absolute amount; clamping to the cap turns it into a full bar
FULL_RESTORE_AMOUNT = 9999
ENEMY_TURN_DELAY_S = 1.0

MAX_TRACKED_ACHIEVEMENTS = 3
META_ACHIEVEMENT_ID = "meta-all-territories"

WALKING_XP_PER_KM = 10
MAX_DISTANCE_DELTA_KM = 1.0
EARTH_RADIUS_KM = 6371.0
KM_PER_MILE = 1.609344

ENCOUNTER_BASE_CHANCE = 0.1
ENCOUNTER_DISTANCE_STEP_M = 500
ENCOUNTER_MAX_CHANCE = 0.4

ENEMY_LEVEL_SCALE = 0.8
ENEMY_HEALTH_PER_SCALE = 5
ENEMY_XP_PER_LEVEL = 2
ENEMY_GOLD_PER_LEVEL = 1

TUTORIAL_REWARD_XP = 200
TUTORIAL_REWARD_GOLD = 100

ACHIEVEMENT_CHEST = ItemSpec(
    name="Achievement Chest",
    item_type=ItemType.OTHER,
    description="A sealed chest awarded for reaching a new level.",
)

RUNE_OF_POWER = ItemSpec(
    name="Rune of Power",
    item_type=ItemType.RUNE,
    description="Permanently raises one core attribute by 1.",
)

ACHIEVEMENT_REWARDS = {
    AchievementKind.TERRITORY: {"xp": 50, "gold": 25},
    AchievementKind.REALM: {"xp": 200, "gold": 100},
    AchievementKind.CONTINENT: {"xp": 500, "gold": 250},
    AchievementKind.META: {"xp": 1000, "gold": 500},
}

EFFECTIVENESS_CYCLE = {
    AttackType.MELEE: AttackType.MAGIC,
    AttackType.MAGIC: AttackType.RANGED,
    AttackType.RANGED: AttackType.MELEE,
}

BASE_ENEMIES = (
    {
        "name": "Goblin Scout",
        "attack_type": AttackType.MELEE,
        "base_health": 30,
        "base_attack": 4,
        "base_defense": 1,
        "base_xp": 15,
        "base_gold": 5,
        "description": "A wiry raider that ambushes lone travellers.",
    },
    {
        "name": "Forest Sprite",
        "attack_type": AttackType.MAGIC,
        "base_health": 25,
        "base_attack": 5,
        "base_defense": 0,
        "base_xp": 18,
        "base_gold": 6,
        "description": "A mischievous spirit that hurls bolts of wild magic.",
    },
    {
        "name": "Bandit Archer",
        "attack_type": AttackType.RANGED,
        "base_health": 28,
        "base_attack": 5,
        "base_defense": 1,
        "base_xp": 16,
        "base_gold": 8,
        "description": "Looses arrows from the treeline before closing in.",
    },
    {
        "name": "Stone Golem",
        "attack_type": AttackType.MELEE,
        "base_health": 45,
        "base_attack": 3,
        "base_defense": 3,
        "base_xp": 22,
        "base_gold": 10,
        "description": "Slow and heavily armoured.",
    },
)


def _armour_piece(name: str, slot: EquipmentSlot, armor: int, required_class: str, description: str) -> ItemSpec:
    return ItemSpec(
        name=name,
        item_type=ItemType.ARMOR,
        description=description,
        equipment_stats=EquipmentStats(slot=slot, armor=armor, required_class=required_class),
    )


def _weapon(name: str, attribute: str, bonus: int, attack_type: AttackType, required_class: str) -> ItemSpec:
    return ItemSpec(
        name=name,
        item_type=ItemType.WEAPON,
        description=f"Starter weapon granting +{bonus} {attribute}.",
        equipment_stats=EquipmentStats(
            slot=EquipmentSlot.MAIN_WEAPON,
            stat_bonuses=(StatBonus(attribute, bonus),),
            required_class=required_class,
            attack_type=attack_type,
        ),
    )


STARTER_KITS = {
    "knight": (
        _weapon("Squire's Longsword", "strength", 2, AttackType.MELEE, "knight"),
        _armour_piece("Squire's Mail", EquipmentSlot.BODY, 3, "knight", "Riveted mail for new knights."),
    ),
    "wizard": (
        _weapon("Apprentice Staff", "intelligence", 2, AttackType.MAGIC, "wizard"),
        _armour_piece("Novice Robes", EquipmentSlot.BODY, 1, "wizard", "Light robes stitched with wards."),
    ),
    "ranger": (
        _weapon("Hunter's Shortbow", "dexterity", 2, AttackType.RANGED, "ranger"),
        _armour_piece("Leather Jerkin", EquipmentSlot.BODY, 2, "ranger", "Supple leather for long walks."),
    ),
}


def _potion(name: str, effect: UseEffect, value: float, item_type: ItemType = ItemType.POTION) -> ItemSpec:
    return ItemSpec(name=name, item_type=item_type, use_effect=effect, value=value)


STORE_CATALOGUE = (
    StoreOffer("health-potion", _potion("Health Potion", UseEffect.HEALTH, 0.5), 50),
    StoreOffer("ultra-health-potion", _potion("Ultra Health Potion", UseEffect.HEALTH, FULL_RESTORE_AMOUNT), 150),
    StoreOffer("mana-potion", _potion("Mana Potion", UseEffect.MANA, 0.5), 50),
    StoreOffer("ultra-mana-potion", _potion("Ultra Mana Potion", UseEffect.MANA, FULL_RESTORE_AMOUNT), 150),
    StoreOffer("stamina-potion", _potion("Stamina Potion", UseEffect.STAMINA, 0.5), 50),
    StoreOffer("ultra-stamina-potion", _potion("Ultra Stamina Potion", UseEffect.STAMINA, FULL_RESTORE_AMOUNT), 150),
    StoreOffer("energy-potion", _potion("Energy Potion", UseEffect.ENERGY, 1, ItemType.ENERGY), 75),
    StoreOffer("revival-elixir", _potion("Revival Elixir", UseEffect.REVIVAL, 0.5, ItemType.ELIXIR), 200),
    StoreOffer("ultra-revival-elixir", _potion("Ultra Revival Elixir", UseEffect.REVIVAL, 1.0, ItemType.ELIXIR), 500),
)

QUEST_TEMPLATES = {
    QuestScope.DAILY: (
        QuestTemplate("walk", "Daily Stroll", QuestObjectiveKind.WALK, 1, xp_reward=50, gold_reward=10),
        QuestTemplate("discover", "Daily Discovery", QuestObjectiveKind.DISCOVER, 1, xp_reward=75, gold_reward=15),
        QuestTemplate("battle", "Daily Skirmishes", QuestObjectiveKind.WIN_BATTLE, 3, xp_reward=100, gold_reward=20),
    ),
    QuestScope.WEEKLY: (
        QuestTemplate("walk", "Weekly Trek", QuestObjectiveKind.WALK, 10, xp_reward=300, gold_reward=75),
        QuestTemplate("discover", "Weekly Explorer", QuestObjectiveKind.DISCOVER, 5, xp_reward=400, gold_reward=100),
        QuestTemplate("battle", "Weekly Campaign", QuestObjectiveKind.WIN_BATTLE, 15, xp_reward=500, gold_reward=125),
    ),
    QuestScope.MONTHLY: (
        QuestTemplate(
            "walk",
            "Monthly Pilgrimage",
            QuestObjectiveKind.WALK,
            50,
            xp_reward=1500,
            gold_reward=300,
            item_reward=RUNE_OF_POWER,
        ),
        QuestTemplate("discover", "Monthly Cartographer", QuestObjectiveKind.DISCOVER, 15, xp_reward=2000, gold_reward=400),
    ),
}

TUTORIAL_STEPS = (
    QuestTemplate("choose-class", "Choose your path", QuestObjectiveKind.CHOOSE_CLASS, 1),
    QuestTemplate("first-walk", "Walk your first kilometre", QuestObjectiveKind.WALK, 1),
    QuestTemplate("first-discovery", "Discover a location", QuestObjectiveKind.DISCOVER, 1),
)


def xp_required_for_level(level: int) -> int:
    safe_level = max(1, min(LEVEL_CAP, int(level)))
    if safe_level == 1:
        return 0
    return safe_level * safe_level * 100


def level_for_experience(experience: int) -> int:
    level = 1
    while level < LEVEL_CAP and int(experience) >= xp_required_for_level(level + 1):
        level += 1
    return level


def resource_cap(attribute_value: int) -> int:
    return RESOURCE_CAP_BASE + RESOURCE_CAP_PER_POINT * max(0, int(attribute_value))


def player_critical_chance(dexterity: int) -> float:
    return min(PLAYER_CRITICAL_CAP, PLAYER_CRITICAL_BASE + PLAYER_CRITICAL_PER_DEXTERITY * max(0, int(dexterity)))


def flee_chance(dexterity: int, enemy_level: int) -> float:
    raw = FLEE_BASE_CHANCE + FLEE_PER_DEXTERITY * int(dexterity) - FLEE_PER_ENEMY_LEVEL * int(enemy_level)
    return max(FLEE_MIN_CHANCE, min(FLEE_MAX_CHANCE, raw))


def encounter_chance(distance_m: float) -> float:
    if distance_m <= 0:
        return 0.0
    return min(ENCOUNTER_MAX_CHANCE, ENCOUNTER_BASE_CHANCE * float(distance_m) / ENCOUNTER_DISTANCE_STEP_M)


def store_offer(offer_id: str) -> StoreOffer | None:
    for offer in STORE_CATALOGUE:
        if offer.offer_id == offer_id:
            return offer
    return None


DEFAULT_LOCATIONS = (
    Location("london", "London", "England", "Europe", 51.5074, -0.1278, 10.0),
    Location("manchester", "Manchester", "England", "Europe", 53.4808, -2.2426, 6.0),
    Location("edinburgh", "Edinburgh", "Scotland", "Europe", 55.9533, -3.1883, 5.0),
    Location("glasgow", "Glasgow", "Scotland", "Europe", 55.8642, -4.2518, 5.0),
    Location("paris", "Paris", "France", "Europe", 48.8566, 2.3522, 8.0),
    Location("lyon", "Lyon", "France", "Europe", 45.7640, 4.8357, 5.0),
    Location("new-york", "New York", "United States", "North America", 40.7128, -74.0060, 12.0),
    Location("boston", "Boston", "United States", "North America", 42.3601, -71.0589, 6.0),
    Location("toronto", "Toronto", "Canada", "North America", 43.6532, -79.3832, 8.0),
)
