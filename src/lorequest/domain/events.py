from dataclasses import dataclass


@dataclass
class LevelUpAppliedEvent:
    player_id: str
    from_level: int
    to_level: int
    gold_granted: int


@dataclass
class AchievementCompletedEvent:
    player_id: str
    achievement_id: str
    kind: str
    xp_reward: int
    gold_reward: int


@dataclass
class QuestCompletedEvent:
    player_id: str
    quest_id: str
    scope: str
    xp_reward: int
    gold_reward: int


@dataclass
class CombatResolvedEvent:
    player_id: str
    enemy_name: str
    outcome: str
    rounds: int


@dataclass
class LocationDiscoveredEvent:
    player_id: str
    location_id: str
    realm: str
    continent: str
