from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class AchievementKind(str, Enum):
    TERRITORY = "territory"
    REALM = "realm"
    CONTINENT = "continent"
    META = "meta"


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    realm: str
    continent: str
    latitude: float = 0.0
    longitude: float = 0.0
    radius_miles: float = 5.0


@dataclass(frozen=True)
class Achievement:
    id: str
    kind: AchievementKind
    title: str
    description: str = ""
    xp_reward: int = 0
    gold_reward: int = 0
    scope: Optional[str] = None


@dataclass
class AchievementProgress:
    achievement_id: str
    progress: float = 0.0
    completed: bool = False
    is_tracked: bool = False

    def advance(self, value: float) -> bool:
        """Raise progress to ``value`` and report whether this call completed it.

        Progress never decreases and completion is one-way, so the return value
        is True at most once for the lifetime of the entry.
        """
        clamped = max(0.0, min(1.0, float(value)))
        if clamped > self.progress:
            self.progress = clamped
        if self.completed:
            return False
        if self.progress >= 1.0:
            self.progress = 1.0
            self.completed = True
            return True
        return False


@dataclass
class AchievementCatalogue:
    locations: List[Location] = field(default_factory=list)
    achievements: Dict[str, Achievement] = field(default_factory=dict)

    def get(self, achievement_id: str) -> Optional[Achievement]:
        return self.achievements.get(achievement_id)

    def location(self, location_id: str) -> Optional[Location]:
        for row in self.locations:
            if row.id == location_id:
                return row
        return None

    def territories_in_realm(self, realm: str) -> List[Location]:
        return [row for row in self.locations if row.realm == realm]

    def realms_in_continent(self, continent: str) -> List[str]:
        realms: List[str] = []
        for row in self.locations:
            if row.continent == continent and row.realm not in realms:
                realms.append(row.realm)
        return realms

    def of_kind(self, kind: AchievementKind) -> List[Achievement]:
        return [row for row in self.achievements.values() if row.kind == kind]
