from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from lorequest.domain.models.item import ItemSpec


class QuestScope(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    TUTORIAL = "tutorial"
    STORY = "story"

    @classmethod
    def normalize(cls, value: str | None) -> "QuestScope":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return cls.STORY


class QuestObjectiveKind(str, Enum):
    WALK = "walk"
    DISCOVER = "discover"
    WIN_BATTLE = "win_battle"
    CHOOSE_CLASS = "choose_class"

    @classmethod
    def normalize(cls, value: str | None) -> Optional["QuestObjectiveKind"]:
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        return None


@dataclass(frozen=True)
class QuestTemplate:
    slug: str
    title: str
    objective: QuestObjectiveKind
    target_count: float = 1
    xp_reward: int = 0
    gold_reward: int = 0
    item_reward: Optional[ItemSpec] = None
    description: str = ""


@dataclass
class Quest:
    id: str
    scope: QuestScope
    title: str
    objective: QuestObjectiveKind
    target_count: float = 1
    progress: float = 0
    completed: bool = False
    xp_reward: int = 0
    gold_reward: int = 0
    item_reward: Optional[ItemSpec] = None
    expires_at: Optional[datetime] = None
    description: str = ""

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def is_open(self, now: datetime) -> bool:
        return not self.completed and not self.is_expired(now)

    def advance(self, delta: float) -> bool:
        """Add progress (capped at target) and report a fresh completion."""
        if self.completed or delta <= 0:
            return False
        self.progress = min(float(self.target_count), float(self.progress) + float(delta))
        if self.progress >= float(self.target_count):
            self.completed = True
            return True
        return False


@dataclass
class QuestBoard:
    player_id: str
    quests: Dict[str, Quest] = field(default_factory=dict)
    last_generated_at: Optional[datetime] = None
    daily_completed: int = 0
    weekly_completed: int = 0
    monthly_completed: int = 0
    total_completed: int = 0
    tutorial_rewarded: bool = False

    def by_scope(self, scope: QuestScope) -> List[Quest]:
        return [quest for quest in self.quests.values() if quest.scope == scope]

    def active(self, now: datetime) -> List[Quest]:
        return [quest for quest in self.quests.values() if quest.is_open(now)]

    def replace_scope(self, scope: QuestScope, quests: List[Quest]) -> None:
        kept = {key: quest for key, quest in self.quests.items() if quest.scope != scope}
        for quest in quests:
            kept[quest.id] = quest
        self.quests = kept
